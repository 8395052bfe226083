"""
Aggregator Feed Adapter

Maps bank aggregator (open banking) transaction payloads onto ImportedRow.

Accepts both the normalised shape
    {"transaction_id", "description", "amount", "transaction_date", "value_date"}
and the raw provider shape
    {"transaction_id", "remittance_information_unstructured",
     "transaction_amount": {"amount", "currency"}, "booking_date", "value_date"}.

Aggregator amounts are positive for money leaving the account, so rows
from here must be reconciled with the AGGREGATOR source configuration.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from reconciliation.models import ImportedRow

logger = logging.getLogger(__name__)


def _amount_and_currency(payload: Dict[str, Any], default_currency: str) -> Tuple[Decimal, str]:
    raw = payload.get("transaction_amount", payload.get("amount"))
    currency = payload.get("currency") or default_currency

    if isinstance(raw, dict):
        currency = raw.get("currency") or currency
        raw = raw.get("amount")

    if raw is None or isinstance(raw, bool):
        return Decimal("0"), currency

    try:
        amount = Decimal(str(raw).strip())
    except InvalidOperation:
        logger.warning(f"Unparseable aggregator amount {raw!r}; using 0")
        return Decimal("0"), currency

    if not amount.is_finite():
        return Decimal("0"), currency
    return amount, currency


def _transaction_date(payload: Dict[str, Any]) -> Optional[Any]:
    for key in ("transaction_date", "booking_date", "value_date"):
        value = payload.get(key)
        if value:
            return value
    return None


def row_from_aggregator(payload: Dict[str, Any], default_currency: str = "EUR") -> ImportedRow:
    """Map one aggregator payload to an ImportedRow."""
    amount, currency = _amount_and_currency(payload, default_currency)
    description = payload.get("description", payload.get("remittance_information_unstructured"))

    return ImportedRow(
        amount=amount,
        date=_transaction_date(payload),
        external_id=payload.get("transaction_id") or None,
        description=description,
        category=payload.get("category"),
        currency=currency,
    )


def rows_from_aggregator(
    payloads: Iterable[Dict[str, Any]],
    default_currency: str = "EUR"
) -> List[ImportedRow]:
    """Map a list of aggregator payloads to ImportedRows, preserving order."""
    return [row_from_aggregator(payload, default_currency) for payload in payloads]
