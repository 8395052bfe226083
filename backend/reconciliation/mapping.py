"""
Statement Row Mapping

Turns an ImportedRow into a TransactionDB:
- sign convention (per source) decides expense vs income
- stored amount is always the absolute value
- dates are normalised to UTC (naive dates are taken as already UTC)
- category comes from the keyword classifier
"""

import hashlib
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from uuid import UUID

from database.transaction_models import TransactionDB, TransactionType
from reconciliation.matching_rules.category_rules import CategoryClassifier, default_classifier
from reconciliation.models import ImportedRow
from reconciliation.source_registry import SignConvention

DEFAULT_DESCRIPTION = "Imported Transaction"
IMPORT_NOTES = "Imported via Statement"
BANK_PAYER = "Bank"

_CENTS = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Coerce a statement amount to Decimal, rejecting blanks and non-finite values."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Invalid amount: {value!r}")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str) and value.strip():
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value!r}")
    else:
        raise ValueError(f"Invalid amount: {value!r}")

    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return amount


def to_utc(value: Any) -> datetime:
    """
    Normalise a statement date to an aware UTC datetime.

    Naive values get tzinfo=UTC attached without shifting the clock;
    aware values are converted.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            raise ValueError(f"Invalid date: {value!r}")
    else:
        raise ValueError(f"Invalid date: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def synthesize_external_id(when: datetime, amount: Decimal, description: Optional[str]) -> str:
    """
    Deterministic identifier for sources that do not supply one.

    MD5 of "{YYYYMMDD}_{amount}_{description}", so re-importing the same
    statement yields the same ids.
    """
    raw = f"{when:%Y%m%d}_{amount.quantize(_CENTS)}_{description or ''}"
    return hashlib.md5(raw.encode("utf-8")).hexdigest()


def transaction_type_for(amount: Decimal, sign_convention: SignConvention) -> TransactionType:
    """Direction of a signed amount under the given sign convention."""
    if sign_convention == SignConvention.POSITIVE_IS_DEBIT:
        return TransactionType.EXPENSE if amount > 0 else TransactionType.INCOME
    if sign_convention == SignConvention.SIGNED_AMOUNT:
        return TransactionType.EXPENSE if amount < 0 else TransactionType.INCOME
    raise ValueError(f"Unknown sign convention: {sign_convention!r}")


def map_row_to_transaction(
    row: ImportedRow,
    user_id: str,
    sign_convention: SignConvention,
    *,
    classifier: CategoryClassifier = default_classifier,
    external_id: Optional[str] = None,
    import_batch_id: Optional[UUID] = None,
) -> TransactionDB:
    """
    Map a statement row onto a new ledger transaction.

    Raises ValueError for rows whose amount or date cannot be read.
    """
    amount = to_decimal(row.amount)
    when = to_utc(row.date)
    txn_type = transaction_type_for(amount, sign_convention)
    now = datetime.now(timezone.utc)

    return TransactionDB(
        id=uuid.uuid4(),
        user_id=user_id,
        type=txn_type.value,
        amount=abs(amount),
        currency=row.currency or "EUR",
        category=classifier.classify(row.category, row.description),
        description=row.description or DEFAULT_DESCRIPTION,
        date=when,
        external_id=external_id or row.external_id or synthesize_external_id(when, amount, row.description),
        import_batch_id=import_batch_id,
        is_bank_synced=True,
        paid_by=BANK_PAYER,
        notes=IMPORT_NOTES,
        created_at=now,
        updated_at=now,
    )
