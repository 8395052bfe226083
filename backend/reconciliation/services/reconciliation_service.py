"""
Statement Reconciliation Service

Core business logic for importing bank statement rows:
- Exact re-import detection (batched external id lookup)
- Manual duplicate detection against hand-entered transactions
- Row mapping with a per-source sign convention
- Single-unit persistence of the import batch and new transactions
- Audit logging

One engine serves every source (CSV, Excel, aggregator feed); sources
differ only in their SourceConfig.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Set
from uuid import UUID

from database.transaction_models import TransactionDB
from ingestion.models import ImportBatchDB, ImportBatchStatus
from logging_config import clear_import_context, set_import_context
from reconciliation.mapping import (
    map_row_to_transaction,
    synthesize_external_id,
    to_decimal,
    to_utc
)
from reconciliation.matching_rules.category_rules import CategoryClassifier, default_classifier
from reconciliation.matching_rules.manual_duplicate_rules import (
    CandidateWindow,
    ManualDuplicateRules,
    manual_duplicate_rules
)
from reconciliation.models import BatchMetadata, ImportResult, ImportedRow
from reconciliation.source_registry import SourceConfig, StatementSource, source_registry
from reconciliation.store import StoreError, TransactionStore
from sentry_integration import capture_exception, set_tag

logger = logging.getLogger(__name__)


class ReconciliationAuditEvent:
    """Audit event types for statement reconciliation."""
    RUN_STARTED = "reconciliation.run_started"
    RUN_COMPLETED = "reconciliation.run_completed"
    RUN_CANCELLED = "reconciliation.run_cancelled"
    RUN_FAILED = "reconciliation.run_failed"
    MANUAL_DUPLICATE_FOUND = "reconciliation.manual_duplicate_found"


def log_reconciliation_event(
    event_type: str,
    user_id: str,
    details: Dict[str, Any],
    batch_id: Optional[str] = None,
    actor: str = "system"
):
    """Log reconciliation event for audit trail."""
    log_entry = {
        "event": event_type,
        "user_id": user_id,
        "batch_id": batch_id,
        "details": details,
        "actor": actor,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
    logger.info(f"Reconciliation event: {event_type}", extra=log_entry)


@dataclass
class _PreparedRow:
    """A row with its amount, date and external id resolved up front."""
    row: ImportedRow
    external_id: Optional[str] = None
    amount: Optional[Decimal] = None
    date: Optional[datetime] = None
    window: Optional[CandidateWindow] = None
    error: Optional[Exception] = None


class StatementReconciliationService:
    """
    Reconciles a batch of statement rows against the user's ledger.

    Row-level problems are counted in the ImportResult; only store
    failures raise.
    """

    def __init__(
        self,
        store: TransactionStore,
        source: StatementSource = StatementSource.CSV,
        source_config: Optional[SourceConfig] = None,
        rules: Optional[ManualDuplicateRules] = None,
        classifier: Optional[CategoryClassifier] = None
    ):
        self.store = store
        self.source_config = source_config or source_registry.get_config(source)
        if self.source_config is None:
            raise ValueError(f"No configuration for statement source {source}")
        self.rules = rules or manual_duplicate_rules
        self.classifier = classifier or default_classifier

    async def reconcile(
        self,
        user_id: str,
        rows: Sequence[ImportedRow],
        batch_meta: Optional[BatchMetadata] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> ImportResult:
        """
        Import new rows, skipping re-imports and manual duplicates.

        Args:
            user_id: Owner of the ledger
            rows: Statement rows from a single producer
            batch_meta: When given, an ImportBatch is persisted and new
                transactions reference it
            cancel_event: Once set, no further rows are examined; rows
                already decided are still persisted

        Returns:
            ImportResult with counters and row error messages

        Raises:
            StoreError: persistence failed; nothing was committed
        """
        result = ImportResult()
        if not rows:
            return result

        batch_id: Optional[UUID] = uuid.uuid4() if batch_meta is not None else None
        set_import_context(user_id, str(batch_id) if batch_id else None)

        try:
            log_reconciliation_event(
                ReconciliationAuditEvent.RUN_STARTED,
                user_id,
                {
                    "source": self.source_config.source.value,
                    "row_count": len(rows),
                    "manual_duplicate_check": self.source_config.manual_duplicate_check
                },
                batch_id=str(batch_id) if batch_id else None
            )

            prepared = [self._prepare(row) for row in rows]
            lookup_ids = list(dict.fromkeys(p.external_id for p in prepared if p.external_id))
            existing_ids: Set[str] = set()
            if lookup_ids:
                existing_ids = await self.store.find_transaction_ids_by_external_ids(user_id, lookup_ids)

            new_transactions = await self._process_rows(
                user_id, prepared, existing_ids, batch_id, result, cancel_event
            )

            if new_transactions:
                await self._persist(user_id, new_transactions, batch_id, batch_meta, result)

            log_reconciliation_event(
                ReconciliationAuditEvent.RUN_CANCELLED if result.cancelled else ReconciliationAuditEvent.RUN_COMPLETED,
                user_id,
                self._summary(result),
                batch_id=str(result.import_batch_id) if result.import_batch_id else None
            )

        except StoreError as e:
            await self.store.rollback()
            log_reconciliation_event(
                ReconciliationAuditEvent.RUN_FAILED,
                user_id,
                {"error": str(e)},
                batch_id=str(batch_id) if batch_id else None
            )
            set_tag("statement_source", self.source_config.source.value)
            capture_exception(e, user_id=user_id, source=self.source_config.source.value)
            raise
        finally:
            clear_import_context()

        return result

    def _prepare(self, row: ImportedRow) -> _PreparedRow:
        prepared = _PreparedRow(row=row)
        try:
            prepared.amount = to_decimal(row.amount)
            prepared.date = to_utc(row.date)
            prepared.external_id = row.external_id or synthesize_external_id(
                prepared.date, prepared.amount, row.description
            )
            if self.source_config.manual_duplicate_check:
                prepared.window = self.rules.candidate_window(prepared.amount, prepared.date)
        except Exception as e:
            prepared.error = e
            prepared.external_id = row.external_id
        return prepared

    async def _process_rows(
        self,
        user_id: str,
        prepared: List[_PreparedRow],
        existing_ids: Set[str],
        batch_id: Optional[UUID],
        result: ImportResult,
        cancel_event: Optional[asyncio.Event]
    ) -> List[TransactionDB]:
        new_transactions: List[TransactionDB] = []
        accepted_ids: Set[str] = set()

        for item in prepared:
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                logger.info(f"Reconciliation cancelled for user {user_id} after {len(new_transactions)} new rows")
                break

            if item.external_id and (item.external_id in existing_ids or item.external_id in accepted_ids):
                result.duplicates_skipped += 1
                continue

            if item.error is not None:
                result.add_error(f"Error processing transaction {item.row.description}: {item.error}")
                continue

            if self.source_config.manual_duplicate_check and await self._is_manual_duplicate(user_id, item):
                result.duplicates_skipped += 1
                result.manual_duplicates_skipped += 1
                continue

            try:
                txn = map_row_to_transaction(
                    item.row,
                    user_id,
                    self.source_config.sign_convention,
                    classifier=self.classifier,
                    external_id=item.external_id,
                    import_batch_id=batch_id
                )
            except Exception as e:
                logger.warning(f"Failed to map statement row: {e}")
                result.add_error(f"Error processing transaction {item.row.description}: {e}")
                continue

            new_transactions.append(txn)
            accepted_ids.add(txn.external_id)

        return new_transactions

    async def _is_manual_duplicate(self, user_id: str, item: _PreparedRow) -> bool:
        window = item.window
        candidates = await self.store.find_candidate_manual_transactions(
            user_id,
            window.date_min,
            window.date_max,
            window.amount_min,
            window.amount_max
        )

        match = self.rules.find_match(item.row.description, item.amount, candidates)
        if match is None:
            return False

        log_reconciliation_event(
            ReconciliationAuditEvent.MANUAL_DUPLICATE_FOUND,
            user_id,
            {
                "external_id": item.external_id,
                "amount": str(item.amount),
                "date": item.date.isoformat(),
                "matched_amount": str(match.amount)
            }
        )
        return True

    async def _persist(
        self,
        user_id: str,
        transactions: List[TransactionDB],
        batch_id: Optional[UUID],
        batch_meta: Optional[BatchMetadata],
        result: ImportResult
    ):
        if batch_meta is not None and batch_id is not None:
            batch = ImportBatchDB(
                id=batch_id,
                user_id=user_id,
                file_name=batch_meta.file_name,
                source=batch_meta.source,
                row_count=batch_meta.row_count,
                total_amount=batch_meta.total_amount,
                status=ImportBatchStatus.COMPLETED.value,
                notes=batch_meta.notes,
                created_at=datetime.now(timezone.utc)
            )
            await self.store.insert_import_batch(batch)
            result.import_batch_id = batch_id

        await self.store.insert_transactions(transactions)

        result.total_imported = len(transactions)
        result.last_transaction_date = max(txn.date for txn in transactions)

        if result.import_batch_id is not None:
            await self.store.record_import_audit(
                result.import_batch_id,
                user_id,
                "import",
                self._summary(result)
            )

        await self.store.commit()
        logger.info(f"Imported {result.total_imported} transactions for user {user_id}")

    @staticmethod
    def _summary(result: ImportResult) -> Dict[str, Any]:
        return {
            "total_imported": result.total_imported,
            "duplicates_skipped": result.duplicates_skipped,
            "manual_duplicates_skipped": result.manual_duplicates_skipped,
            "errors": result.errors,
            "cancelled": result.cancelled
        }
