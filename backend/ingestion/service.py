"""
Bank Statement Ingestion - Service Layer

Provides business logic for:
- Statement file validation (presence, extension, size)
- CSV/XLSX parsing into statement rows
- Aggregator feed import
- Handing rows to the reconciliation engine with batch metadata
"""

import asyncio
import logging
import os
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_settings
from ingestion.aggregator_feed import rows_from_aggregator
from ingestion.statement_parser import StatementParser
from reconciliation.matching_rules.manual_duplicate_rules import ManualDuplicateRules
from reconciliation.models import BatchMetadata, ImportResult
from reconciliation.services.reconciliation_service import StatementReconciliationService
from reconciliation.source_registry import SourceRegistry, StatementSource, source_registry
from reconciliation.store import SQLTransactionStore, TransactionStore

logger = logging.getLogger(__name__)


# ==================== MESSAGES ====================

NO_FILE_MESSAGE = "No file uploaded."
INVALID_FORMAT_MESSAGE = "Invalid file format. Please upload a CSV or Excel file."
NO_TRANSACTIONS_MESSAGE = "No transactions found in the file."


# ==================== IMPORT SERVICE ====================

class StatementImportService:
    """Imports uploaded bank statements and aggregator feeds."""

    def __init__(
        self,
        store: TransactionStore,
        settings: Optional[Settings] = None,
        registry: SourceRegistry = source_registry
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.registry = registry
        self.parser = StatementParser(currency=self.settings.DEFAULT_CURRENCY)
        self.rules = ManualDuplicateRules.from_settings(self.settings)

    @classmethod
    def from_session(cls, db: AsyncSession, settings: Optional[Settings] = None) -> "StatementImportService":
        return cls(SQLTransactionStore(db), settings=settings)

    async def import_statement(
        self,
        user_id: str,
        file_content: Optional[bytes],
        file_name: Optional[str],
        cancel_event: Optional[asyncio.Event] = None
    ) -> ImportResult:
        """
        Parse a statement file and reconcile its rows.

        Validation and parse problems are reported in the result;
        store failures propagate.
        """
        result = ImportResult()

        if not file_content:
            result.error_messages.append(NO_FILE_MESSAGE)
            return result

        extension = os.path.splitext(file_name or "")[1].lower()
        if extension not in self.settings.supported_extensions_list:
            result.error_messages.append(INVALID_FORMAT_MESSAGE)
            return result

        if len(file_content) > self.settings.upload_max_size_bytes:
            result.error_messages.append(
                f"File too large. Maximum size is {self.settings.UPLOAD_MAX_SIZE_MB} MB."
            )
            return result

        try:
            rows = self.parser.parse(file_content, extension)
        except Exception as e:
            logger.error(f"Error parsing statement {file_name}: {e}")
            result.add_error(f"Import failed: {e}")
            return result

        if not rows:
            result.error_messages.append(NO_TRANSACTIONS_MESSAGE)
            return result

        source = StatementSource.CSV if extension == ".csv" else StatementSource.EXCEL
        batch_meta = BatchMetadata(
            file_name=file_name,
            source=source,
            row_count=len(rows),
            total_amount=sum((row.amount for row in rows), Decimal("0")),
        )

        logger.info(f"Importing {len(rows)} statement rows from {file_name} for user {user_id}")
        return await self._reconcile(user_id, source, rows, batch_meta, cancel_event)

    async def import_feed(
        self,
        user_id: str,
        payloads: Iterable[Dict[str, Any]],
        cancel_event: Optional[asyncio.Event] = None
    ) -> ImportResult:
        """Reconcile transactions fetched from a bank aggregator."""
        rows = rows_from_aggregator(payloads, default_currency=self.settings.DEFAULT_CURRENCY)
        return await self._reconcile(user_id, StatementSource.AGGREGATOR, rows, None, cancel_event)

    async def _reconcile(self, user_id, source, rows, batch_meta, cancel_event) -> ImportResult:
        if not self.registry.is_source_enabled(source):
            raise ValueError(f"Statement source {source.value} is disabled")

        engine = StatementReconciliationService(
            self.store,
            source_config=self.registry.get_config(source),
            rules=self.rules,
        )
        return await engine.reconcile(user_id, rows, batch_meta=batch_meta, cancel_event=cancel_event)
