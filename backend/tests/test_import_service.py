"""
Unit Tests for the statement import service.

Tests:
- File validation messages
- CSV import with batch metadata
- Re-import of the same file
- Aggregator feed import

Run with: pytest tests/test_import_service.py -v
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from config import Settings
from ingestion.service import (
    INVALID_FORMAT_MESSAGE,
    NO_FILE_MESSAGE,
    NO_TRANSACTIONS_MESSAGE,
    StatementImportService
)
from reconciliation.source_registry import SourceRegistry, StatementSource

CSV_STATEMENT = (
    "Date;Description;Amount\n"
    "01/05/2025;SEPA DEBIT RENT MAY;-800,00\n"
    "02/05/2025;Lidl supermarket;-54,20\n"
    "03/05/2025;Salary May;2.100,00\n"
).encode("utf-8")


@pytest.fixture
def settings():
    return Settings(DATABASE_URL="postgresql+asyncpg://test:test@db/test")


@pytest.fixture
def service(store, settings):
    return StatementImportService(store, settings=settings, registry=SourceRegistry())


class TestValidation:
    """Files rejected before parsing."""

    @pytest.mark.asyncio
    async def test_no_file(self, service, user_id):
        result = await service.import_statement(user_id, b"", "statement.csv")

        assert result.error_messages == [NO_FILE_MESSAGE]
        assert result.errors == 0

    @pytest.mark.asyncio
    async def test_invalid_extension(self, service, user_id):
        result = await service.import_statement(user_id, b"%PDF-1.4", "statement.pdf")

        assert result.error_messages == [INVALID_FORMAT_MESSAGE]
        assert result.errors == 0

    @pytest.mark.asyncio
    async def test_file_too_large(self, store, user_id):
        service = StatementImportService(store, settings=Settings(UPLOAD_MAX_SIZE_MB=0))

        result = await service.import_statement(user_id, CSV_STATEMENT, "statement.csv")

        assert result.error_messages[0].startswith("File too large")
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_no_transactions(self, service, user_id):
        result = await service.import_statement(user_id, b"Date,Description,Amount\n", "empty.csv")

        assert result.error_messages == [NO_TRANSACTIONS_MESSAGE]

    @pytest.mark.asyncio
    async def test_parse_failure_is_reported(self, service, store, user_id):
        result = await service.import_statement(user_id, b"definitely not a workbook", "statement.xlsx")

        assert result.errors == 1
        assert result.error_messages[0].startswith("Import failed:")
        assert store.calls == []


class TestStatementImport:
    """End-to-end statement imports against the in-memory store."""

    @pytest.mark.asyncio
    async def test_csv_import_creates_batch(self, service, store, user_id):
        result = await service.import_statement(user_id, CSV_STATEMENT, "may.csv")

        assert result.total_imported == 3
        assert result.errors == 0
        assert result.import_batch_id is not None

        batch = store.batches[0]
        assert batch.file_name == "may.csv"
        assert batch.source == StatementSource.CSV.value
        assert batch.row_count == 3
        assert batch.total_amount == Decimal("1245.80")

        by_category = {t.description: t.category for t in store.for_user(user_id)}
        assert by_category["SEPA DEBIT RENT MAY"] == "Rent/Mortgage"
        assert by_category["Salary May"] == "Salary"

    @pytest.mark.asyncio
    async def test_reimporting_same_file_adds_nothing(self, service, store, user_id):
        await service.import_statement(user_id, CSV_STATEMENT, "may.csv")
        second = await service.import_statement(user_id, CSV_STATEMENT, "may-again.csv")

        assert second.total_imported == 0
        assert second.duplicates_skipped == 3
        assert len(store.for_user(user_id)) == 3
        assert len(store.batches) == 1

    @pytest.mark.asyncio
    async def test_manual_entry_is_not_duplicated(self, service, store, user_id):
        store.add_manual(user_id, "rent", "800.00", datetime(2025, 4, 30, tzinfo=timezone.utc))

        result = await service.import_statement(user_id, CSV_STATEMENT, "may.csv")

        assert result.total_imported == 2
        assert result.manual_duplicates_skipped == 1

    @pytest.mark.asyncio
    async def test_date_tolerance_comes_from_settings(self, store, user_id):
        store.add_manual(user_id, "rent", "800.00", datetime(2025, 4, 29, tzinfo=timezone.utc))
        service = StatementImportService(
            store,
            settings=Settings(RECON_DATE_TOLERANCE_DAYS=0),
            registry=SourceRegistry()
        )

        result = await service.import_statement(user_id, CSV_STATEMENT, "may.csv")

        assert result.total_imported == 3
        assert result.manual_duplicates_skipped == 0


class TestFeedImport:
    """Aggregator feed imports."""

    @pytest.mark.asyncio
    async def test_feed_uses_positive_is_debit(self, service, store, user_id):
        result = await service.import_feed(user_id, [
            {"transaction_id": "f1", "description": "Spotify", "amount": "9.99", "transaction_date": "2025-03-01"},
            {"transaction_id": "f2", "description": "Refund", "amount": "-20.00", "transaction_date": "2025-03-02"},
        ])

        assert result.total_imported == 2
        by_id = {t.external_id: t for t in store.for_user(user_id)}
        assert by_id["f1"].type == "expense"
        assert by_id["f1"].category == "Subscription"
        assert by_id["f2"].type == "income"
        assert store.batches == []

    @pytest.mark.asyncio
    async def test_disabled_source_is_rejected(self, store, settings, user_id):
        registry = SourceRegistry()
        registry.update_config(StatementSource.AGGREGATOR, enabled=False)
        service = StatementImportService(store, settings=settings, registry=registry)

        with pytest.raises(ValueError):
            await service.import_feed(user_id, [{"transaction_id": "f1", "amount": "1", "value_date": "2025-03-01"}])
