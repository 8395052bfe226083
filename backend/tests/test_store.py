"""
Unit Tests for the SQLAlchemy transaction store.

Uses a mocked AsyncSession; no database is needed.

Run with: pytest tests/test_store.py -v
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from ingestion.models import ImportAuditLogDB, ImportBatchDB
from reconciliation.models import CandidateTransaction
from reconciliation.store import EXTERNAL_ID_CHUNK_SIZE, SQLTransactionStore, StoreError


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.execute = AsyncMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    return db


@pytest.fixture
def sql_store(mock_db):
    return SQLTransactionStore(mock_db)


def _scalars_result(values):
    result = MagicMock()
    result.scalars.return_value.all.return_value = values
    return result


class TestExternalIdLookup:
    """Test the batched external id lookup."""

    @pytest.mark.asyncio
    async def test_no_ids_skips_query(self, sql_store, mock_db):
        found = await sql_store.find_transaction_ids_by_external_ids("user-1", [])

        assert found == set()
        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_returns_existing_ids(self, sql_store, mock_db):
        mock_db.execute.return_value = _scalars_result(["a", "c"])

        found = await sql_store.find_transaction_ids_by_external_ids("user-1", ["a", "b", "c"])

        assert found == {"a", "c"}
        mock_db.execute.assert_awaited_once()
        sql = str(mock_db.execute.call_args[0][0])
        assert "transactions.user_id" in sql
        assert "transactions.external_id IS NOT NULL" in sql

    @pytest.mark.asyncio
    async def test_large_lookups_are_chunked(self, sql_store, mock_db):
        mock_db.execute.return_value = _scalars_result([])
        ids = [f"id-{i}" for i in range(EXTERNAL_ID_CHUNK_SIZE * 2 + 1)]

        await sql_store.find_transaction_ids_by_external_ids("user-1", ids)

        assert mock_db.execute.await_count == 3

    @pytest.mark.asyncio
    async def test_database_error_becomes_store_error(self, sql_store, mock_db):
        mock_db.execute.side_effect = SQLAlchemyError("connection refused")

        with pytest.raises(StoreError):
            await sql_store.find_transaction_ids_by_external_ids("user-1", ["a"])


class TestCandidateSearch:
    """Test the manual duplicate candidate query."""

    @pytest.mark.asyncio
    async def test_returns_candidates(self, sql_store, mock_db):
        result = MagicMock()
        result.all.return_value = [SimpleNamespace(description="Rent", amount=Decimal("800.00"))]
        mock_db.execute.return_value = result

        candidates = await sql_store.find_candidate_manual_transactions(
            "user-1",
            datetime(2025, 4, 29, tzinfo=timezone.utc),
            datetime(2025, 5, 5, tzinfo=timezone.utc),
            Decimal("792"),
            Decimal("808")
        )

        assert candidates == [CandidateTransaction(description="Rent", amount=Decimal("800.00"))]
        sql = str(mock_db.execute.call_args[0][0])
        assert "transactions.external_id IS NULL" in sql
        assert "transactions.import_batch_id IS NULL" in sql

    @pytest.mark.asyncio
    async def test_database_error_becomes_store_error(self, sql_store, mock_db):
        mock_db.execute.side_effect = SQLAlchemyError("timeout")

        with pytest.raises(StoreError):
            await sql_store.find_candidate_manual_transactions(
                "user-1",
                datetime(2025, 4, 29, tzinfo=timezone.utc),
                datetime(2025, 5, 5, tzinfo=timezone.utc),
                Decimal("1"),
                Decimal("2")
            )


class TestWrites:
    """Test inserts, audit entries and commit."""

    @pytest.mark.asyncio
    async def test_insert_batch_adds_and_flushes(self, sql_store, mock_db):
        batch = ImportBatchDB(user_id="user-1", file_name="may.csv")

        await sql_store.insert_import_batch(batch)

        mock_db.add.assert_called_once_with(batch)
        mock_db.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_insert_transactions_adds_all(self, sql_store, mock_db):
        txns = [MagicMock(), MagicMock()]

        await sql_store.insert_transactions(txns)

        mock_db.add_all.assert_called_once_with(txns)
        mock_db.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_flush_failure_rolls_back(self, sql_store, mock_db):
        mock_db.flush.side_effect = SQLAlchemyError("duplicate key")

        with pytest.raises(StoreError):
            await sql_store.insert_transactions([MagicMock()])

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_record_import_audit(self, sql_store, mock_db):
        await sql_store.record_import_audit(
            batch_id=uuid.uuid4(),
            user_id="user-1",
            action="import",
            details={"total_imported": 2}
        )

        entry = mock_db.add.call_args[0][0]
        assert isinstance(entry, ImportAuditLogDB)
        assert entry.action == "import"
        assert entry.details == {"total_imported": 2}

    @pytest.mark.asyncio
    async def test_commit_failure_rolls_back(self, sql_store, mock_db):
        mock_db.commit.side_effect = SQLAlchemyError("lost connection")

        with pytest.raises(StoreError):
            await sql_store.commit()

        mock_db.rollback.assert_awaited_once()
