"""
Transaction Store

Boundary between the reconciliation engine and persistence.

The engine only needs scoped lookups by external id, a candidate search
for manual duplicates, and batched inserts committed as one unit.
SQLTransactionStore implements them on an AsyncSession; tests use
in-memory implementations of the same interface.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Sequence, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.transaction_models import TransactionDB
from ingestion.models import ImportAuditLogDB, ImportBatchDB
from reconciliation.models import CandidateTransaction

logger = logging.getLogger(__name__)

# Keeps IN (...) lists well under driver parameter limits
EXTERNAL_ID_CHUNK_SIZE = 500


class StoreError(Exception):
    """Persistence is unavailable or rejected a write."""
    pass


class TransactionStore(ABC):
    """
    Abstract interface for the transaction store used by the engine.
    """

    @abstractmethod
    async def find_transaction_ids_by_external_ids(
        self,
        user_id: str,
        external_ids: Sequence[str]
    ) -> Set[str]:
        """
        Return the subset of external_ids already stored for this user.
        """
        pass

    @abstractmethod
    async def find_candidate_manual_transactions(
        self,
        user_id: str,
        date_min: datetime,
        date_max: datetime,
        amount_min: Decimal,
        amount_max: Decimal
    ) -> List[CandidateTransaction]:
        """
        Return manually entered transactions (no external id, no import batch)
        with date and amount inside the given inclusive ranges.
        """
        pass

    @abstractmethod
    async def insert_import_batch(self, batch: ImportBatchDB) -> None:
        pass

    @abstractmethod
    async def insert_transactions(self, transactions: Sequence[TransactionDB]) -> None:
        pass

    @abstractmethod
    async def commit(self) -> None:
        pass

    async def rollback(self) -> None:
        """Discard pending writes. Stores without transactions ignore this."""
        return None

    async def record_import_audit(
        self,
        batch_id: UUID,
        user_id: str,
        action: str,
        details: Dict[str, Any]
    ) -> None:
        """Append an audit entry for an import batch. Optional for stores."""
        return None


class SQLTransactionStore(TransactionStore):
    """
    TransactionStore on a SQLAlchemy AsyncSession.

    Nothing is committed until commit(); SQLAlchemy failures are raised
    as StoreError.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_transaction_ids_by_external_ids(
        self,
        user_id: str,
        external_ids: Sequence[str]
    ) -> Set[str]:
        unique_ids = list(dict.fromkeys(i for i in external_ids if i))
        found: Set[str] = set()

        try:
            for start in range(0, len(unique_ids), EXTERNAL_ID_CHUNK_SIZE):
                chunk = unique_ids[start:start + EXTERNAL_ID_CHUNK_SIZE]
                result = await self.db.execute(
                    select(TransactionDB.external_id).where(
                        TransactionDB.user_id == user_id,
                        TransactionDB.external_id.isnot(None),
                        TransactionDB.external_id.in_(chunk)
                    )
                )
                found.update(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"External id lookup failed for user {user_id}: {e}")
            raise StoreError(f"External id lookup failed: {e}") from e

        return found

    async def find_candidate_manual_transactions(
        self,
        user_id: str,
        date_min: datetime,
        date_max: datetime,
        amount_min: Decimal,
        amount_max: Decimal
    ) -> List[CandidateTransaction]:
        query = select(TransactionDB.description, TransactionDB.amount).where(
            TransactionDB.user_id == user_id,
            TransactionDB.external_id.is_(None),
            TransactionDB.import_batch_id.is_(None),
            TransactionDB.date >= date_min,
            TransactionDB.date <= date_max,
            TransactionDB.amount >= amount_min,
            TransactionDB.amount <= amount_max
        )

        try:
            result = await self.db.execute(query)
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error(f"Manual candidate search failed for user {user_id}: {e}")
            raise StoreError(f"Manual candidate search failed: {e}") from e

        return [
            CandidateTransaction(description=row.description, amount=Decimal(str(row.amount)))
            for row in rows
        ]

    async def insert_import_batch(self, batch: ImportBatchDB) -> None:
        self.db.add(batch)
        await self._flush("import batch")

    async def insert_transactions(self, transactions: Sequence[TransactionDB]) -> None:
        self.db.add_all(list(transactions))
        await self._flush("transactions")

    async def record_import_audit(
        self,
        batch_id: UUID,
        user_id: str,
        action: str,
        details: Dict[str, Any]
    ) -> None:
        self.db.add(ImportAuditLogDB(
            batch_id=batch_id,
            user_id=user_id,
            action=action,
            details=details
        ))

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Commit failed: {e}")
            await self.db.rollback()
            raise StoreError(f"Commit failed: {e}") from e

    async def rollback(self) -> None:
        await self.db.rollback()

    async def _flush(self, what: str) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Insert of {what} failed: {e}")
            await self.db.rollback()
            raise StoreError(f"Insert of {what} failed: {e}") from e
