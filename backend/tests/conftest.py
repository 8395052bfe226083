"""
Shared fixtures for the statement reconciliation tests.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import pytest

from database.transaction_models import TransactionDB
from reconciliation.models import CandidateTransaction
from reconciliation.store import StoreError, TransactionStore


class InMemoryTransactionStore(TransactionStore):
    """
    TransactionStore backed by lists.

    Writes stay pending until commit(); `calls` records every boundary
    operation in order.
    """

    def __init__(self, fail_on_insert: bool = False, fail_on_commit: bool = False):
        self.transactions: List[TransactionDB] = []
        self.batches = []
        self.audit_entries = []
        self.calls: List[str] = []
        self.lookups: List[list] = []
        self.fail_on_insert = fail_on_insert
        self.fail_on_commit = fail_on_commit
        self._pending_transactions: List[TransactionDB] = []
        self._pending_batches = []
        self._pending_audit = []

    # -- seeding helpers --

    def add_manual(self, user_id: str, description: Optional[str], amount, when: datetime) -> TransactionDB:
        txn = TransactionDB(
            id=uuid.uuid4(),
            user_id=user_id,
            type="expense",
            amount=Decimal(str(amount)),
            currency="EUR",
            category="Other",
            description=description,
            date=when,
            external_id=None,
            import_batch_id=None,
        )
        self.transactions.append(txn)
        return txn

    def add_imported(self, user_id: str, external_id: str, amount, when: datetime) -> TransactionDB:
        txn = TransactionDB(
            id=uuid.uuid4(),
            user_id=user_id,
            type="expense",
            amount=Decimal(str(amount)),
            currency="EUR",
            category="Other",
            description="Imported",
            date=when,
            external_id=external_id,
        )
        self.transactions.append(txn)
        return txn

    def for_user(self, user_id: str) -> List[TransactionDB]:
        return [t for t in self.transactions if t.user_id == user_id]

    # -- TransactionStore --

    async def find_transaction_ids_by_external_ids(self, user_id, external_ids):
        self.calls.append("find_transaction_ids_by_external_ids")
        self.lookups.append(list(external_ids))
        wanted = set(external_ids)
        return {
            t.external_id for t in self.transactions
            if t.user_id == user_id and t.external_id is not None and t.external_id in wanted
        }

    async def find_candidate_manual_transactions(self, user_id, date_min, date_max, amount_min, amount_max):
        self.calls.append("find_candidate_manual_transactions")
        return [
            CandidateTransaction(description=t.description, amount=Decimal(str(t.amount)))
            for t in self.transactions
            if t.user_id == user_id
            and t.external_id is None
            and t.import_batch_id is None
            and date_min <= t.date <= date_max
            and amount_min <= Decimal(str(t.amount)) <= amount_max
        ]

    async def insert_import_batch(self, batch):
        self.calls.append("insert_import_batch")
        if self.fail_on_insert:
            raise StoreError("database unavailable")
        self._pending_batches.append(batch)

    async def insert_transactions(self, transactions):
        self.calls.append("insert_transactions")
        if self.fail_on_insert:
            raise StoreError("database unavailable")
        self._pending_transactions.extend(transactions)

    async def record_import_audit(self, batch_id, user_id, action, details):
        self.calls.append("record_import_audit")
        self._pending_audit.append({"batch_id": batch_id, "user_id": user_id, "action": action, "details": details})

    async def commit(self):
        self.calls.append("commit")
        if self.fail_on_commit:
            raise StoreError("commit failed")
        self.transactions.extend(self._pending_transactions)
        self.batches.extend(self._pending_batches)
        self.audit_entries.extend(self._pending_audit)
        self.rollback_pending()

    async def rollback(self):
        self.calls.append("rollback")
        self.rollback_pending()

    def rollback_pending(self):
        self._pending_transactions = []
        self._pending_batches = []
        self._pending_audit = []


@pytest.fixture
def store():
    """Empty in-memory transaction store."""
    return InMemoryTransactionStore()


@pytest.fixture
def user_id():
    return "user-" + uuid.uuid4().hex[:8]


@pytest.fixture
def store_factory():
    """Build stores with failure switches, e.g. store_factory(fail_on_commit=True)."""
    return InMemoryTransactionStore
