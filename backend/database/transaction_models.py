"""
Transaction Ledger - Database Models

The household transaction ledger shared by manual entry and statement imports.

Tables:
- transactions: One row per expense or income movement
"""

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import (
    Column, String, Text, Boolean, DateTime, Numeric,
    ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import UUID as PGUUID

from database.connection import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ==================== ENUMS ====================

class TransactionType(str, PyEnum):
    """Direction of a transaction; the stored amount is always non-negative"""
    EXPENSE = "expense"
    INCOME = "income"


# ==================== DATABASE MODELS ====================

class TransactionDB(Base):
    """
    Main transaction ledger.

    Manual entries have external_id and import_batch_id both NULL.
    Bank-sourced rows always carry external_id; rows from a tracked
    statement upload also carry import_batch_id.
    """
    __tablename__ = "transactions"

    id = Column(PGUUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(255), nullable=False, index=True)

    # Core transaction data
    type = Column(String(16), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="EUR")
    category = Column(String(100), nullable=False, default="Other")
    description = Column(Text, nullable=False, default="")
    date = Column(DateTime(timezone=True), nullable=False, index=True)

    # Bank provenance
    external_id = Column(String(255), nullable=True)
    import_batch_id = Column(
        PGUUID(as_uuid=True),
        ForeignKey("import_batches.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    is_bank_synced = Column(Boolean, nullable=False, default=False)
    paid_by = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        UniqueConstraint("user_id", "external_id", name="uq_transactions_user_external_id"),
        Index("ix_transactions_user_date", "user_id", "date"),
        {'extend_existing': True},
    )

    @property
    def is_manual(self) -> bool:
        return self.external_id is None and self.import_batch_id is None
