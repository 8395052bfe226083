"""
Statement Ingestion - Database Models

Defines SQLAlchemy models for:
- ImportBatch: Groups the transactions created by one statement import
- ImportAuditLog: Audit trail for import operations
"""

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import (
    Column, String, Text, Integer, DateTime, JSON, Numeric, ForeignKey
)
from sqlalchemy.dialects.postgresql import UUID as PGUUID

from database.connection import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ==================== ENUMS ====================

class ImportBatchStatus(str, PyEnum):
    """Status values for import batches"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportFileType(str, PyEnum):
    """Supported statement file types"""
    CSV = "csv"
    XLSX = "xlsx"
    XLS = "xls"


# ==================== IMPORT BATCH TABLE ====================

class ImportBatchDB(Base):
    """
    Import Batch Table - one row per tracked statement import.

    Transactions created by the import reference it through
    transactions.import_batch_id, which also marks them as
    machine-imported for manual duplicate detection.
    """
    __tablename__ = 'import_batches'

    id = Column(PGUUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(255), nullable=False, index=True)

    # File info
    file_name = Column(String(500), nullable=True)
    source = Column(String(20), nullable=False, default='CSV')

    # Import stats
    row_count = Column(Integer, default=0)
    total_amount = Column(Numeric(14, 2), default=0)

    status = Column(String(20), nullable=False, default='completed', index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)

    __table_args__ = {'extend_existing': True}


# ==================== IMPORT AUDIT LOG TABLE ====================

class ImportAuditLogDB(Base):
    """
    Import Audit Log - Tracks all import operations.
    """
    __tablename__ = 'import_audit_log'

    id = Column(Integer, primary_key=True, autoincrement=True)
    batch_id = Column(PGUUID(as_uuid=True), ForeignKey('import_batches.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(String(255), nullable=False)
    action = Column(String(50), nullable=False)  # import
    details = Column(JSON, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=utc_now, index=True)

    __table_args__ = {'extend_existing': True}
