"""
Reconciliation Data Models

Value objects passed across the reconciliation engine boundary:
- ImportedRow: one statement row as delivered by a producer (CSV, Excel, aggregator)
- BatchMetadata: optional description of the import run, persisted as an ImportBatch
- CandidateTransaction: the slice of a manual transaction the matcher reads
- ImportResult: aggregate counters returned to the caller
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict

from reconciliation.source_registry import StatementSource


@dataclass(frozen=True)
class ImportedRow:
    """
    A single statement row.

    amount and date are kept as delivered; they are coerced (and may fail)
    when the row is processed, so one malformed row never blocks a batch.
    """
    amount: Any
    date: Any
    external_id: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    currency: str = "EUR"


class BatchMetadata(BaseModel):
    """Metadata for a tracked import run."""
    model_config = ConfigDict(use_enum_values=True)

    file_name: Optional[str] = Field(default=None, description="Uploaded file name, if any")
    source: StatementSource = Field(default=StatementSource.CSV, description="Statement source")
    row_count: int = Field(default=0, ge=0, description="Rows found in the statement")
    total_amount: Decimal = Field(default=Decimal("0"), description="Sum of signed row amounts")
    notes: Optional[str] = Field(default=None, description="Free-text notes")


@dataclass(frozen=True)
class CandidateTransaction:
    """A manually entered transaction that might duplicate a statement row."""
    description: Optional[str]
    amount: Decimal


@dataclass
class ImportResult:
    """Result of reconciling one batch of statement rows."""
    total_imported: int = 0
    duplicates_skipped: int = 0
    manual_duplicates_skipped: int = 0
    errors: int = 0
    error_messages: List[str] = field(default_factory=list)
    last_transaction_date: Optional[datetime] = None
    import_batch_id: Optional[UUID] = None
    cancelled: bool = False

    def add_error(self, message: str):
        self.errors += 1
        self.error_messages.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalImported": self.total_imported,
            "duplicatesSkipped": self.duplicates_skipped,
            "manualDuplicatesSkipped": self.manual_duplicates_skipped,
            "errors": self.errors,
            "errorMessages": list(self.error_messages),
            "lastTransactionDate": self.last_transaction_date.isoformat() if self.last_transaction_date else None,
            "importBatchId": str(self.import_batch_id) if self.import_batch_id else None,
            "cancelled": self.cancelled,
        }
