"""
Bank Statement Ingestion Module

Provides statement parsing and aggregator feed mapping. The import
service lives in ingestion.service.
"""

from .models import ImportBatchDB, ImportAuditLogDB, ImportBatchStatus, ImportFileType
from .statement_parser import StatementParser, parse_amount, parse_date
from .aggregator_feed import row_from_aggregator, rows_from_aggregator

__all__ = [
    "ImportBatchDB",
    "ImportAuditLogDB",
    "ImportBatchStatus",
    "ImportFileType",
    "StatementParser",
    "parse_amount",
    "parse_date",
    "row_from_aggregator",
    "rows_from_aggregator",
]
