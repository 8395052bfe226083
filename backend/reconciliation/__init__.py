"""
Statement Reconciliation Module

Imports bank statement rows into the transaction ledger:
- Exact re-import detection by external id
- Manual duplicate detection with date/amount tolerances
- Per-source sign conventions
- Keyword category classification
- Audit trail for every run
"""

from reconciliation.source_registry import (
    StatementSource,
    SignConvention,
    SourceConfig,
    SourceRegistry,
    source_registry
)
from reconciliation.models import (
    ImportedRow,
    BatchMetadata,
    CandidateTransaction,
    ImportResult
)
from reconciliation.matching_rules.category_rules import (
    CategoryClassifier,
    classify,
    default_classifier
)
from reconciliation.matching_rules.manual_duplicate_rules import (
    ManualDuplicateRules,
    manual_duplicate_rules
)
from reconciliation.store import StoreError, TransactionStore, SQLTransactionStore
from reconciliation.services.reconciliation_service import StatementReconciliationService

__all__ = [
    # Source Registry
    'StatementSource',
    'SignConvention',
    'SourceConfig',
    'SourceRegistry',
    'source_registry',
    # Models
    'ImportedRow',
    'BatchMetadata',
    'CandidateTransaction',
    'ImportResult',
    # Matching Rules
    'CategoryClassifier',
    'classify',
    'default_classifier',
    'ManualDuplicateRules',
    'manual_duplicate_rules',
    # Store
    'StoreError',
    'TransactionStore',
    'SQLTransactionStore',
    # Service
    'StatementReconciliationService'
]
