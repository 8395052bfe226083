"""
Reconciliation Services
"""

from .reconciliation_service import (
    StatementReconciliationService,
    ReconciliationAuditEvent,
    log_reconciliation_event
)

__all__ = ["StatementReconciliationService", "ReconciliationAuditEvent", "log_reconciliation_event"]
