"""
Data Models Package

This package contains all Pydantic models used in SettleUp.
All data flowing through the engine must conform to these schemas.
"""

from settleup.models.expense import (
    Contact,
    FamilyMember,
    SharedExpense,
    TransactionRecord,
    TransactionType,
    ValidationIssue,
)
from settleup.models.settlement import (
    ExpenseReport,
    ParticipantBalance,
    SettlementResult,
    SettlementTransfer,
)
from settleup.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "Contact",
    "FamilyMember",
    "SharedExpense",
    "TransactionRecord",
    "TransactionType",
    "ValidationIssue",
    # Settlement models
    "ExpenseReport",
    "ParticipantBalance",
    "SettlementResult",
    "SettlementTransfer",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
