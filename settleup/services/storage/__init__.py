"""
Storage Services Package

Provides abstract interfaces and concrete implementations for reading
the tracker's data and persisting the audit trail. Google Sheets is the
real backend; the in-memory implementations back tests and unconfigured
runs.
"""

from settleup.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ExpenseSourceInterface,
    NotFoundError,
    StorageError,
)
from settleup.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryExpenseSource,
)
from settleup.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseSource,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExpenseSourceInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryExpenseSource",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseSource",
]
