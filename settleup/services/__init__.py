"""Services package."""

from settleup.services.storage import (
    AuditStorageInterface,
    ExpenseSourceInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseSource,
    InMemoryAuditStorage,
    InMemoryExpenseSource,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ExpenseSourceInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseSource",
    "InMemoryAuditStorage",
    "InMemoryExpenseSource",
    "StorageError",
]
