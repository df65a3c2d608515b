"""
Abstract Source Interfaces

DESIGN DECISION: The settlement engine never touches storage.
Transactions, family members and contacts belong to the surrounding
finance tracker; we only READ snapshots of them through these
interfaces. This allows us to:
1. Read from Google Sheets today and a real database later
2. Use in-memory sources for testing
3. Keep the engine a pure function of its inputs

Filtering to shared transactions (and to one trip) is the source's
job, so the engine only ever sees relevant rows.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from settleup.models.audit import AuditEvent
from settleup.models.expense import Contact, FamilyMember, TransactionRecord


class ExpenseSourceInterface(ABC):
    """
    Read-only access to the data a settlement needs.

    Any backing store (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def list_shared_transactions(
        self,
        trip_id: Optional[str] = None,
    ) -> list[TransactionRecord]:
        """
        List transactions of type "shared".

        Args:
            trip_id: Only transactions of this trip; all trips if None

        Returns:
            Matching transactions in storage order

        Raises:
            StorageError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def list_family_members(self) -> list[FamilyMember]:
        """Snapshot of the family directory."""
        pass

    @abstractmethod
    async def list_contacts(self) -> list[Contact]:
        """Snapshot of the contact directory."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """All events of one settlement run, oldest first."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent audit events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
