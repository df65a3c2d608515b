"""
In-Memory Sources

Used by tests, and by the flow when no real storage is configured.
Holds plain lists; every read returns a fresh copy so callers can
never mutate the stored snapshot.
"""

from typing import Optional
from uuid import UUID

from settleup.models.audit import AuditEvent
from settleup.models.expense import (
    Contact,
    FamilyMember,
    TransactionRecord,
    TransactionType,
)
from settleup.services.storage.interface import (
    AuditStorageInterface,
    ExpenseSourceInterface,
)


class InMemoryExpenseSource(ExpenseSourceInterface):
    """Expense source over in-memory lists."""

    def __init__(
        self,
        transactions: Optional[list[TransactionRecord]] = None,
        family_members: Optional[list[FamilyMember]] = None,
        contacts: Optional[list[Contact]] = None,
    ):
        self._transactions = list(transactions or [])
        self._family_members = list(family_members or [])
        self._contacts = list(contacts or [])

    async def list_shared_transactions(
        self,
        trip_id: Optional[str] = None,
    ) -> list[TransactionRecord]:
        return [
            t for t in self._transactions
            if t.type == TransactionType.SHARED
            and (trip_id is None or t.trip_id == trip_id)
        ]

    async def list_family_members(self) -> list[FamilyMember]:
        return list(self._family_members)

    async def list_contacts(self) -> list[Contact]:
        return list(self._contacts)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
