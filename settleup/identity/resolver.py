"""
Participant Identity Resolution

Shared transactions reference participants by whatever identifier was
current when they were recorded: a family member ID (new format), or a
contact's email or name (old format). The settlement engine needs one
display name per person.

DESIGN DECISION: Resolution is a total function.
An identifier nobody recognises is used as its own display name.
This keeps every expense settleable, at the cost of letting stale
or mistyped identifiers show up as extra participants. That is a
data-quality signal for the caller, not something we correct here.

The resolver is always passed into the aggregator explicitly.
It never reads directories from global state.
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional

from settleup.models.expense import Contact, FamilyMember, SharedExpense


# Anything that maps a raw identifier to a display name
Resolve = Callable[[str], str]


def literal_resolve(participant_id: str) -> str:
    return participant_id


def resolve_participants(expense: SharedExpense, resolve: Resolve) -> list[str]:
    """Resolved participants of one expense, payer first, without duplicates."""
    members = [resolve(expense.payer_id)]
    for pid in expense.participant_ids:
        name = resolve(pid)
        if name not in members:
            members.append(name)
    return members


class IdentityResolver(ABC):
    """Maps a raw participant identifier to a canonical display name."""

    @abstractmethod
    def resolve(self, participant_id: str) -> str:
        """
        Resolve an identifier. Must never raise.

        Args:
            participant_id: Raw identifier as stored on the transaction

        Returns:
            The participant's display name
        """
        pass

    def __call__(self, participant_id: str) -> str:
        return self.resolve(participant_id)


class LiteralIdentityResolver(IdentityResolver):
    """Treats every identifier as a display name already."""

    def resolve(self, participant_id: str) -> str:
        return participant_id


class DirectoryIdentityResolver(IdentityResolver):
    """
    Resolves identifiers against family-member and contact snapshots.

    Resolution order:
    1. Family member ID -> member name
    2. Contact email or contact name -> contact name
    3. Anything else -> the identifier itself

    The directories are copied into lookup tables at construction,
    so later changes to the caller's lists do not leak in.
    """

    def __init__(
        self,
        family_members: Optional[Iterable[FamilyMember]] = None,
        contacts: Optional[Iterable[Contact]] = None,
    ):
        self._family_by_id: dict[str, str] = {}
        for member in family_members or []:
            self._family_by_id.setdefault(member.id, member.name)

        # First match wins, as in a linear search over the contact list
        self._contact_by_key: dict[str, str] = {}
        for contact in contacts or []:
            if contact.email:
                self._contact_by_key.setdefault(contact.email, contact.name)
            self._contact_by_key.setdefault(contact.name, contact.name)

    def resolve(self, participant_id: str) -> str:
        name = self._family_by_id.get(participant_id)
        if name is not None:
            return name

        name = self._contact_by_key.get(participant_id)
        if name is not None:
            return name

        return participant_id
