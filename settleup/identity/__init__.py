"""Participant identity resolution package."""

from settleup.identity.resolver import (
    DirectoryIdentityResolver,
    IdentityResolver,
    LiteralIdentityResolver,
    Resolve,
    literal_resolve,
    resolve_participants,
)

__all__ = [
    "DirectoryIdentityResolver",
    "IdentityResolver",
    "LiteralIdentityResolver",
    "Resolve",
    "literal_resolve",
    "resolve_participants",
]
