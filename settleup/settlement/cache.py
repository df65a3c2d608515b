"""
Settlement Memoization

The settlement engine is a pure function of its input snapshot, so a
result can be reused whenever the same snapshot comes back. This is
the common case: the presentation layer recomputes on every refresh
while the expense list rarely changes.

Keys are SHA-256 hashes of a canonical JSON rendering of the snapshot
(expenses, directories, tolerance). Any change to any input produces
a different key, so entries never need invalidating; old ones simply
fall out of the LRU.
"""

import hashlib
import json
import threading
from collections import OrderedDict
from collections.abc import Callable, Iterable
from typing import Any, Optional

from pydantic import BaseModel

from settleup.models.settlement import SettlementResult


def _canonical(item: Any) -> Any:
    if isinstance(item, BaseModel):
        return item.model_dump(mode="json")
    return item


def _json_default(value: Any) -> Any:
    # Set iteration order varies between processes
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def content_hash(
    expenses: Iterable[Any],
    family_members: Iterable[BaseModel] = (),
    contacts: Iterable[BaseModel] = (),
    extra: Optional[dict[str, Any]] = None,
) -> str:
    """
    Hash an input snapshot.

    Expense ORDER is part of the key: balances are order independent,
    but tie-breaking between equal balances in the planner is not.
    """
    payload = {
        "expenses": [_canonical(e) for e in expenses],
        "family_members": [_canonical(m) for m in family_members],
        "contacts": [_canonical(c) for c in contacts],
        "extra": extra or {},
    }
    encoded = json.dumps(payload, sort_keys=True, default=_json_default, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


class SettlementCache:
    """
    Bounded LRU of settlement results keyed by content hash.

    Safe to share between threads.
    """

    def __init__(self, max_entries: int = 128):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, SettlementResult] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[SettlementResult]:
        with self._lock:
            result = self._entries.get(key)
            if result is None:
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return result

    def put(self, key: str, result: SettlementResult) -> None:
        with self._lock:
            self._entries[key] = result
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def get_or_compute(
        self,
        key: str,
        factory: Callable[[], SettlementResult],
    ) -> tuple[SettlementResult, bool]:
        """
        Return the cached result, computing and storing it on a miss.

        Returns:
            (result, was_cached)
        """
        cached = self.get(key)
        if cached is not None:
            return cached, True

        # Computed outside the lock; a concurrent miss just computes twice
        result = factory()
        self.put(key, result)
        return result, False

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
            }
