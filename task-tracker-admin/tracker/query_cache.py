"""Per-session cache of backend collections, keyed by query identity.

Keys are tuples such as ``("tasks", "all")`` or ``("users",)``. Views read
through :meth:`QueryCache.get`; only the mutation path calls
:meth:`QueryCache.invalidate`, which marks every key under a prefix stale
so the next read of any view refetches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple


logger = logging.getLogger(__name__)

QueryKey = Tuple[str, ...]


@dataclass
class _Entry:
    data: Any = None
    stale: bool = True
    generation: int = 0


class QueryCache:
    def __init__(self) -> None:
        self._entries: Dict[QueryKey, _Entry] = {}

    def _entry(self, key: QueryKey) -> _Entry:
        return self._entries.setdefault(tuple(key), _Entry())

    def peek(self, key: QueryKey) -> Any:
        entry = self._entries.get(tuple(key))
        return entry.data if entry else None

    def is_stale(self, key: QueryKey) -> bool:
        entry = self._entries.get(tuple(key))
        return entry is None or entry.stale

    def begin_fetch(self, key: QueryKey) -> int:
        entry = self._entry(key)
        entry.generation += 1
        return entry.generation

    def complete_fetch(self, key: QueryKey, generation: int, data: Any) -> bool:
        """Store fetched data unless a newer fetch or invalidation superseded it."""
        entry = self._entry(key)
        if generation != entry.generation:
            logger.debug("Dropping superseded response for %s", key)
            return False
        entry.data = data
        entry.stale = False
        return True

    def get(self, key: QueryKey, fetch: Callable[[], Any]) -> Any:
        """Return cached data for ``key``, calling ``fetch`` if missing or stale.

        Errors from ``fetch`` propagate and leave the entry stale.
        """
        if not self.is_stale(key):
            return self.peek(key)
        generation = self.begin_fetch(key)
        data = fetch()
        self.complete_fetch(key, generation, data)
        return self.peek(key) if not self.is_stale(key) else data

    def invalidate(self, prefix: QueryKey) -> int:
        """Mark every key starting with ``prefix`` stale; return how many."""
        prefix = tuple(prefix)
        count = 0
        for key, entry in self._entries.items():
            if key[: len(prefix)] == prefix:
                entry.stale = True
                # Responses still in flight for this key must not win.
                entry.generation += 1
                count += 1
        return count

    def remove_record(self, prefix: QueryKey, record_id: Any) -> None:
        """Drop a record (matched on ``.id``) from every cached list under ``prefix``."""
        prefix = tuple(prefix)
        for key, entry in self._entries.items():
            if key[: len(prefix)] != prefix or not isinstance(entry.data, list):
                continue
            entry.data = [r for r in entry.data if _record_id(r) != record_id]

    def clear(self) -> None:
        self._entries.clear()


def _record_id(record: Any) -> Optional[Any]:
    if isinstance(record, dict):
        return record.get("id")
    return getattr(record, "id", None)
