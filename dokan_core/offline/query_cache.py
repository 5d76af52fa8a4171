# =============================================================================
# dokan_core/offline/query_cache.py
# Shared in-memory response cache for hybrid reads
# =============================================================================
"""
QueryCache - memoizes read results per (entity, owner, params) key.

Features:
- Per-entry freshness window (None = never stale)
- One in-flight fetch per key; concurrent readers wait for it
- Owner-scoped invalidation and optimistic in-place updates
- Hit/miss counters for the status panel
"""

from __future__ import annotations
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from dokan_core.logging import get_logger

logger = get_logger(__name__)

QueryKey = Tuple[str, Optional[str], Tuple]


def make_key(entity: str, owner_id: Optional[str], **params: Any) -> QueryKey:
    """Build a cache key; params are sorted so keyword order does not matter."""
    return (entity, owner_id, tuple(sorted(params.items())))


@dataclass
class CacheEntry:
    data: Any
    fetched_at: float
    stale_time: Optional[float]
    invalidated: bool = False

    def is_stale(self, now: float) -> bool:
        if self.invalidated:
            return True
        if self.stale_time is None:
            return False
        return now - self.fetched_at >= self.stale_time


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    shared: int = 0
    invalidations: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "shared": self.shared,
            "invalidations": self.invalidations,
        }


# A fetcher returns the data plus how long it stays fresh
Fetcher = Callable[[], Tuple[Any, Optional[float]]]


class QueryCache:
    """
    Thread-safe read-through cache.

    Usage:
        cache = QueryCache()
        data = cache.get_or_fetch(make_key("sales", owner, limit=10), fetch)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._in_flight: Dict[Hashable, threading.Event] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self.stats = CacheStats()

    def get_or_fetch(self, key: QueryKey, fetcher: Fetcher) -> Any:
        """
        Return the cached value for key, running fetcher if it is missing
        or stale. Only one fetcher per key runs at a time; other callers
        block and reuse its result.
        """
        while True:
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None and not entry.is_stale(self._clock()):
                    self.stats.hits += 1
                    return entry.data

                waiter = self._in_flight.get(key)
                if waiter is None:
                    event = threading.Event()
                    self._in_flight[key] = event
                    self.stats.misses += 1
                    break
                self.stats.shared += 1

            waiter.wait()
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None and not entry.invalidated:
                    return entry.data
            # The leading fetch failed or was invalidated mid-flight; try again

        try:
            data, stale_time = fetcher()
            with self._lock:
                self._entries[key] = CacheEntry(data, self._clock(), stale_time)
            return data
        finally:
            with self._lock:
                self._in_flight.pop(key, None)
            event.set()

    def peek(self, key: QueryKey) -> Any:
        """Cached value regardless of freshness, or None."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.data if entry is not None else None

    def is_stale(self, key: QueryKey) -> bool:
        """True if key is missing, expired or invalidated."""
        with self._lock:
            entry = self._entries.get(key)
            return entry is None or entry.is_stale(self._clock())

    def set(self, key: QueryKey, data: Any, stale_time: Optional[float] = None) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(data, self._clock(), stale_time)

    def update_data(
        self,
        entity: str,
        owner_id: Optional[str],
        updater: Callable[[Any], Any],
        params_filter: Optional[Callable[[Dict[str, Any]], bool]] = None,
    ) -> int:
        """
        Apply updater to cached values of an entity for one owner.

        params_filter, when given, receives each entry's query params and
        decides whether that entry is updated.

        Returns:
            Number of entries updated
        """
        updated = 0
        with self._lock:
            for key, entry in self._entries.items():
                if key[0] != entity or key[1] != owner_id:
                    continue
                if params_filter is not None and not params_filter(dict(key[2])):
                    continue
                entry.data = updater(entry.data)
                updated += 1
        return updated

    def invalidate(self, entity: str, owner_id: Optional[str] = None) -> int:
        """
        Mark an entity's entries stale, for one owner or for all owners.

        Returns:
            Number of entries invalidated
        """
        count = 0
        with self._lock:
            for key, entry in self._entries.items():
                if key[0] == entity and (owner_id is None or key[1] == owner_id):
                    entry.invalidated = True
                    count += 1
            self.stats.invalidations += count
        if count:
            logger.debug(f"Invalidated {count} cached '{entity}' queries for {owner_id or 'all owners'}")
        return count

    def invalidate_all(self) -> int:
        with self._lock:
            for entry in self._entries.values():
                entry.invalidated = True
            count = len(self._entries)
            self.stats.invalidations += count
        logger.debug(f"Invalidated all {count} cached queries")
        return count

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
