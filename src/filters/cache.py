"""TTL-bounded cache of fetched filter definitions.

Keys are the canonical form of a filter-id set (deduplicated, sorted,
comma-joined); values are the flat rows returned by the bulk definition
read for exactly that set.

Hit/miss is decided only by the timestamp check in ``get``. The sweep
physically evicts expired entries to bound memory and runs whenever the
clock passes the next sweep deadline during a cache access.

Any create/update/delete of a persisted filter must call
``invalidate_all``. The key space is every combination of ids, so
per-id invalidation is not attempted.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from src.filters.models import FilterRow

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_SWEEP_INTERVAL_SECONDS = 600.0
_KEY_DELIMITER = ","


@dataclass(frozen=True)
class CacheEntry:
    """Rows stored for one id set and when they were stored."""

    rows: tuple[FilterRow, ...]
    inserted_at: float


def cache_key(filter_ids: Iterable[int]) -> str:
    """Return the canonical key for a set of filter ids."""
    return _KEY_DELIMITER.join(str(i) for i in sorted(set(filter_ids)))


class FilterCache:
    """Thread-safe TTL cache keyed by filter-id set.

    Args:
        ttl_seconds: Age after which an entry is treated as absent.
        sweep_interval_seconds: Minimum spacing between physical evictions.
        clock: Monotonic time source in seconds; injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        if sweep_interval_seconds <= 0:
            raise ValueError(
                f"sweep_interval_seconds must be positive, got {sweep_interval_seconds}"
            )
        self.ttl_seconds = ttl_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}
        self._next_sweep_at = clock() + sweep_interval_seconds

    def get(self, filter_ids: Iterable[int]) -> tuple[FilterRow, ...] | None:
        """Return cached rows for this id set, or None on miss or expiry."""
        key = cache_key(filter_ids)
        with self._lock:
            now = self._clock()
            self._maybe_sweep(now)
            entry = self._entries.get(key)
            if entry is None or now - entry.inserted_at >= self.ttl_seconds:
                logger.debug("filter_cache_miss key=%s", key)
                return None
        logger.debug("filter_cache_hit key=%s rows=%d", key, len(entry.rows))
        return entry.rows

    def set(self, filter_ids: Iterable[int], rows: Iterable[FilterRow]) -> None:
        """Store rows for this id set, stamped with the current time."""
        key = cache_key(filter_ids)
        frozen = tuple(rows)
        with self._lock:
            now = self._clock()
            self._maybe_sweep(now)
            self._entries[key] = CacheEntry(rows=frozen, inserted_at=now)

    def invalidate_all(self) -> None:
        """Drop every entry."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("filter_cache_invalidate entries=%d", count)

    def sweep(self) -> int:
        """Evict expired entries now; return how many were removed."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _maybe_sweep(self, now: float) -> None:
        if now >= self._next_sweep_at:
            self._sweep_locked(now)

    def _sweep_locked(self, now: float) -> int:
        expired = [
            key
            for key, entry in self._entries.items()
            if now - entry.inserted_at >= self.ttl_seconds
        ]
        for key in expired:
            del self._entries[key]
        self._next_sweep_at = now + self.sweep_interval_seconds
        if expired:
            logger.info("filter_cache_sweep evicted=%d", len(expired))
        return len(expired)
