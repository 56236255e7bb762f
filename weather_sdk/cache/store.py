"""
Bounded, thread-safe key/value store with fetch-time LRU eviction.
"""
import threading
import time
import logging
from typing import Any, Callable, Dict, List, Optional

from .core import CacheEntry
from .ttl_policies import DEFAULT_MAX_ENTRIES

logger = logging.getLogger("cache.store")


class CacheStore:
    """
    Mapping of cache key to CacheEntry, bounded at ``max_entries``.

    When a new key is written into a full store, the entry with the oldest
    ``fetched_at`` is evicted first. Reads never change eviction order; only
    a new write does.

    All operations hold one lock for the duration of the map access only, so
    callers must never perform I/O while calling into the store.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the store.

        Args:
            max_entries: Maximum number of cached keys (must be >= 1)
            clock: Zero-arg callable returning the current time in seconds.
                Defaults to ``time.monotonic``.
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._max_entries = max_entries
        self._clock = clock or time.monotonic
        self._closed = False
        self._evictions = 0

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def evictions(self) -> int:
        """Number of entries evicted to make room since creation."""
        return self._evictions

    @property
    def closed(self) -> bool:
        return self._closed

    def now(self) -> float:
        """Current time on the store clock."""
        return self._clock()

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key`` or None."""
        with self._lock:
            return self._entries.get(key)

    def put(
        self,
        key: str,
        value: Any,
        error: Optional[Exception] = None,
        sequence: Optional[int] = None,
    ) -> bool:
        """
        Insert or fully replace the entry for ``key``.

        Args:
            key: Cache key
            value: Value to store (None for a failure sentinel)
            error: Failure to record in place of a value
            sequence: Fetch sequence number; a write older than the entry
                already held for ``key`` is discarded

        Returns:
            True if the entry was written
        """
        with self._lock:
            if self._closed:
                logger.debug(f"Store closed, dropping write for {key!r}")
                return False

            existing = self._entries.get(key)
            if (
                existing is not None
                and sequence is not None
                and sequence < existing.sequence
            ):
                logger.debug(
                    f"Discarding out-of-order result for {key!r} "
                    f"(seq {sequence} < {existing.sequence})"
                )
                return False

            if existing is None and len(self._entries) >= self._max_entries:
                self._evict_oldest()

            self._entries[key] = CacheEntry(
                value=value,
                fetched_at=self._clock(),
                error=error,
                sequence=sequence if sequence is not None else 0,
            )
            return True

    def _evict_oldest(self) -> None:
        """Remove the entry with the smallest fetched_at. Caller holds the lock."""
        # min() keeps the first of equal candidates, i.e. insertion order
        oldest_key = min(self._entries, key=lambda k: self._entries[k].fetched_at)
        del self._entries[oldest_key]
        self._evictions += 1
        logger.info(f"Evicted {oldest_key!r} (cache full at {self._max_entries})")

    def keys(self) -> List[str]:
        """Snapshot of the currently cached keys."""
        with self._lock:
            return list(self._entries)

    def remove(self, key: str) -> bool:
        """
        Remove a single entry.

        Returns:
            True if the entry was found and removed
        """
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """
        Remove all entries.

        Returns:
            Number of entries cleared
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def close(self) -> None:
        """Clear the store and refuse any further writes."""
        with self._lock:
            self._closed = True
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
