"""
Cache orchestration: serve fresh entries, refetch missing or stale ones.
"""
import copy
import itertools
import threading
import logging
from typing import Any, Callable, Dict, Optional

from ..exceptions import FetchError, RemoteUnavailableError
from ..validators import validate_city
from .coalescer import RequestCoalescer
from .store import CacheStore
from .ttl_policies import DEFAULT_TTL_SECONDS, is_fresh

logger = logging.getLogger("cache.manager")


class CacheManager:
    """
    Read-through cache in front of a single-key fetch function.

    - Fresh entries are served without calling the fetch function
    - Missing or stale entries are refetched synchronously and written back
    - Failed fetches are recorded as failure entries when ``cache_failures``
      is set, so reads inside the TTL window see the same failure
    - ``refresh_all`` refetches every cached key unconditionally

    No lock is held while ``fetch_fn`` runs. Each fetch is numbered when it
    is issued and the store drops results older than the entry it holds.
    """

    def __init__(
        self,
        fetch_fn: Callable[[str], Any],
        store: Optional[CacheStore] = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        cache_failures: bool = True,
        coalesce: bool = False,
        coalesce_timeout: float = 30.0,
    ):
        """
        Initialize the cache manager.

        Args:
            fetch_fn: Fetches the record for one key; raises FetchError on failure
            store: Backing store (a default-sized one is created if omitted)
            ttl_seconds: Age at which an entry stops being served
            cache_failures: Record failed fetches in place of the previous entry
            coalesce: Share one in-flight fetch among concurrent misses per key
            coalesce_timeout: Timeout for waiting on a coalesced fetch
        """
        self._fetch_fn = fetch_fn
        self._store = store if store is not None else CacheStore()
        self._ttl_seconds = ttl_seconds
        self._cache_failures = cache_failures
        self._coalescer = RequestCoalescer(timeout=coalesce_timeout) if coalesce else None

        self._sequence = itertools.count(1)
        self._sequence_lock = threading.Lock()

        # Stats tracking
        self._stats_lock = threading.Lock()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "refreshes": 0,
            "failures": 0,
        }

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def get(self, key: str) -> Any:
        """
        Get the value for ``key`` from cache or from upstream.

        Returns:
            The cached or freshly fetched value

        Raises:
            InvalidInputError: If ``key`` is None or blank
            FetchError: If the fetch failed, now or within the TTL window
                when failures are cached
        """
        validate_city(key)

        entry = self._store.get(key)
        if entry is not None and is_fresh(entry, self._store.now(), self._ttl_seconds):
            self._count("hits")
            if entry.is_failure:
                logger.debug(f"CACHE HIT (failure): {key!r}")
                raise _detached(entry.error)
            logger.debug(f"CACHE HIT: {key!r}")
            return entry.value

        if entry is None:
            logger.info(f"CACHE MISS: {key!r}")
        else:
            logger.info(f"CACHE EXPIRED: {key!r}")
        self._count("misses")
        return self.refresh(key)

    def refresh(self, key: str) -> Any:
        """
        Fetch ``key`` unconditionally and write the outcome to the store.

        Raises:
            FetchError: The typed failure from the fetch function
        """
        with self._sequence_lock:
            sequence = next(self._sequence)

        self._count("refreshes")
        try:
            value = self._fetch(key)
        except FetchError as e:
            self._record_failure(key, e, sequence)
            raise
        except Exception as e:
            error = RemoteUnavailableError(f"Unexpected error while fetching {key!r}: {e}")
            self._record_failure(key, error, sequence)
            raise error from e

        self._store.put(key, value, sequence=sequence)
        return value

    def _fetch(self, key: str) -> Any:
        if self._coalescer is not None:
            return self._coalescer.get_or_fetch(key, lambda: self._fetch_fn(key))
        return self._fetch_fn(key)

    def _record_failure(self, key: str, error: FetchError, sequence: int) -> None:
        self._count("failures")
        logger.error(f"Fetch failed for {key!r}: {error}")
        if self._cache_failures:
            self._store.put(key, None, error=_detached(error), sequence=sequence)

    def refresh_all(self) -> Dict[str, bool]:
        """
        Refetch every currently cached key, one at a time.

        A failure on one key is logged and does not stop the others.

        Returns:
            Mapping of key to whether its refresh succeeded
        """
        results: Dict[str, bool] = {}
        keys = self._store.keys()
        logger.info(f"Refreshing {len(keys)} cached entries")
        for key in keys:
            try:
                self.refresh(key)
                results[key] = True
            except FetchError as e:
                logger.warning(f"Background refresh failed: {key!r} - {e}")
                results[key] = False
        return results

    def _count(self, stat: str) -> None:
        with self._stats_lock:
            self._stats[stat] += 1

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._stats_lock:
            stats = dict(self._stats)

        total_requests = stats["hits"] + stats["misses"]
        hit_rate = (stats["hits"] / total_requests * 100) if total_requests > 0 else 0

        stats.update({
            "entries": len(self._store),
            "max_entries": self._store.max_entries,
            "evictions": self._store.evictions,
            "hit_rate_percent": round(hit_rate, 1),
        })
        if self._coalescer is not None:
            stats["in_flight"] = self._coalescer.active_requests
        return stats


def _detached(error: Exception) -> Exception:
    """Copy of ``error`` without traceback, so each raise starts a new one."""
    return copy.copy(error).with_traceback(None)
