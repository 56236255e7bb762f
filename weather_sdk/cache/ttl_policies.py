"""
Cache sizing, TTL defaults and the freshness rule.
"""
from .core import CacheEntry


# Defaults (in seconds where applicable)
DEFAULT_MAX_ENTRIES = 10
DEFAULT_TTL_SECONDS = 10 * 60            # 10 minutes
DEFAULT_POLLING_INTERVAL_SECONDS = 5 * 60  # 5 minutes


def is_fresh(
    entry: CacheEntry,
    now: float,
    ttl_seconds: float = DEFAULT_TTL_SECONDS,
) -> bool:
    """
    Check whether a cache entry can still be served.

    Args:
        entry: The cached entry
        now: Current time on the same clock used to stamp ``entry.fetched_at``
        ttl_seconds: Time-to-live for cached data

    Returns:
        True if the entry is younger than the TTL. An entry whose age is
        exactly ``ttl_seconds`` is stale.
    """
    return entry.age_seconds(now) < ttl_seconds
