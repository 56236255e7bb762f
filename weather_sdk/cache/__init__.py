"""
Bounded read-through cache with fetch-time LRU eviction and optional coalescing.
"""
from .core import CacheEntry
from .ttl_policies import (
    DEFAULT_MAX_ENTRIES,
    DEFAULT_POLLING_INTERVAL_SECONDS,
    DEFAULT_TTL_SECONDS,
    is_fresh,
)
from .store import CacheStore
from .coalescer import RequestCoalescer
from .manager import CacheManager

__all__ = [
    # Core types
    "CacheEntry",
    # TTL policies
    "DEFAULT_MAX_ENTRIES",
    "DEFAULT_POLLING_INTERVAL_SECONDS",
    "DEFAULT_TTL_SECONDS",
    "is_fresh",
    # Storage
    "CacheStore",
    # Coalescing
    "RequestCoalescer",
    # Manager
    "CacheManager",
]
