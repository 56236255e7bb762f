"""
Core cache data structures.
"""
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class CacheEntry:
    """
    A cached fetch result with the time it was stored.

    An entry whose ``error`` is set is a failure sentinel: the fetch for this
    key failed and no value is available until the entry goes stale.
    """
    value: Any
    fetched_at: float
    error: Optional[Exception] = None
    sequence: int = 0

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    def age_seconds(self, now: float) -> float:
        """Seconds elapsed between the fetch and ``now``."""
        return now - self.fetched_at
