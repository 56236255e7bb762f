"""
Request coalescing for concurrent cache misses on the same key.

When several threads miss on one key at the same time, only the first one
calls the fetch function; the others wait for and share its outcome.
"""
import threading
import logging
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from typing import Any, Callable, Dict

from ..exceptions import RemoteUnavailableError

logger = logging.getLogger("cache.coalescer")


class RequestCoalescer:
    """
    Shares one in-flight fetch per key among all concurrent callers.

    Usage:
        coalescer = RequestCoalescer()
        data = coalescer.get_or_fetch("London", lambda: client.fetch_weather("London"))
    """

    def __init__(self, timeout: float = 30.0):
        """
        Initialize the coalescer.

        Args:
            timeout: Max seconds a waiter blocks on another caller's fetch
        """
        self._in_flight: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self._timeout = timeout

    def get_or_fetch(self, key: str, fetch_fn: Callable[[], Any]) -> Any:
        """
        Join the in-flight fetch for ``key`` or start one.

        Raises:
            RemoteUnavailableError: If waiting on another caller's fetch times out
            Exception: Whatever ``fetch_fn`` raised, re-raised in every caller
        """
        with self._lock:
            future = self._in_flight.get(key)
            is_initiator = future is None
            if is_initiator:
                future = Future()
                self._in_flight[key] = future
                logger.debug(f"Initiating fetch for {key!r}")
            else:
                logger.debug(f"Coalescing request for {key!r}")

        if is_initiator:
            try:
                future.set_result(fetch_fn())
            except Exception as e:
                future.set_exception(e)
            finally:
                with self._lock:
                    self._in_flight.pop(key, None)
            return future.result()

        try:
            return future.result(timeout=self._timeout)
        except FutureTimeoutError:
            logger.error(f"Timeout waiting for coalesced request: {key!r}")
            raise RemoteUnavailableError(
                f"Request for {key!r} timed out after {self._timeout}s"
            )

    @property
    def active_requests(self) -> int:
        """Number of currently in-flight fetches."""
        with self._lock:
            return len(self._in_flight)
