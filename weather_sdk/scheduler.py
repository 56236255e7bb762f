"""
Periodic background task used by polling mode.

A daemon thread waits on a stop event between ticks; ``stop()`` sets the
event and joins the thread, so no tick starts after it returns.
"""
import logging
import threading
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger("weather_sdk.scheduler")


class PollingScheduler:
    """
    Calls ``tick_fn`` every ``interval_seconds`` on its own thread.

    Exceptions raised by ``tick_fn`` are logged and the loop keeps running.

    Example:
        >>> scheduler = PollingScheduler(cache.refresh_all, interval_seconds=300)
        >>> scheduler.start()
        >>> # ... later ...
        >>> scheduler.stop()
    """

    def __init__(
        self,
        tick_fn: Callable[[], Any],
        interval_seconds: float,
        name: str = "weather-sdk-poller",
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self._tick_fn = tick_fn
        self._interval = interval_seconds
        self._name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._tick_count = 0
        self._failed_ticks = 0

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def tick_count(self) -> int:
        with self._lock:
            return self._tick_count

    def start(self) -> None:
        """Start the loop. Calling start on a running scheduler is a no-op."""
        with self._lock:
            if self._thread is not None:
                logger.warning(f"{self._name} already started")
                return
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._loop, daemon=True, name=self._name)
            self._thread.start()
        logger.info(f"{self._name} started (interval={self._interval}s)")

    def _loop(self) -> None:
        while not self._stop_event.wait(self._interval):
            with self._lock:
                self._tick_count += 1
            try:
                self._tick_fn()
            except Exception as e:
                with self._lock:
                    self._failed_ticks += 1
                logger.exception(f"Tick failed: {e}")
        logger.info(f"{self._name} stopped")

    def stop(self, timeout: float = 5.0) -> None:
        """
        Stop the loop and wait up to ``timeout`` seconds for a running tick.
        """
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is None:
            return

        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"{self._name} did not stop cleanly")

    def health(self) -> Dict[str, Any]:
        """Return scheduler status."""
        with self._lock:
            return {
                "running": self._thread is not None and self._thread.is_alive(),
                "interval_seconds": self._interval,
                "tick_count": self._tick_count,
                "failed_ticks": self._failed_ticks,
            }
