"""
WeatherSDK: one cached weather client per API key.

Each instance owns a bounded cache of up to ``cache_max_entries`` cities, an
HTTP client, and in polling mode a background scheduler that refreshes every
cached city on a fixed interval.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from config.settings import Settings, settings as default_settings
from .api_client import WeatherApiClient
from .cache import CacheManager, CacheStore
from .exceptions import InstanceClosedError
from .models import Mode, WeatherData
from .scheduler import PollingScheduler
from .validators import validate_api_key, validate_mode

logger = logging.getLogger("weather_sdk.sdk")


class WeatherSDK:
    """
    Cached access to current weather by city name.

    Prefer ``get_instance`` / ``delete_instance`` (see ``weather_sdk.registry``)
    over direct construction so that only one instance exists per API key.

    Usage:
        sdk = get_instance(api_key, Mode.POLLING)
        london = sdk.get_weather("London")
        delete_instance(api_key)
    """

    def __init__(
        self,
        api_key: str,
        mode: Any = Mode.ON_DEMAND,
        client: Optional[Any] = None,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the SDK.

        Args:
            api_key: 32-character hexadecimal OpenWeatherMap key
            mode: Mode.ON_DEMAND or Mode.POLLING (or their string values)
            client: Fetch collaborator exposing ``fetch_weather(city)`` and
                optionally ``close()``; a WeatherApiClient is built if omitted
            config: Settings to use instead of the process-wide ones
            clock: Time source for cache timestamps (seconds)
        """
        self._api_key = validate_api_key(api_key)
        self._mode = validate_mode(mode)
        self._config = config or default_settings

        self._client = client or WeatherApiClient(
            api_key,
            base_url=self._config.openweather_base_url,
            timeout=self._config.request_timeout_seconds,
            max_concurrent_requests=self._config.max_concurrent_requests,
        )
        self._store = CacheStore(max_entries=self._config.cache_max_entries, clock=clock)
        self._cache = CacheManager(
            self._client.fetch_weather,
            store=self._store,
            ttl_seconds=self._config.cache_ttl_seconds,
            cache_failures=self._config.cache_failures,
            coalesce=self._config.coalesce_requests,
            coalesce_timeout=self._config.request_timeout_seconds,
        )

        self._closed = False
        self._close_lock = threading.Lock()

        self._scheduler: Optional[PollingScheduler] = None
        if self._mode is Mode.POLLING:
            self._scheduler = PollingScheduler(
                self._cache.refresh_all,
                interval_seconds=self._config.polling_interval_seconds,
                name=f"weather-sdk-poller-{self._api_key[:6]}",
            )
            self._scheduler.start()

        logger.info(f"WeatherSDK created (mode={self._mode.value}, key={self._api_key[:6]}...)")

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def scheduler(self) -> Optional[PollingScheduler]:
        return self._scheduler

    def get_weather(self, city: str) -> WeatherData:
        """
        Return current weather for ``city``, served from cache while fresh.

        The city name is case- and whitespace-sensitive.

        Raises:
            InvalidInputError: Blank city
            InstanceClosedError: The SDK has been closed
            FetchError: The remote fetch failed
        """
        self._check_open()
        return self._cache.get(city)

    def refresh_all(self) -> Dict[str, bool]:
        """Refetch every cached city now, as a polling tick would."""
        self._check_open()
        return self._cache.refresh_all()

    def cached_cities(self) -> List[str]:
        """Snapshot of the cities currently held in the cache."""
        return self._store.keys()

    def get_stats(self) -> Dict[str, Any]:
        """Get cache and scheduler statistics."""
        stats = self._cache.get_stats()
        stats["mode"] = self._mode.value
        if self._scheduler is not None:
            stats["scheduler"] = self._scheduler.health()
        return stats

    def close(self) -> None:
        """
        Stop background polling, drop the cache and release the HTTP client.

        Safe to call more than once. In-flight fetches may finish but their
        results are not written back.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        if self._scheduler is not None:
            self._scheduler.stop()
        self._store.close()
        close_client = getattr(self._client, "close", None)
        if callable(close_client):
            close_client()
        logger.info(f"WeatherSDK closed (key={self._api_key[:6]}...)")

    def _check_open(self) -> None:
        if self._closed:
            raise InstanceClosedError()

    def __enter__(self) -> "WeatherSDK":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
