"""
Shared fixtures: a controllable clock and an in-memory weather client.
"""
import threading
import time

import pytest

from config.settings import Settings
from weather_sdk.exceptions import FetchError
from weather_sdk.models import WeatherData


class FakeClock:
    """Manually advanced time source (seconds)."""

    def __init__(self, start: float = 1000.0):
        self._now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> None:
        with self._lock:
            self._now += seconds


class FakeWeatherClient:
    """
    Stand-in for WeatherApiClient.

    Each successful fetch returns WeatherData whose ``id`` is the global fetch
    number, so tests can tell which fetch produced a cached value.
    """

    def __init__(self, delay: float = 0.0):
        self.calls = []
        self.failures = {}
        self.delay = delay
        self.closed = False
        self._lock = threading.Lock()

    def fail(self, city: str, error: FetchError) -> None:
        self.failures[city] = error

    def succeed(self, city: str) -> None:
        self.failures.pop(city, None)

    def calls_for(self, city: str) -> int:
        with self._lock:
            return self.calls.count(city)

    def fetch_weather(self, city: str) -> WeatherData:
        with self._lock:
            self.calls.append(city)
            fetch_number = len(self.calls)
        if self.delay:
            time.sleep(self.delay)
        error = self.failures.get(city)
        if error is not None:
            raise error
        return WeatherData(id=fetch_number, name=city)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_client():
    return FakeWeatherClient()


@pytest.fixture
def sdk_settings():
    """Small, fast settings for SDK tests."""
    return Settings(
        openweather_api_key=None,
        cache_max_entries=10,
        cache_ttl_seconds=600,
        polling_interval_seconds=300,
        cache_failures=True,
        coalesce_requests=False,
    )


@pytest.fixture
def make_client():
    """Factory for extra fake clients, e.g. with a fetch delay."""
    return FakeWeatherClient
