"""
HTTP client for the OpenWeatherMap current weather endpoint.

Builds the request, maps non-2xx status codes to typed errors and parses the
body into WeatherData. Every failure leaves this module as a FetchError.
"""
import logging
import threading
from typing import Optional, Type

import requests
from pydantic import ValidationError

from config.settings import settings
from .exceptions import (
    FetchError,
    InvalidRequestError,
    NotFoundError,
    RateLimitedError,
    RemoteUnavailableError,
    UnauthenticatedError,
)
from .models import WeatherData
from .validators import validate_api_key, validate_city

logger = logging.getLogger("weather_sdk.api_client")

# Status code -> error class, 5xx handled separately
STATUS_ERRORS = {
    400: InvalidRequestError,
    401: UnauthenticatedError,
    404: NotFoundError,
    429: RateLimitedError,
}


def exception_for_status(status_code: int) -> Optional[FetchError]:
    """
    Build the typed error for an HTTP status code.

    Returns:
        None for 2xx, otherwise the matching FetchError instance
    """
    if 200 <= status_code <= 299:
        return None

    error_cls: Optional[Type[FetchError]] = STATUS_ERRORS.get(status_code)
    if error_cls is not None:
        return error_cls(status_code=status_code)
    if 500 <= status_code <= 599:
        return RemoteUnavailableError(status_code=status_code)
    return RemoteUnavailableError(
        f"Unexpected response code: {status_code}", status_code=status_code
    )


class WeatherApiClient:
    """
    Fetches current weather for one city per call.

    Concurrent calls share one requests.Session and are capped by a
    semaphore so a burst of cache misses cannot flood the API.
    """

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_concurrent_requests: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        self._api_key = validate_api_key(api_key)
        self._base_url = base_url or settings.openweather_base_url
        self._timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._semaphore = threading.Semaphore(
            max_concurrent_requests or settings.max_concurrent_requests
        )
        self._owns_session = session is None
        self._session = session or requests.Session()

    def fetch_weather(self, city: str) -> WeatherData:
        """
        Fetch current weather for ``city``.

        Raises:
            InvalidInputError: If the city is blank
            FetchError: One of the typed remote failures
        """
        validate_city(city)

        with self._semaphore:
            try:
                response = self._session.get(
                    self._base_url,
                    params={"q": city, "appid": self._api_key},
                    timeout=self._timeout,
                )
            except requests.Timeout as e:
                raise RemoteUnavailableError(
                    f"Request for {city!r} timed out after {self._timeout}s"
                ) from e
            except requests.RequestException as e:
                raise RemoteUnavailableError(f"Weather API request failed: {e}") from e

        error = exception_for_status(response.status_code)
        if error is not None:
            logger.warning(
                f"Weather API returned {response.status_code} for {city!r}"
            )
            raise error

        try:
            return WeatherData.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise RemoteUnavailableError(
                f"Malformed weather response for {city!r}: {e}"
            ) from e

    def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session:
            self._session.close()
