"""
Error taxonomy for the weather SDK.

Local validation failures derive from InvalidInputError. Remote failures
derive from FetchError and map one-to-one onto the HTTP status categories
returned by the weather API.
"""
from typing import Any, Dict, Optional


class WeatherSDKError(Exception):
    """Base exception for all SDK errors."""

    code = "WEATHER_SDK_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary for logging or serialisation."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidInputError(WeatherSDKError, ValueError):
    """Bad city, API key or mode supplied by the caller."""

    code = "INVALID_INPUT"


class InstanceNotFoundError(WeatherSDKError, LookupError):
    """No SDK instance is registered for the given API key."""

    code = "INSTANCE_NOT_FOUND"

    def __init__(self, message: str = "No instance found for the provided API key"):
        super().__init__(message)


class InstanceClosedError(WeatherSDKError, RuntimeError):
    """The SDK instance was closed and can no longer serve requests."""

    code = "INSTANCE_CLOSED"

    def __init__(self, message: str = "This WeatherSDK instance has been closed"):
        super().__init__(message)


# ===== REMOTE FAILURES =====

class FetchError(WeatherSDKError):
    """Base class for failures reported by (or on the way to) the remote API."""

    code = "FETCH_ERROR"
    default_message = "Weather data could not be fetched"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status_code = status_code
        super().__init__(message or self.default_message, details)


class InvalidRequestError(FetchError):
    """HTTP 400: mandatory parameters missing or malformed."""

    code = "INVALID_REQUEST"
    default_message = (
        "Error 400 - Bad Request: Some mandatory parameters are missing "
        "or have incorrect values."
    )


class UnauthenticatedError(FetchError):
    """HTTP 401: API key missing or rejected."""

    code = "UNAUTHENTICATED"
    default_message = "Error 401 - Unauthorized: API token is missing or invalid."


class NotFoundError(FetchError):
    """HTTP 404: the city is unknown to the weather service."""

    code = "NOT_FOUND"
    default_message = (
        "Error 404 - Not Found: The requested data does not exist "
        "in the service database."
    )


class RateLimitedError(FetchError):
    """HTTP 429: request quota exceeded."""

    code = "RATE_LIMITED"
    default_message = (
        "Error 429 - Too Many Requests: API request quota exceeded. "
        "Retry after some time."
    )


class RemoteUnavailableError(FetchError):
    """HTTP 5xx, transport failure, timeout or unreadable response."""

    code = "REMOTE_UNAVAILABLE"
    default_message = (
        "Error 5xx - Unexpected Server Error: Internal server error. "
        "You may retry or contact support."
    )
