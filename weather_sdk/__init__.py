"""
Cached OpenWeatherMap client with on-demand and polling refresh modes.
"""
from .exceptions import (
    FetchError,
    InstanceClosedError,
    InstanceNotFoundError,
    InvalidInputError,
    InvalidRequestError,
    NotFoundError,
    RateLimitedError,
    RemoteUnavailableError,
    UnauthenticatedError,
    WeatherSDKError,
)
from .models import Mode, WeatherData
from .api_client import WeatherApiClient
from .sdk import WeatherSDK
from .registry import InstanceRegistry, delete_instance, get_instance, get_registry

__all__ = [
    # Errors
    "WeatherSDKError",
    "InvalidInputError",
    "InstanceNotFoundError",
    "InstanceClosedError",
    "FetchError",
    "InvalidRequestError",
    "UnauthenticatedError",
    "NotFoundError",
    "RateLimitedError",
    "RemoteUnavailableError",
    # Models
    "Mode",
    "WeatherData",
    # Client and instances
    "WeatherApiClient",
    "WeatherSDK",
    "InstanceRegistry",
    "get_instance",
    "delete_instance",
    "get_registry",
]
