"""
Registry guaranteeing at most one WeatherSDK per API key.
"""
import logging
import threading
from typing import Any, Callable, Dict, Optional

from config.settings import settings
from .exceptions import InstanceNotFoundError
from .models import Mode
from .sdk import WeatherSDK
from .validators import validate_api_key, validate_mode

logger = logging.getLogger("weather_sdk.registry")


class InstanceRegistry:
    """
    Maps API key to its WeatherSDK instance.

    Creation and deletion are serialised by a single lock, so concurrent
    first calls for one key construct exactly one instance.
    """

    def __init__(self, factory: Optional[Callable[[str, Mode], WeatherSDK]] = None):
        """
        Args:
            factory: Builds an instance from (api_key, mode); defaults to WeatherSDK
        """
        self._factory = factory or WeatherSDK
        self._instances: Dict[str, WeatherSDK] = {}
        self._lock = threading.Lock()

    def get_instance(self, api_key: str, mode: Any = Mode.ON_DEMAND) -> WeatherSDK:
        """
        Return the instance for ``api_key``, creating it on first use.

        ``mode`` only applies when a new instance is created.

        Raises:
            InvalidInputError: Malformed API key or unknown mode
        """
        validate_api_key(api_key)
        mode = validate_mode(mode)

        with self._lock:
            instance = self._instances.get(api_key)
            if instance is None:
                instance = self._factory(api_key, mode)
                self._instances[api_key] = instance
                logger.info(f"Registered WeatherSDK for key {api_key[:6]}... (mode={mode.value})")
            return instance

    def delete_instance(self, api_key: str) -> None:
        """
        Remove and close the instance for ``api_key``.

        Raises:
            InvalidInputError: Malformed API key
            InstanceNotFoundError: No instance registered for the key
        """
        validate_api_key(api_key)

        with self._lock:
            instance = self._instances.pop(api_key, None)
        if instance is None:
            raise InstanceNotFoundError()

        instance.close()
        logger.info(f"Deleted WeatherSDK for key {api_key[:6]}...")

    def close_all(self) -> int:
        """
        Close and unregister every instance.

        Returns:
            Number of instances closed
        """
        with self._lock:
            instances = list(self._instances.values())
            self._instances.clear()
        for instance in instances:
            instance.close()
        return len(instances)

    def __contains__(self, api_key: object) -> bool:
        with self._lock:
            return api_key in self._instances

    def __len__(self) -> int:
        with self._lock:
            return len(self._instances)


# Global registry instance
_registry: Optional[InstanceRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> InstanceRegistry:
    """Get or create the process-wide registry."""
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = InstanceRegistry()
        return _registry


def get_instance(api_key: Optional[str] = None, mode: Any = Mode.ON_DEMAND) -> WeatherSDK:
    """
    Get the process-wide instance for ``api_key``.

    Falls back to the OPENWEATHER_API_KEY setting when no key is given.
    """
    if api_key is None:
        api_key = settings.openweather_api_key
    return get_registry().get_instance(api_key, mode)


def delete_instance(api_key: str) -> None:
    """Delete the process-wide instance for ``api_key``."""
    get_registry().delete_instance(api_key)
