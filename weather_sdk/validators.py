"""
Input validation for API keys, modes and city names.

All failures raise InvalidInputError before any cache or network work.
"""
import re
from typing import Any

from .exceptions import InvalidInputError
from .models import Mode

API_KEY_PATTERN = re.compile(r"^[a-fA-F0-9]{32}$")


def _check_not_blank(value: Any, field_name: str) -> None:
    if value is None or not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field_name} cannot be null or empty")


def validate_api_key(api_key: Any) -> str:
    """Require a 32-character hexadecimal API key."""
    _check_not_blank(api_key, "API key")
    if not API_KEY_PATTERN.fullmatch(api_key):
        raise InvalidInputError(
            "Invalid API key format. Expected 32-character hexadecimal string."
        )
    return api_key


def validate_mode(mode: Any) -> Mode:
    """
    Coerce ``mode`` to a Mode member.

    Accepts a Mode or its string value ("on_demand", "polling"), case-insensitive.
    """
    if isinstance(mode, Mode):
        return mode
    if isinstance(mode, str):
        try:
            return Mode(mode.strip().lower())
        except ValueError:
            pass
    raise InvalidInputError(f"Invalid mode: {mode!r}")


def validate_city(city: Any) -> str:
    """Require a non-blank city name. The name is returned unchanged."""
    _check_not_blank(city, "City")
    return city
