"""Configuration management using pydantic-settings."""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """SDK settings loaded from environment variables."""

    # OpenWeatherMap configuration
    openweather_api_key: Optional[str] = None
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5/weather"

    # HTTP client
    request_timeout_seconds: float = 10.0
    max_concurrent_requests: int = 10

    # Cache settings
    cache_max_entries: int = 10
    cache_ttl_seconds: float = 600          # 10 minutes
    cache_failures: bool = True             # keep failed fetches until they go stale
    coalesce_requests: bool = False         # share in-flight fetches per city

    # Polling mode
    polling_interval_seconds: float = 300   # 5 minutes

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
