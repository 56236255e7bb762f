"""
Data models for the weather SDK.

WeatherData mirrors the OpenWeatherMap "current weather" response. Every
field is optional because the service omits blocks it has no data for.
"""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel


class Mode(Enum):
    """SDK operating modes."""
    ON_DEMAND = "on_demand"   # refresh only on a miss or stale read
    POLLING = "polling"       # also refresh every cached city in the background


class Coord(BaseModel):
    lon: Optional[float] = None
    lat: Optional[float] = None


class WeatherItem(BaseModel):
    id: Optional[int] = None
    main: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None


class Main(BaseModel):
    """Temperature, pressure and humidity block."""
    temp: Optional[float] = None
    feels_like: Optional[float] = None
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    pressure: Optional[int] = None
    humidity: Optional[int] = None
    sea_level: Optional[int] = None
    grnd_level: Optional[int] = None


class Wind(BaseModel):
    speed: Optional[float] = None
    deg: Optional[int] = None
    gust: Optional[float] = None


class Clouds(BaseModel):
    all: Optional[int] = None


class Sys(BaseModel):
    type: Optional[int] = None
    id: Optional[int] = None
    country: Optional[str] = None
    sunrise: Optional[int] = None
    sunset: Optional[int] = None


class WeatherData(BaseModel):
    """Current weather for one city."""
    coord: Optional[Coord] = None
    weather: List[WeatherItem] = []
    base: Optional[str] = None
    main: Optional[Main] = None
    visibility: Optional[int] = None
    wind: Optional[Wind] = None
    clouds: Optional[Clouds] = None
    # Precipitation volume keyed by window, e.g. {"1h": 0.25}
    rain: Optional[Dict[str, float]] = None
    snow: Optional[Dict[str, float]] = None
    dt: Optional[int] = None
    sys: Optional[Sys] = None
    timezone: Optional[int] = None
    id: Optional[int] = None
    name: Optional[str] = None
    cod: Optional[int] = None

    @property
    def summary(self) -> Optional[str]:
        """Short description of the first weather condition, if any."""
        if not self.weather:
            return None
        return self.weather[0].description or self.weather[0].main
