from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class LocationQuery:
    """A place name or a coordinate pair, never both."""

    name: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    def __post_init__(self) -> None:
        if (self.name is None) == (self.coordinates is None):
            raise ValueError("exactly one of name or coordinates must be provided")

    @classmethod
    def for_city(cls, name: str) -> "LocationQuery":
        return cls(name=name)

    @classmethod
    def for_coordinates(cls, latitude: float, longitude: float) -> "LocationQuery":
        return cls(coordinates=Coordinates(float(latitude), float(longitude)))

    @property
    def is_city(self) -> bool:
        return self.name is not None

    def describe(self) -> str:
        if self.name is not None:
            return self.name
        assert self.coordinates is not None
        return f"{self.coordinates.latitude:.4f},{self.coordinates.longitude:.4f}"


@dataclass(frozen=True)
class WeatherSnapshot:
    """Canonical current-weather representation.

    Units are fixed regardless of the provider:
    - temperature in Celsius, rounded to one decimal
    - pressure in hectopascal (hPa), integer
    - wind speed in metres per second (m/s), two decimals
    - precipitation in millimetres (mm), two decimals
    - humidity, cloud cover and precipitation probability in percent, integer
    - visibility in metres, integer
    """

    location_name: str
    temperature_c: float
    country_code: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    feels_like_c: Optional[float] = None
    humidity_pct: Optional[int] = None
    pressure_hpa: Optional[int] = None
    wind_speed_ms: Optional[float] = None
    wind_direction_deg: Optional[int] = None
    cloud_cover_pct: Optional[int] = None
    precipitation_mm: Optional[float] = None
    precipitation_probability_pct: Optional[int] = None
    condition: Optional[str] = None
    icon: Optional[str] = None
    temp_min_c: Optional[float] = None
    temp_max_c: Optional[float] = None
    visibility_m: Optional[int] = None
    uv_index: Optional[float] = None
    sunrise: Optional[datetime] = None
    sunset: Optional[datetime] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))
    source: str = "unknown"
    is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["timestamp"] = _isoformat(self.timestamp)
        for name in ("sunrise", "sunset"):
            value = getattr(self, name)
            payload[name] = _isoformat(value) if value is not None else None
        return payload


@dataclass(frozen=True)
class ForecastEntry:
    timestamp: datetime
    temperature_c: float
    temp_min_c: Optional[float] = None
    temp_max_c: Optional[float] = None
    feels_like_c: Optional[float] = None
    humidity_pct: Optional[int] = None
    pressure_hpa: Optional[int] = None
    wind_speed_ms: Optional[float] = None
    precipitation_mm: Optional[float] = None
    precipitation_probability_pct: Optional[int] = None
    condition: Optional[str] = None
    icon: Optional[str] = None


@dataclass(frozen=True)
class ForecastSnapshot:
    location_name: str
    entries: Tuple[ForecastEntry, ...]
    country_code: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    source: str = "unknown"
    is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["entries"] = [
            {**asdict(entry), "timestamp": _isoformat(entry.timestamp)} for entry in self.entries
        ]
        return payload


@dataclass(frozen=True)
class HistoricalDay:
    day: date
    temp_avg_c: float
    temp_min_c: Optional[float] = None
    temp_max_c: Optional[float] = None
    humidity_pct: Optional[int] = None
    precipitation_mm: Optional[float] = None
    wind_speed_ms: Optional[float] = None
    condition: Optional[str] = None
    icon: Optional[str] = None


@dataclass(frozen=True)
class HistoricalSnapshot:
    location_name: str
    days: Tuple[HistoricalDay, ...]
    country_code: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    source: str = "unknown"
    is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["days"] = [{**asdict(item), "day": item.day.isoformat()} for item in self.days]
        return payload


@dataclass(frozen=True)
class CitySuggestion:
    name: str
    country: Optional[str]
    coordinates: Coordinates
    display_name: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _isoformat(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


__all__ = [
    "Coordinates",
    "LocationQuery",
    "WeatherSnapshot",
    "ForecastEntry",
    "ForecastSnapshot",
    "HistoricalDay",
    "HistoricalSnapshot",
    "CitySuggestion",
]
