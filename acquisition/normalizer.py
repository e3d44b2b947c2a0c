"""Map provider payloads onto the canonical snapshot types.

Each provider kind declares the paths its fields live under, in priority
order; the first path holding a value wins.  Dispatch happens on an explicit
:class:`~acquisition.providers.base.ProviderKind`, and only when the kind is
unknown is it guessed from the payload's top-level sections.
"""
from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .conditions import WEATHERAPI_CONDITIONS, WMO_CONDITIONS, from_cloud_cover, icon_code
from .entities import (
    Coordinates,
    ForecastEntry,
    ForecastSnapshot,
    HistoricalDay,
    HistoricalSnapshot,
    WeatherSnapshot,
)
from .errors import SchemaError
from .providers.base import ProviderKind


logger = logging.getLogger(__name__)

NEUTRAL_TEMPERATURE_C = 20.0
UNKNOWN_LOCATION = "Unknown location"

# Full country names reported by providers that do not return ISO codes.
COUNTRY_CODES = {
    "australia": "AU",
    "brazil": "BR",
    "canada": "CA",
    "china": "CN",
    "egypt": "EG",
    "france": "FR",
    "germany": "DE",
    "india": "IN",
    "japan": "JP",
    "kenya": "KE",
    "mexico": "MX",
    "russia": "RU",
    "singapore": "SG",
    "spain": "ES",
    "united arab emirates": "AE",
    "united kingdom": "GB",
    "united states of america": "US",
    "usa united states of america": "US",
}

CURRENT_PATHS: Dict[ProviderKind, Dict[str, Sequence[str]]] = {
    ProviderKind.STATION: {
        "location_name": ("location.name", "name"),
        "country": ("location.country", "country"),
        "latitude": ("coord.lat",),
        "longitude": ("coord.lon",),
        "temperature": ("temp", "temperature"),
        "feels_like": ("feels_like", "feelsLike", "temp"),
        "humidity": ("humidity",),
        "pressure": ("pressure",),
        "wind_speed_ms": ("wind", "windSpeed"),
        "wind_direction": ("wind_deg", "windDirection"),
        "cloud_cover": ("cloud", "cloudCover"),
        "precipitation": ("precipitation", "snow"),
        "temp_min": ("temp_min", "tempMin"),
        "temp_max": ("temp_max", "tempMax"),
        "visibility": ("visibility",),
        "uv_index": ("uv", "uvIndex"),
        "sunrise": ("sunrise",),
        "sunset": ("sunset",),
        "timestamp": ("dt", "timestamp"),
    },
    ProviderKind.OPENWEATHER: {
        "location_name": ("name",),
        "country": ("sys.country",),
        "latitude": ("coord.lat",),
        "longitude": ("coord.lon",),
        "temperature": ("main.temp",),
        "feels_like": ("main.feels_like",),
        "humidity": ("main.humidity",),
        "pressure": ("main.pressure",),
        "wind_speed_ms": ("wind.speed",),
        "wind_direction": ("wind.deg",),
        "cloud_cover": ("clouds.all",),
        "precipitation": ("rain.1h", "snow.1h", "rain.3h", "snow.3h"),
        "condition": ("weather.0.description", "weather.0.main"),
        "icon": ("weather.0.icon",),
        "temp_min": ("main.temp_min",),
        "temp_max": ("main.temp_max",),
        "visibility": ("visibility",),
        "sunrise": ("sys.sunrise",),
        "sunset": ("sys.sunset",),
        "timestamp": ("dt",),
    },
    ProviderKind.WEATHERAPI: {
        "location_name": ("location.name",),
        "country": ("location.country",),
        "latitude": ("location.lat",),
        "longitude": ("location.lon",),
        "temperature": ("current.temp_c",),
        "feels_like": ("current.feelslike_c",),
        "humidity": ("current.humidity",),
        "pressure": ("current.pressure_mb",),
        "wind_speed_kph": ("current.wind_kph",),
        "wind_direction": ("current.wind_degree",),
        "cloud_cover": ("current.cloud",),
        "precipitation": ("current.precip_mm",),
        "condition_code": ("current.condition.code",),
        "condition": ("current.condition.text",),
        "is_day": ("current.is_day",),
        "visibility_km": ("current.vis_km",),
        "uv_index": ("current.uv",),
        "timestamp": ("current.last_updated_epoch",),
    },
}

# Sections that must be present for a payload to count as the given kind.
REQUIRED_SECTIONS = {
    ProviderKind.STATION: ("coord",),
    ProviderKind.OPENWEATHER: ("main",),
    ProviderKind.WEATHERAPI: ("current",),
}


class ResponseNormalizer:
    """Turn any supported provider payload into canonical snapshots."""

    def normalize(
        self,
        payload: Any,
        kind: Optional[ProviderKind] = None,
        *,
        location_hint: Optional[str] = None,
    ) -> WeatherSnapshot:
        if not isinstance(payload, Mapping):
            raise SchemaError("payload is not a JSON object")
        kind = kind or detect_kind(payload)
        if kind not in CURRENT_PATHS:
            raise SchemaError(f"no current-weather schema for {kind.value}")
        _require_sections(payload, kind)
        fields = _extract(payload, CURRENT_PATHS[kind])

        temperature = _round(fields.get("temperature"), 1)
        if temperature is None:
            logger.warning("%s payload has no temperature, using placeholder", kind.value)
            temperature = NEUTRAL_TEMPERATURE_C

        wind_speed = fields.get("wind_speed_ms")
        if wind_speed is None and fields.get("wind_speed_kph") is not None:
            wind_speed = kph_to_ms(fields["wind_speed_kph"])

        condition, icon = self._condition(kind, fields)
        precipitation = fields.get("precipitation")
        if precipitation is None and kind is ProviderKind.OPENWEATHER:
            precipitation = 0.0

        visibility = _float(fields.get("visibility"))
        if visibility is None:
            visibility_km = _float(fields.get("visibility_km"))
            visibility = visibility_km * 1000 if visibility_km is not None else None

        return WeatherSnapshot(
            location_name=_text(fields.get("location_name")) or location_hint or UNKNOWN_LOCATION,
            country_code=country_code(fields.get("country")),
            coordinates=_coordinates(fields.get("latitude"), fields.get("longitude")),
            temperature_c=temperature,
            feels_like_c=_round(fields.get("feels_like"), 1),
            humidity_pct=_int(fields.get("humidity")),
            pressure_hpa=_int(fields.get("pressure")),
            wind_speed_ms=_round(wind_speed, 2),
            wind_direction_deg=_int(fields.get("wind_direction")),
            cloud_cover_pct=_int(fields.get("cloud_cover")),
            precipitation_mm=_round(precipitation, 2),
            condition=condition,
            icon=icon,
            temp_min_c=_round(fields.get("temp_min"), 1),
            temp_max_c=_round(fields.get("temp_max"), 1),
            visibility_m=_int(visibility),
            uv_index=_round(fields.get("uv_index"), 1),
            sunrise=_optional_timestamp(fields.get("sunrise")),
            sunset=_optional_timestamp(fields.get("sunset")),
            timestamp=_timestamp(fields.get("timestamp")),
            source=kind.value,
        )

    def normalize_forecast(self, payload: Any, kind: ProviderKind) -> ForecastSnapshot:
        if not isinstance(payload, Mapping):
            raise SchemaError("payload is not a JSON object")
        if kind is ProviderKind.OPENWEATHER:
            return self._openweather_forecast(payload)
        if kind is ProviderKind.WEATHERAPI:
            return self._weatherapi_forecast(payload)
        raise SchemaError(f"no forecast schema for {kind.value}")

    def normalize_history(
        self,
        payload: Any,
        *,
        location_name: str,
        country_code: Optional[str] = None,
        coordinates: Optional[Coordinates] = None,
    ) -> HistoricalSnapshot:
        """Normalize an Open-Meteo archive payload with daily series."""
        daily = payload.get("daily") if isinstance(payload, Mapping) else None
        if not isinstance(daily, Mapping) or not daily.get("time"):
            raise SchemaError("missing daily history")
        days: List[HistoricalDay] = []
        for idx, day_str in enumerate(daily["time"]):
            try:
                day = date.fromisoformat(str(day_str))
            except ValueError:
                logger.warning("Skipping history entry with malformed date %r", day_str)
                continue
            t_max = _safe_index(daily.get("temperature_2m_max"), idx)
            t_min = _safe_index(daily.get("temperature_2m_min"), idx)
            t_mean = _safe_index(daily.get("temperature_2m_mean"), idx)
            if t_mean is None:
                t_mean = _average([t_min, t_max])
            if t_mean is None:
                continue
            code = _int(_safe_index(daily.get("weathercode"), idx))
            condition, icon_base = WMO_CONDITIONS.get(code, (None, None)) if code is not None else (None, None)
            days.append(
                HistoricalDay(
                    day=day,
                    temp_avg_c=round(t_mean, 1),
                    temp_min_c=_round(t_min, 1),
                    temp_max_c=_round(t_max, 1),
                    humidity_pct=_int(_safe_index(daily.get("relative_humidity_2m_mean"), idx)),
                    precipitation_mm=_round(_safe_index(daily.get("precipitation_sum"), idx), 2),
                    wind_speed_ms=_round(kph_to_ms(_safe_index(daily.get("windspeed_10m_max"), idx)), 2),
                    condition=condition,
                    icon=icon_code(icon_base) if icon_base else None,
                )
            )
        if not days:
            raise SchemaError("history contains no usable days")
        return HistoricalSnapshot(
            location_name=location_name,
            country_code=country_code,
            coordinates=coordinates or _coordinates(payload.get("latitude"), payload.get("longitude")),
            days=tuple(days),
            source=ProviderKind.OPEN_METEO.value,
        )

    # helpers ------------------------------------------------------------
    def _condition(self, kind: ProviderKind, fields: Mapping[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        if kind is ProviderKind.OPENWEATHER:
            return _lower(fields.get("condition")), _text(fields.get("icon"))
        if kind is ProviderKind.WEATHERAPI:
            is_day = fields.get("is_day") != 0
            mapped = WEATHERAPI_CONDITIONS.get(_int(fields.get("condition_code")) or -1)
            if mapped is not None:
                return mapped[0], icon_code(mapped[1], is_day)
            return _lower(fields.get("condition")), None
        condition, base = from_cloud_cover(_float(fields.get("cloud_cover")))
        return condition, icon_code(base)

    def _openweather_forecast(self, payload: Mapping[str, Any]) -> ForecastSnapshot:
        items = payload.get("list")
        if not isinstance(items, list) or not items:
            raise SchemaError("missing forecast list")
        city = payload.get("city") or {}
        entries = []
        for item in items:
            if not isinstance(item, Mapping):
                continue
            temperature = _round(_path(item, "main.temp"), 1)
            if temperature is None:
                continue
            pop = _float(item.get("pop"))
            entries.append(
                ForecastEntry(
                    timestamp=_timestamp(item.get("dt")),
                    temperature_c=temperature,
                    temp_min_c=_round(_path(item, "main.temp_min"), 1),
                    temp_max_c=_round(_path(item, "main.temp_max"), 1),
                    feels_like_c=_round(_path(item, "main.feels_like"), 1),
                    humidity_pct=_int(_path(item, "main.humidity")),
                    pressure_hpa=_int(_path(item, "main.pressure")),
                    wind_speed_ms=_round(_path(item, "wind.speed"), 2),
                    precipitation_mm=_round(_first(item, ("rain.3h", "snow.3h")) or 0.0, 2),
                    precipitation_probability_pct=_int(pop * 100) if pop is not None else None,
                    condition=_lower(_first(item, ("weather.0.description", "weather.0.main"))),
                    icon=_text(_path(item, "weather.0.icon")),
                )
            )
        if not entries:
            raise SchemaError("forecast list contains no usable entries")
        return ForecastSnapshot(
            location_name=_text(city.get("name")) or UNKNOWN_LOCATION,
            country_code=country_code(city.get("country")),
            coordinates=_coordinates(_path(city, "coord.lat"), _path(city, "coord.lon")),
            entries=tuple(entries),
            source=ProviderKind.OPENWEATHER.value,
        )

    def _weatherapi_forecast(self, payload: Mapping[str, Any]) -> ForecastSnapshot:
        days = _path(payload, "forecast.forecastday")
        if not isinstance(days, list) or not days:
            raise SchemaError("missing forecastday list")
        entries = []
        for item in days:
            if not isinstance(item, Mapping):
                continue
            day = item.get("day") or {}
            temperature = _round(day.get("avgtemp_c"), 1)
            if temperature is None:
                continue
            mapped = WEATHERAPI_CONDITIONS.get(_int(_path(day, "condition.code")) or -1)
            entries.append(
                ForecastEntry(
                    timestamp=_timestamp(item.get("date_epoch") or item.get("date")),
                    temperature_c=temperature,
                    temp_min_c=_round(day.get("mintemp_c"), 1),
                    temp_max_c=_round(day.get("maxtemp_c"), 1),
                    humidity_pct=_int(day.get("avghumidity")),
                    wind_speed_ms=_round(kph_to_ms(day.get("maxwind_kph")), 2),
                    precipitation_mm=_round(day.get("totalprecip_mm"), 2),
                    precipitation_probability_pct=_int(day.get("daily_chance_of_rain")),
                    condition=mapped[0] if mapped else _lower(_path(day, "condition.text")),
                    icon=icon_code(mapped[1]) if mapped else None,
                )
            )
        if not entries:
            raise SchemaError("forecastday list contains no usable entries")
        location = payload.get("location") or {}
        return ForecastSnapshot(
            location_name=_text(location.get("name")) or UNKNOWN_LOCATION,
            country_code=country_code(location.get("country")),
            coordinates=_coordinates(location.get("lat"), location.get("lon")),
            entries=tuple(entries),
            source=ProviderKind.WEATHERAPI.value,
        )


def detect_kind(payload: Mapping[str, Any]) -> ProviderKind:
    if isinstance(payload.get("location"), Mapping) and isinstance(payload.get("coord"), Mapping):
        return ProviderKind.STATION
    if isinstance(payload.get("main"), Mapping):
        return ProviderKind.OPENWEATHER
    if isinstance(payload.get("current"), Mapping):
        return ProviderKind.WEATHERAPI
    raise SchemaError("unrecognised payload shape")


def country_code(value: Any) -> Optional[str]:
    text = _text(value)
    if not text:
        return None
    if len(text) == 2 and text.isalpha():
        return text.upper()
    return COUNTRY_CODES.get(" ".join(text.lower().split()))


def kph_to_ms(value: Any) -> Optional[float]:
    number = _float(value)
    if number is None:
        return None
    return round(number / 3.6, 2)


def _require_sections(payload: Mapping[str, Any], kind: ProviderKind) -> None:
    for section in REQUIRED_SECTIONS.get(kind, ()):
        if not isinstance(payload.get(section), Mapping):
            raise SchemaError(f"{kind.value} payload is missing '{section}'")


def _extract(payload: Mapping[str, Any], table: Mapping[str, Sequence[str]]) -> Dict[str, Any]:
    return {name: _first(payload, paths) for name, paths in table.items()}


def _first(payload: Any, paths: Sequence[str]) -> Any:
    for path in paths:
        value = _path(payload, path)
        if value is not None:
            return value
    return None


def _path(payload: Any, path: str) -> Any:
    current = payload
    for part in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def _float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _round(value: Any, digits: int) -> Optional[float]:
    number = _float(value)
    if number is None:
        return None
    return round(number, digits)


def _int(value: Any) -> Optional[int]:
    number = _float(value)
    if number is None:
        return None
    return int(round(number))


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _lower(value: Any) -> Optional[str]:
    text = _text(value)
    return text.lower() if text else None


def _coordinates(latitude: Any, longitude: Any) -> Optional[Coordinates]:
    lat, lon = _float(latitude), _float(longitude)
    if lat is None or lon is None:
        return None
    return Coordinates(round(lat, 4), round(lon, 4))


def _timestamp(value: Any) -> datetime:
    return _optional_timestamp(value) or datetime.now(tz=timezone.utc)


def _optional_timestamp(value: Any) -> Optional[datetime]:
    """Parse epoch seconds or ISO text; ``None`` when absent or out of range."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(int(value), tz=timezone.utc)
        except (OverflowError, ValueError, OSError):
            logger.warning("Ignoring out-of-range timestamp %r", value)
            return None
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _safe_index(values: Any, index: int) -> Optional[float]:
    try:
        value = values[index]
    except (IndexError, TypeError, KeyError):
        return None
    return _float(value)


def _average(values: List[Optional[float]]) -> Optional[float]:
    filtered = [v for v in values if v is not None]
    if not filtered:
        return None
    return sum(filtered) / len(filtered)


__all__ = [
    "ResponseNormalizer",
    "detect_kind",
    "country_code",
    "kph_to_ms",
    "NEUTRAL_TEMPERATURE_C",
    "UNKNOWN_LOCATION",
]
