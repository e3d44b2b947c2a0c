"""Canonical condition vocabulary.

Conditions use OpenWeatherMap's description/icon vocabulary; other providers'
codes are mapped onto it here.  Icons are stored without the day/night suffix
and completed with :func:`icon_code`.
"""
from __future__ import annotations

import enum
from typing import Dict, Optional, Tuple

CLOUDY_THRESHOLD_PCT = 50


class ConditionFamily(str, enum.Enum):
    CLEAR = "clear"
    CLOUDS = "clouds"
    FOG = "fog"
    RAIN = "rain"
    STORM = "storm"
    SNOW = "snow"
    UNKNOWN = "unknown"


def _expand(table: Dict[Tuple[int, ...], Tuple[str, str]]) -> Dict[int, Tuple[str, str]]:
    return {code: value for codes, value in table.items() for code in codes}


# WeatherAPI.com condition codes.
WEATHERAPI_CONDITIONS = _expand(
    {
        (1000,): ("clear sky", "01"),
        (1003,): ("few clouds", "02"),
        (1006,): ("scattered clouds", "03"),
        (1009,): ("overcast clouds", "04"),
        (1030,): ("mist", "50"),
        (1135, 1147): ("fog", "50"),
        (1063, 1180, 1183): ("light rain", "10"),
        (1186, 1189): ("moderate rain", "10"),
        (1192, 1195): ("heavy intensity rain", "10"),
        (1072, 1150, 1153, 1168, 1171): ("drizzle", "09"),
        (1240, 1243, 1246): ("shower rain", "09"),
        (1066, 1210, 1213): ("light snow", "13"),
        (1114, 1117, 1216, 1219, 1222, 1225, 1255, 1258): ("snow", "13"),
        (1069, 1198, 1201, 1204, 1207, 1237, 1249, 1252, 1261, 1264): ("sleet", "13"),
        (1087, 1273, 1276, 1279, 1282): ("thunderstorm", "11"),
    }
)

# WMO weather interpretation codes used by Open-Meteo.
WMO_CONDITIONS = _expand(
    {
        (0,): ("clear sky", "01"),
        (1,): ("few clouds", "02"),
        (2,): ("scattered clouds", "03"),
        (3,): ("overcast clouds", "04"),
        (45, 48): ("fog", "50"),
        (51, 53, 55, 56, 57): ("drizzle", "09"),
        (61,): ("light rain", "10"),
        (63,): ("moderate rain", "10"),
        (65,): ("heavy intensity rain", "10"),
        (80, 81, 82): ("shower rain", "09"),
        (66, 67): ("freezing rain", "13"),
        (71, 73, 75, 77, 85, 86): ("snow", "13"),
        (95, 96, 99): ("thunderstorm", "11"),
    }
)

_FAMILY_KEYWORDS = (
    (ConditionFamily.STORM, ("thunder", "storm")),
    (ConditionFamily.SNOW, ("snow", "sleet", "blizzard", "ice", "freezing")),
    (ConditionFamily.RAIN, ("rain", "drizzle", "shower")),
    (ConditionFamily.FOG, ("fog", "mist", "haze", "smoke")),
    (ConditionFamily.CLOUDS, ("cloud", "overcast")),
    (ConditionFamily.CLEAR, ("clear", "sun", "fair")),
)


def condition_family(condition: Optional[str]) -> ConditionFamily:
    text = (condition or "").lower()
    if not text:
        return ConditionFamily.UNKNOWN
    for family, keywords in _FAMILY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return family
    return ConditionFamily.UNKNOWN


def from_cloud_cover(cloud_cover_pct: Optional[float]) -> Tuple[str, str]:
    """Condition and icon base for providers that only report cloud cover."""
    if cloud_cover_pct is not None and cloud_cover_pct > CLOUDY_THRESHOLD_PCT:
        return "cloudy", "04"
    return "clear sky", "01"


def icon_code(base: str, is_day: bool = True) -> str:
    return f"{base}{'d' if is_day else 'n'}"


__all__ = [
    "ConditionFamily",
    "WEATHERAPI_CONDITIONS",
    "WMO_CONDITIONS",
    "CLOUDY_THRESHOLD_PCT",
    "condition_family",
    "from_cloud_cover",
    "icon_code",
]
