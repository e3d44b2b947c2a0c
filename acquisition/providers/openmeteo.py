"""Open-Meteo archive API, the historical source."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict

from .base import ProviderKind, WeatherProvider
from ..entities import Coordinates


DAILY_VARIABLES = [
    "temperature_2m_max",
    "temperature_2m_min",
    "temperature_2m_mean",
    "precipitation_sum",
    "windspeed_10m_max",
    "relative_humidity_2m_mean",
    "weathercode",
]


class OpenMeteoArchiveProvider(WeatherProvider):
    kind = ProviderKind.OPEN_METEO
    name = "open-meteo"
    base_url = "https://archive-api.open-meteo.com/v1"

    def history(self, coordinates: Coordinates, start: date, end: date) -> Dict[str, Any]:
        params = {
            "latitude": coordinates.latitude,
            "longitude": coordinates.longitude,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "daily": ",".join(DAILY_VARIABLES),
            "timezone": "UTC",
        }
        return self._get_json("/archive", params)


__all__ = ["OpenMeteoArchiveProvider"]
