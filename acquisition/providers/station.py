"""Internal weather-station aggregator.

Serves the compact ``location`` + ``coord`` shape used by the project's own
collectors; it carries no condition text, only cloud cover.
"""
from __future__ import annotations

from typing import Any, Dict

from .base import ProviderKind, WeatherProvider
from ..entities import LocationQuery


class StationProvider(WeatherProvider):
    kind = ProviderKind.STATION
    name = "station"

    def current(self, query: LocationQuery) -> Dict[str, Any]:
        if query.coordinates is not None:
            params: Dict[str, object] = {"lat": query.coordinates.latitude, "lon": query.coordinates.longitude}
        else:
            params = {"city": query.name}
        return self._get_json("/weather", params)


__all__ = ["StationProvider"]
