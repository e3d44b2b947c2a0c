"""OpenWeatherMap provider (primary source for current weather and forecast)."""
from __future__ import annotations

from typing import Any, Dict, Optional

from .base import ProviderKind, WeatherProvider
from ..entities import LocationQuery
from ..executor import RequestExecutor


class OpenWeatherProvider(WeatherProvider):
    kind = ProviderKind.OPENWEATHER
    name = "openweather"
    base_url = "https://api.openweathermap.org/data/2.5"
    forecast_points = 40

    def __init__(self, executor: RequestExecutor, *, api_key: str, base_url: Optional[str] = None, lang: str = "en") -> None:
        super().__init__(executor, base_url)
        self.api_key = api_key
        self.lang = lang

    def current(self, query: LocationQuery) -> Dict[str, Any]:
        return self._get_json("/weather", self._params(query))

    def forecast(self, query: LocationQuery) -> Dict[str, Any]:
        params = self._params(query)
        params["cnt"] = self.forecast_points
        return self._get_json("/forecast", params)

    def _params(self, query: LocationQuery) -> Dict[str, object]:
        params: Dict[str, object] = {"appid": self.api_key, "units": "metric", "lang": self.lang}
        if query.coordinates is not None:
            params["lat"] = query.coordinates.latitude
            params["lon"] = query.coordinates.longitude
        else:
            params["q"] = query.name
        return params


__all__ = ["OpenWeatherProvider"]
