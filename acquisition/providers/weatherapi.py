"""WeatherAPI.com provider, used as the secondary source."""
from __future__ import annotations

from typing import Any, Dict, Optional

from requests import Response

from .base import ProviderKind, WeatherProvider
from ..entities import LocationQuery
from ..executor import RequestExecutor

# WeatherAPI answers unknown locations with HTTP 400 and this error code.
NO_MATCHING_LOCATION = 1006


def _no_matching_location(response: Response) -> bool:
    try:
        payload = response.json()
    except ValueError:
        return False
    error = payload.get("error") if isinstance(payload, dict) else None
    return isinstance(error, dict) and error.get("code") == NO_MATCHING_LOCATION


class WeatherApiProvider(WeatherProvider):
    kind = ProviderKind.WEATHERAPI
    name = "weatherapi"
    base_url = "https://api.weatherapi.com/v1"
    forecast_days = 3

    def __init__(self, executor: RequestExecutor, *, api_key: str, base_url: Optional[str] = None) -> None:
        super().__init__(executor, base_url)
        self.api_key = api_key

    def current(self, query: LocationQuery) -> Dict[str, Any]:
        return self._get_json("/current.json", self._params(query), not_found=_no_matching_location)

    def forecast(self, query: LocationQuery) -> Dict[str, Any]:
        params = self._params(query)
        params["days"] = self.forecast_days
        return self._get_json("/forecast.json", params, not_found=_no_matching_location)

    def _params(self, query: LocationQuery) -> Dict[str, object]:
        if query.coordinates is not None:
            location = f"{query.coordinates.latitude},{query.coordinates.longitude}"
        else:
            location = query.name or ""
        return {"key": self.api_key, "q": location, "aqi": "no"}


__all__ = ["WeatherApiProvider"]
