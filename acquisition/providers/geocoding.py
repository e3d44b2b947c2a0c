"""OpenStreetMap Nominatim geocoding."""
from __future__ import annotations

from typing import Any, List, Optional

from .base import ProviderKind, WeatherProvider
from ..entities import CitySuggestion, Coordinates
from ..errors import NotFoundError, SchemaError
from ..executor import RequestExecutor


DEFAULT_USER_AGENT = "SkyCast/2.0 (weather acquisition pipeline)"


class NominatimGeocoder(WeatherProvider):
    kind = ProviderKind.NOMINATIM
    name = "nominatim"
    base_url = "https://nominatim.openstreetmap.org"

    def __init__(self, executor: RequestExecutor, base_url: Optional[str] = None, user_agent: str = DEFAULT_USER_AGENT) -> None:
        super().__init__(executor, base_url)
        self.user_agent = user_agent

    def search(self, query: str, limit: int = 10) -> List[CitySuggestion]:
        params = {"q": query, "format": "jsonv2", "accept-language": "en", "limit": limit}
        headers = {"Accept": "application/json", "Accept-Language": "en", "User-Agent": self.user_agent}
        payload = self._get_json("/search", params, headers=headers)
        if not isinstance(payload, list):
            raise SchemaError("nominatim search did not return a list")
        return [suggestion for suggestion in map(_parse_place, payload) if suggestion is not None]

    def geocode(self, query: str) -> CitySuggestion:
        results = self.search(query, limit=1)
        if not results:
            raise NotFoundError(f"nominatim found no match for query of length {len(query)}")
        self._log.info("Geocoded query to %s", results[0].display_name)
        return results[0]


def _parse_place(place: Any) -> Optional[CitySuggestion]:
    if not isinstance(place, dict):
        return None
    try:
        coordinates = Coordinates(float(place["lat"]), float(place["lon"]))
    except (KeyError, TypeError, ValueError):
        return None
    display_name = str(place.get("display_name") or place.get("name") or "")
    parts = [part.strip() for part in display_name.split(",") if part.strip()]
    name = str(place.get("name") or (parts[0] if parts else display_name))
    country = parts[-1] if len(parts) > 1 else None
    return CitySuggestion(name=name, country=country, coordinates=coordinates, display_name=display_name)


__all__ = ["NominatimGeocoder", "DEFAULT_USER_AGENT"]
