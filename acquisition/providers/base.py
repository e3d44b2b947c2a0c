from __future__ import annotations

import enum
import logging
from typing import Any, Callable, Dict, Optional

from requests import Response

from ..entities import LocationQuery
from ..errors import SchemaError
from ..executor import RequestExecutor, RequestSpec


class ProviderKind(str, enum.Enum):
    """Upstream response schemas the pipeline knows how to read."""

    STATION = "station"
    OPENWEATHER = "openweather"
    WEATHERAPI = "weatherapi"
    OPEN_METEO = "open-meteo"
    NOMINATIM = "nominatim"


class WeatherProvider:
    """Base class for HTTP providers; requests go through a shared executor."""

    kind: ProviderKind
    name: str = "provider"
    base_url: str = ""

    def __init__(self, executor: RequestExecutor, base_url: Optional[str] = None) -> None:
        self.executor = executor
        self.base_url = (base_url or self.base_url).rstrip("/")
        self._log = logging.getLogger(self.__class__.__name__)

    def current(self, query: LocationQuery) -> Dict[str, Any]:
        raise NotImplementedError

    def forecast(self, query: LocationQuery) -> Dict[str, Any]:
        raise NotImplementedError

    def supports_forecast(self) -> bool:
        return type(self).forecast is not WeatherProvider.forecast

    # helpers ------------------------------------------------------------
    def _get_json(
        self,
        path: str,
        params: Dict[str, object],
        headers: Optional[Dict[str, str]] = None,
        not_found: Optional[Callable[[Response], bool]] = None,
    ) -> Any:
        spec = RequestSpec(
            url=f"{self.base_url}{path}",
            params=params,
            headers=headers or {},
            provider=self.name,
            not_found=not_found,
        )
        response = self.executor.execute(spec)
        try:
            return response.json()
        except ValueError as exc:
            self._log.error("Failed to decode JSON from %s", self.name)
            raise SchemaError(f"{self.name} returned invalid json") from exc


__all__ = ["ProviderKind", "WeatherProvider"]
