"""REST API views for weather information."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

from django.conf import settings
from rest_framework import exceptions, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from acquisition.config import PipelineConfig
from acquisition.errors import ErrorKind, WeatherError, user_message
from acquisition.services.weather import WeatherService
from backend.api.throttling import RATE_LIMIT_MESSAGE


logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PROTOCOL: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


@lru_cache(maxsize=1)
def get_weather_service() -> WeatherService:
    return WeatherService.from_config(PipelineConfig.from_settings(settings))


def error_response(exc: WeatherError) -> Response:
    code = ERROR_STATUS.get(exc.kind, status.HTTP_503_SERVICE_UNAVAILABLE)
    logger.info("Weather request failed with %s (%s)", exc.kind.value, code)
    return Response({"detail": user_message(exc)}, status=code)


def _location_params(request) -> Tuple[Optional[str], Optional[float], Optional[float]]:
    city = request.query_params.get("city")
    if city is not None:
        return city, None, None
    try:
        latitude = float(request.query_params["lat"])
        longitude = float(request.query_params["lon"])
    except KeyError:
        raise _BadRequest("city or lat and lon query parameters are required")
    except ValueError:
        raise _BadRequest("lat and lon must be valid floating point numbers")
    return None, latitude, longitude


class _BadRequest(Exception):
    pass


class _WeatherAPIView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, *args, **kwargs):  # noqa: D401
        try:
            payload = self.fetch(request)
        except _BadRequest as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except WeatherError as exc:
            return error_response(exc)
        return Response(payload, status=status.HTTP_200_OK)

    def fetch(self, request) -> Any:
        raise NotImplementedError

    def throttled(self, request, wait):
        raise exceptions.Throttled(wait=wait, detail=RATE_LIMIT_MESSAGE)


class WeatherView(_WeatherAPIView):
    """Current conditions for ``?city=`` or ``?lat=&lon=``."""

    def fetch(self, request) -> Dict[str, Any]:
        city, latitude, longitude = _location_params(request)
        snapshot = get_weather_service().get_current_weather(city=city, latitude=latitude, longitude=longitude)
        return snapshot.to_dict()


class ForecastView(_WeatherAPIView):
    def fetch(self, request) -> Dict[str, Any]:
        city, latitude, longitude = _location_params(request)
        forecast = get_weather_service().get_forecast(city=city, latitude=latitude, longitude=longitude)
        return forecast.to_dict()


class HistoricalView(_WeatherAPIView):
    """Daily history for ``?city=`` over the last ``?days=`` days (default 7)."""

    def fetch(self, request) -> Dict[str, Any]:
        city = request.query_params.get("city")
        if city is None:
            raise _BadRequest("city query parameter is required")
        try:
            days = int(request.query_params.get("days", 7))
        except ValueError:
            raise _BadRequest("days must be an integer")
        history = get_weather_service().get_historical_weather(city, days=days)
        return history.to_dict()


class CitySearchView(_WeatherAPIView):
    def fetch(self, request) -> Dict[str, Any]:
        query = request.query_params.get("q", "")
        suggestions = get_weather_service().search_cities(query)
        return {"results": [suggestion.to_dict() for suggestion in suggestions]}


class CitiesView(_WeatherAPIView):
    """Current conditions for several cities; ``?names=`` is comma separated."""

    def fetch(self, request) -> Dict[str, Any]:
        raw = request.query_params.get("names", "")
        names = [name.strip() for name in raw.split(",") if name.strip()]
        snapshots = get_weather_service().get_multiple_cities_weather(names or None)
        return {"results": [snapshot.to_dict() for snapshot in snapshots]}


__all__ = [
    "WeatherView",
    "ForecastView",
    "HistoricalView",
    "CitySearchView",
    "CitiesView",
    "get_weather_service",
    "error_response",
]
