"""Management command to fetch weather using the same stack as the API."""
from __future__ import annotations

import json
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from acquisition.errors import WeatherError, user_message
from backend.api.views import get_weather_service


class Command(BaseCommand):
    help = "Fetch current weather, forecast or history for a city or coordinates"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("--lat", type=float, help="Latitude")
        parser.add_argument("--lon", type=float, help="Longitude")
        parser.add_argument("--city", type=str, help="City name")
        parser.add_argument(
            "--kind",
            choices=("current", "forecast", "historical"),
            default="current",
            help="What to fetch (historical needs --city)",
        )
        parser.add_argument("--days", type=int, default=7, help="Days of history")

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        city = options.get("city")
        latitude = options.get("lat")
        longitude = options.get("lon")
        kind = options.get("kind") or "current"

        if not city and (latitude is None or longitude is None):
            raise CommandError("--city or both --lat and --lon are required")

        service = get_weather_service()
        try:
            if kind == "historical":
                if not city:
                    raise CommandError("--city is required for historical data")
                result = service.get_historical_weather(city, days=options.get("days") or 7)
            elif kind == "forecast":
                result = service.get_forecast(city=city, latitude=latitude, longitude=longitude)
            else:
                result = service.get_current_weather(city=city, latitude=latitude, longitude=longitude)
        except WeatherError as exc:
            raise CommandError(user_message(exc)) from exc

        self.stdout.write(json.dumps(result.to_dict()))
