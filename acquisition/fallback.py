"""Plausible stand-in data for when every provider has failed.

Values are random but always inside the ranges declared below, and every
snapshot produced here has ``is_fallback=True`` so callers and the cache can
tell it apart from real observations.
"""
from __future__ import annotations

import logging
import math
import random
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from .conditions import icon_code
from .entities import (
    ForecastEntry,
    ForecastSnapshot,
    HistoricalDay,
    HistoricalSnapshot,
    LocationQuery,
    WeatherSnapshot,
)
from .normalizer import UNKNOWN_LOCATION


logger = logging.getLogger(__name__)

FALLBACK_SOURCE = "fallback"

# Temperature ranges (Celsius) by absolute latitude band.
TROPICAL_RANGE = (22.0, 32.0)
TEMPERATE_RANGE = (5.0, 25.0)
POLAR_RANGE = (-20.0, 5.0)
DEFAULT_RANGE = (10.0, 30.0)

HUMIDITY_RANGE = (40, 80)
PRESSURE_RANGE = (1000, 1030)
WIND_SPEED_RANGE_MS = (1.4, 5.6)
FORECAST_DAYS = 5

CONDITIONS: Tuple[Tuple[str, str, Tuple[int, int]], ...] = (
    ("clear sky", "01", (0, 10)),
    ("few clouds", "02", (11, 25)),
    ("scattered clouds", "03", (26, 50)),
    ("light rain", "10", (60, 100)),
)


def temperature_range(query: Optional[LocationQuery]) -> Tuple[float, float]:
    if query is None or query.coordinates is None:
        return DEFAULT_RANGE
    latitude = abs(query.coordinates.latitude)
    if latitude < 23.5:
        return TROPICAL_RANGE
    if latitude < 60.0:
        return TEMPERATE_RANGE
    return POLAR_RANGE


class FallbackSynthesizer:
    def __init__(self, rng: Optional[random.Random] = None, clock=None) -> None:
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(tz=timezone.utc))

    def synthesize(self, hint: Optional[LocationQuery]) -> WeatherSnapshot:
        logger.warning("Generating fallback weather for %s", hint.describe() if hint else UNKNOWN_LOCATION)
        low, high = temperature_range(hint)
        temperature = round(self._rng.uniform(low, high), 1)
        condition, icon_base, clouds = self._rng.choice(CONDITIONS)
        return WeatherSnapshot(
            location_name=_name(hint),
            coordinates=hint.coordinates if hint else None,
            temperature_c=temperature,
            feels_like_c=round(temperature - self._rng.uniform(0.0, 2.0), 1),
            humidity_pct=self._rng.randint(*HUMIDITY_RANGE),
            pressure_hpa=self._rng.randint(*PRESSURE_RANGE),
            wind_speed_ms=round(self._rng.uniform(*WIND_SPEED_RANGE_MS), 2),
            wind_direction_deg=self._rng.randint(0, 359),
            cloud_cover_pct=self._rng.randint(*clouds),
            precipitation_mm=round(self._rng.uniform(0.2, 2.0), 2) if icon_base == "10" else 0.0,
            condition=condition,
            icon=icon_code(icon_base),
            timestamp=self._clock(),
            source=FALLBACK_SOURCE,
            is_fallback=True,
        )

    def synthesize_forecast(self, hint: Optional[LocationQuery], days: int = FORECAST_DAYS) -> ForecastSnapshot:
        logger.warning("Generating fallback forecast for %s", hint.describe() if hint else UNKNOWN_LOCATION)
        low, high = temperature_range(hint)
        start = self._clock().replace(hour=12, minute=0, second=0, microsecond=0)
        entries = []
        for offset in range(days):
            temperature = round(self._rng.uniform(low, high), 1)
            condition, icon_base, _ = self._rng.choice(CONDITIONS)
            entries.append(
                ForecastEntry(
                    timestamp=start + timedelta(days=offset),
                    temperature_c=temperature,
                    temp_min_c=round(max(low, temperature - 3.0), 1),
                    temp_max_c=round(min(high, temperature + 3.0), 1),
                    humidity_pct=self._rng.randint(*HUMIDITY_RANGE),
                    precipitation_probability_pct=self._rng.randint(0, 20) if icon_base != "10" else self._rng.randint(50, 90),
                    condition=condition,
                    icon=icon_code(icon_base),
                )
            )
        return ForecastSnapshot(
            location_name=_name(hint),
            coordinates=hint.coordinates if hint else None,
            entries=tuple(entries),
            source=FALLBACK_SOURCE,
            is_fallback=True,
        )

    def synthesize_history(
        self,
        hint: Optional[LocationQuery],
        days: int,
        base: Optional[WeatherSnapshot] = None,
    ) -> HistoricalSnapshot:
        """Build ``days`` of history oscillating around a base temperature.

        The base is the current snapshot when one is known, otherwise the middle
        of the hint's temperature range.
        """
        logger.warning("Generating fallback history for %s", hint.describe() if hint else UNKNOWN_LOCATION)
        low, high = temperature_range(hint)
        base_temp = base.temperature_c if base is not None else (low + high) / 2
        today = self._clock().date()
        history = []
        for index in range(days):
            variation = math.sin(index) * 5
            condition = base.condition if base is not None and base.condition else "scattered clouds"
            history.append(
                HistoricalDay(
                    day=today - timedelta(days=days - index),
                    temp_avg_c=round(base_temp + variation, 1),
                    temp_min_c=round(base_temp - 3 + variation, 1),
                    temp_max_c=round(base_temp + 3 + variation, 1),
                    humidity_pct=self._rng.randint(*HUMIDITY_RANGE),
                    precipitation_mm=float(self._rng.randint(0, 9)) if self._rng.random() > 0.7 else 0.0,
                    wind_speed_ms=round(self._rng.uniform(*WIND_SPEED_RANGE_MS), 2),
                    condition=condition,
                )
            )
        return HistoricalSnapshot(
            location_name=base.location_name if base is not None else _name(hint),
            country_code=base.country_code if base is not None else None,
            coordinates=hint.coordinates if hint else None,
            days=tuple(history),
            source=FALLBACK_SOURCE,
            is_fallback=True,
        )


def _name(hint: Optional[LocationQuery]) -> str:
    if hint is not None and hint.name:
        return hint.name
    return UNKNOWN_LOCATION


__all__ = [
    "FallbackSynthesizer",
    "FALLBACK_SOURCE",
    "CONDITIONS",
    "DEFAULT_RANGE",
    "TROPICAL_RANGE",
    "TEMPERATE_RANGE",
    "POLAR_RANGE",
    "HUMIDITY_RANGE",
    "PRESSURE_RANGE",
    "WIND_SPEED_RANGE_MS",
    "temperature_range",
]
