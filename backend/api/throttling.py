"""Per-client request limits for the weather endpoints."""
from __future__ import annotations

import logging
import re
from typing import Optional, Tuple

from django.core.exceptions import ImproperlyConfigured
from rest_framework.throttling import AnonRateThrottle


logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."

PERIOD_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}
_PERIOD = re.compile(r"^(\d*)\s*([smhd])[a-z]*$")


class WeatherRateThrottle(AnonRateThrottle):
    """Limit requests per client address across every weather endpoint.

    Rates read ``<count>/<period>`` where the period may carry a multiplier,
    e.g. ``100/15m`` for a hundred requests every fifteen minutes.
    """

    scope = "weather"

    def parse_rate(self, rate: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
        if rate is None:
            return (None, None)
        try:
            num, period = rate.split("/")
            match = _PERIOD.match(period.strip().lower())
            if match is None:
                raise ValueError(period)
            count = int(num)
        except ValueError as exc:
            raise ImproperlyConfigured(f"Invalid weather rate limit {rate!r}") from exc
        multiplier = int(match.group(1) or 1)
        return (count, multiplier * PERIOD_SECONDS[match.group(2)])

    def throttle_failure(self) -> bool:
        logger.info("Rate limit exceeded for %s", self.key)
        return super().throttle_failure()


__all__ = ["RATE_LIMIT_MESSAGE", "WeatherRateThrottle"]
