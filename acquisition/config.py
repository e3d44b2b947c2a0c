"""Pipeline configuration.

The pipeline never reads the environment itself: :meth:`PipelineConfig.from_settings`
takes any object exposing the ``WEATHER_*``/provider attributes (Django's
``settings`` in the application) and falls back to the defaults below.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .executor import RetryPolicy
from .monitoring import ChangeThresholds
from .providers.geocoding import DEFAULT_USER_AGENT


@dataclass(frozen=True)
class CacheTTLs:
    current: float = 10 * 60
    forecast: float = 30 * 60
    historical: float = 60 * 60
    grid: float = 10 * 60


@dataclass
class PipelineConfig:
    openweather_api_key: str = ""
    openweather_base_url: Optional[str] = None
    weatherapi_key: str = ""
    weatherapi_base_url: Optional[str] = None
    station_base_url: Optional[str] = None
    geocoding_base_url: Optional[str] = None
    archive_base_url: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: float = 10.0
    max_retries: int = 2
    retry_base_delay: float = 1.0
    retry_max_delay: float = 5.0
    cache_ttls: CacheTTLs = field(default_factory=CacheTTLs)
    cache_max_entries: Optional[int] = None
    alert_temperature_delta: float = 3.0
    alert_precipitation_delta: float = 20.0
    alert_wind_delta_kmh: float = 15.0
    monitor_interval_minutes: float = 15.0

    @classmethod
    def from_settings(cls, settings: Any) -> "PipelineConfig":
        def get(name: str, default: Any = None) -> Any:
            value = getattr(settings, name, None)
            return default if value in (None, "") else value

        defaults = cls()
        ttls = CacheTTLs(
            current=float(get("WEATHER_CACHE_TTL_CURRENT", defaults.cache_ttls.current)),
            forecast=float(get("WEATHER_CACHE_TTL_FORECAST", defaults.cache_ttls.forecast)),
            historical=float(get("WEATHER_CACHE_TTL_HISTORICAL", defaults.cache_ttls.historical)),
            grid=float(get("WEATHER_CACHE_TTL_GRID", defaults.cache_ttls.grid)),
        )
        max_entries = get("WEATHER_CACHE_MAX_ENTRIES")
        return cls(
            openweather_api_key=str(get("OPENWEATHER_API_KEY", "")),
            openweather_base_url=get("OPENWEATHER_BASE_URL"),
            weatherapi_key=str(get("WEATHERAPI_KEY", "")),
            weatherapi_base_url=get("WEATHERAPI_BASE_URL"),
            station_base_url=get("STATION_BASE_URL"),
            geocoding_base_url=get("GEOCODING_BASE_URL"),
            archive_base_url=get("OPEN_METEO_ARCHIVE_URL"),
            user_agent=str(get("WEATHER_USER_AGENT", DEFAULT_USER_AGENT)),
            request_timeout=float(get("WEATHER_REQUEST_TIMEOUT", defaults.request_timeout)),
            max_retries=int(get("WEATHER_MAX_RETRIES", defaults.max_retries)),
            retry_base_delay=float(get("WEATHER_RETRY_BASE_DELAY", defaults.retry_base_delay)),
            retry_max_delay=float(get("WEATHER_RETRY_MAX_DELAY", defaults.retry_max_delay)),
            cache_ttls=ttls,
            cache_max_entries=int(max_entries) if max_entries is not None else None,
            alert_temperature_delta=float(get("WEATHER_ALERT_TEMPERATURE_DELTA", defaults.alert_temperature_delta)),
            alert_precipitation_delta=float(get("WEATHER_ALERT_PRECIPITATION_DELTA", defaults.alert_precipitation_delta)),
            alert_wind_delta_kmh=float(get("WEATHER_ALERT_WIND_DELTA_KMH", defaults.alert_wind_delta_kmh)),
            monitor_interval_minutes=float(get("WEATHER_MONITOR_INTERVAL_MINUTES", defaults.monitor_interval_minutes)),
        )

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            timeout=self.request_timeout,
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
        )

    def thresholds(self) -> ChangeThresholds:
        return ChangeThresholds(
            temperature_c=self.alert_temperature_delta,
            precipitation_pct=self.alert_precipitation_delta,
            precipitation_mm=self.alert_precipitation_delta,
            wind_speed_kmh=self.alert_wind_delta_kmh,
        )


__all__ = ["CacheTTLs", "PipelineConfig"]
