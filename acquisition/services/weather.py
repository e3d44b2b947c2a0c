from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

import requests

from ..cache import CacheStore, cache_key
from ..config import CacheTTLs, PipelineConfig
from ..entities import (
    CitySuggestion,
    ForecastSnapshot,
    HistoricalSnapshot,
    LocationQuery,
    WeatherSnapshot,
)
from ..errors import (
    NotFoundError,
    ProviderError,
    UpstreamError,
    ValidationCode,
    ValidationError,
    WeatherError,
)
from ..executor import RequestExecutor
from ..fallback import FallbackSynthesizer
from ..normalizer import ResponseNormalizer, country_code
from ..providers.base import WeatherProvider
from ..providers.geocoding import NominatimGeocoder
from ..providers.openmeteo import OpenMeteoArchiveProvider
from ..providers.openweather import OpenWeatherProvider
from ..providers.station import StationProvider
from ..providers.weatherapi import WeatherApiProvider
from ..validation import InputValidator, validate_coordinates, validate_days


GLOBAL_GRID_CITIES = (
    "London",
    "New York",
    "Tokyo",
    "Sydney",
    "Cairo",
    "Mumbai",
    "São Paulo",
    "Moscow",
    "Nairobi",
    "Los Angeles",
    "Paris",
    "Beijing",
    "Dubai",
    "Singapore",
    "Toronto",
    "Mexico City",
)


class WeatherService:
    """Cache-aside weather lookups over a chain of providers.

    Providers are tried in order.  Terminal outcomes (bad input, unknown
    location, disallowed URL) propagate to the caller; everything else moves
    on to the next provider and, once the chain is exhausted, degrades to
    synthesized data that is never cached.
    """

    def __init__(
        self,
        *,
        providers: Sequence[WeatherProvider],
        geocoder: NominatimGeocoder,
        archive: OpenMeteoArchiveProvider,
        cache: Optional[CacheStore] = None,
        ttls: Optional[CacheTTLs] = None,
        normalizer: Optional[ResponseNormalizer] = None,
        synthesizer: Optional[FallbackSynthesizer] = None,
        validator: Optional[InputValidator] = None,
        max_workers: int = 8,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not providers:
            raise ValueError("at least one weather provider is required")
        self.providers: List[WeatherProvider] = list(providers)
        self.geocoder = geocoder
        self.archive = archive
        self.cache = cache if cache is not None else CacheStore()
        self.ttls = ttls or CacheTTLs()
        self.normalizer = normalizer or ResponseNormalizer()
        self.synthesizer = synthesizer or FallbackSynthesizer()
        self.validator = validator or InputValidator()
        self.max_workers = max_workers
        self._log = logger or logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        *,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        cache: Optional[CacheStore] = None,
    ) -> "WeatherService":
        executor = RequestExecutor(session=session, policy=config.retry_policy(), sleep=sleep)
        providers: List[WeatherProvider] = [
            OpenWeatherProvider(executor, api_key=config.openweather_api_key, base_url=config.openweather_base_url)
        ]
        if config.weatherapi_key:
            providers.append(WeatherApiProvider(executor, api_key=config.weatherapi_key, base_url=config.weatherapi_base_url))
        if config.station_base_url:
            providers.append(StationProvider(executor, base_url=config.station_base_url))
        return cls(
            providers=providers,
            geocoder=NominatimGeocoder(executor, base_url=config.geocoding_base_url, user_agent=config.user_agent),
            archive=OpenMeteoArchiveProvider(executor, base_url=config.archive_base_url),
            cache=cache if cache is not None else CacheStore(max_entries=config.cache_max_entries),
            ttls=config.cache_ttls,
        )

    # Public API ---------------------------------------------------------
    def get_current_weather(
        self,
        city: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> WeatherSnapshot:
        query = self._resolve_query(city, latitude, longitude)
        key = cache_key("current", query)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        try:
            snapshot = self._fetch_current(query)
        except ProviderError as exc:
            self._raise_if_terminal(exc)
            return self.synthesizer.synthesize(query)
        self.cache.set(key, snapshot, self.ttls.current)
        return snapshot

    def get_forecast(
        self,
        city: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> ForecastSnapshot:
        query = self._resolve_query(city, latitude, longitude)
        key = cache_key("forecast", query)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        try:
            forecast = self._fetch_forecast(query)
        except ProviderError as exc:
            self._raise_if_terminal(exc)
            return self.synthesizer.synthesize_forecast(query)
        self.cache.set(key, forecast, self.ttls.forecast)
        return forecast

    def get_historical_weather(self, city: str, days: int = 7) -> HistoricalSnapshot:
        name = self.validator.validate(city)
        days = validate_days(days)
        query = LocationQuery.for_city(name)
        key = cache_key("historical", query, days)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        try:
            history = self._fetch_history(name, days)
        except ProviderError as exc:
            self._raise_if_terminal(exc)
            base = self.get_current_weather(city=name)
            return self.synthesizer.synthesize_history(query, days, base=base)
        self.cache.set(key, history, self.ttls.historical)
        return history

    def search_cities(self, query: str) -> List[CitySuggestion]:
        text = self.validator.validate_search(query)
        try:
            return self.geocoder.search(text)
        except ProviderError as exc:
            self._log.warning("City search failed (%s)", exc.kind.value)
            return []

    def get_multiple_cities_weather(self, cities: Optional[Sequence[str]] = None) -> List[WeatherSnapshot]:
        """Fetch several cities concurrently; each branch degrades on its own.

        Names that fail validation or that no provider knows are dropped.
        The combined list is cached only when every branch produced real data.
        """
        names = list(cities) if cities else list(GLOBAL_GRID_CITIES)
        key = cache_key("grid", "|".join(names))
        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        results: Dict[int, WeatherSnapshot] = {}
        with ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, len(names)))) as pool:
            futures = {pool.submit(self._current_or_fallback, name): index for index, name in enumerate(names)}
            for future in as_completed(futures):
                snapshot = future.result()
                if snapshot is not None:
                    results[futures[future]] = snapshot

        snapshots = [results[index] for index in sorted(results)]
        if len(snapshots) == len(names) and not any(item.is_fallback for item in snapshots):
            self.cache.set(key, tuple(snapshots), self.ttls.grid)
        return snapshots

    def close(self) -> None:
        executors = {id(provider.executor): provider.executor for provider in self.providers}
        for executor in executors.values():
            executor.close()

    # Helpers ------------------------------------------------------------
    def _resolve_query(
        self,
        city: Optional[str],
        latitude: Optional[float],
        longitude: Optional[float],
    ) -> LocationQuery:
        if city is not None:
            return LocationQuery.for_city(self.validator.validate(city))
        if latitude is None or longitude is None:
            raise ValidationError(ValidationCode.EMPTY_INPUT, "city or coordinates are required")
        coordinates = validate_coordinates(latitude, longitude)
        return LocationQuery(coordinates=coordinates)

    def _fetch_current(self, query: LocationQuery) -> WeatherSnapshot:
        errors: List[WeatherError] = []
        for provider in self.providers:
            try:
                payload = provider.current(query)
                return self.normalizer.normalize(payload, provider.kind, location_hint=query.name)
            except ProviderError as exc:
                self._raise_if_terminal(exc)
                self._log.warning("Provider %s failed for current weather: %s", provider.name, exc)
                errors.append(exc)
        raise self._exhausted("current weather", errors)

    def _fetch_forecast(self, query: LocationQuery) -> ForecastSnapshot:
        errors: List[WeatherError] = []
        for provider in self.providers:
            if not provider.supports_forecast():
                continue
            try:
                payload = provider.forecast(query)
                return self.normalizer.normalize_forecast(payload, provider.kind)
            except ProviderError as exc:
                self._raise_if_terminal(exc)
                self._log.warning("Provider %s failed for forecast: %s", provider.name, exc)
                errors.append(exc)
        raise self._exhausted("forecast", errors)

    def _fetch_history(self, name: str, days: int) -> HistoricalSnapshot:
        place = self.geocoder.geocode(name)
        today = datetime.now(tz=timezone.utc).date()
        payload = self.archive.history(place.coordinates, today - timedelta(days=days), today - timedelta(days=1))
        return self.normalizer.normalize_history(
            payload,
            location_name=place.name,
            country_code=country_code(place.country),
            coordinates=place.coordinates,
        )

    def _current_or_fallback(self, name: str) -> Optional[WeatherSnapshot]:
        try:
            return self.get_current_weather(city=name)
        except ValidationError as exc:
            self._log.warning("Skipping invalid city in batch (%s)", exc.code.value)
            return None
        except NotFoundError:
            self._log.warning("Skipping unknown city in batch: %s", name)
            return None
        except WeatherError as exc:
            self._log.warning("Falling back for %s in batch (%s)", name, exc.kind.value)
            return self.synthesizer.synthesize(LocationQuery.for_city(name))

    def _raise_if_terminal(self, exc: ProviderError) -> None:
        if not exc.kind.fallback_eligible:
            raise exc

    def _exhausted(self, what: str, errors: List[WeatherError]) -> UpstreamError:
        attempts = sum(error.attempts for error in errors)
        error = UpstreamError(f"all providers failed for {what}", attempts=attempts)
        error.__cause__ = errors[-1] if errors else None
        return error


__all__ = ["WeatherService", "GLOBAL_GRID_CITIES"]
