from __future__ import annotations

import copy
import logging
from datetime import date, datetime, timezone

import pytest

from acquisition.entities import Coordinates
from acquisition.errors import SchemaError
from acquisition.normalizer import NEUTRAL_TEMPERATURE_C, ResponseNormalizer, country_code, detect_kind
from acquisition.providers.base import ProviderKind
from payloads import (
    OBSERVED_AT,
    OPEN_METEO_ARCHIVE,
    OPENWEATHER_CURRENT,
    OPENWEATHER_FORECAST,
    STATION_CURRENT,
    WEATHERAPI_CURRENT,
    WEATHERAPI_FORECAST,
)

PROJECTED_FIELDS = (
    "location_name",
    "country_code",
    "coordinates",
    "temperature_c",
    "feels_like_c",
    "humidity_pct",
    "pressure_hpa",
    "wind_speed_ms",
    "wind_direction_deg",
    "cloud_cover_pct",
    "precipitation_mm",
    "timestamp",
)


def project(snapshot) -> dict:
    return {name: getattr(snapshot, name) for name in PROJECTED_FIELDS}


@pytest.fixture
def normalizer() -> ResponseNormalizer:
    return ResponseNormalizer()


def test_three_schemas_project_to_the_same_snapshot(normalizer: ResponseNormalizer) -> None:
    openweather = normalizer.normalize(OPENWEATHER_CURRENT, ProviderKind.OPENWEATHER)
    weatherapi = normalizer.normalize(WEATHERAPI_CURRENT, ProviderKind.WEATHERAPI)
    station = normalizer.normalize(STATION_CURRENT, ProviderKind.STATION)

    assert project(openweather) == project(weatherapi) == project(station)
    assert openweather.temperature_c == 22.0
    assert openweather.humidity_pct == 60
    assert openweather.country_code == "GB"
    assert openweather.coordinates == Coordinates(51.5074, -0.1278)
    assert openweather.timestamp == datetime.fromtimestamp(OBSERVED_AT, tz=timezone.utc)


def test_kind_is_detected_from_sections(normalizer: ResponseNormalizer) -> None:
    assert detect_kind(OPENWEATHER_CURRENT) is ProviderKind.OPENWEATHER
    assert detect_kind(WEATHERAPI_CURRENT) is ProviderKind.WEATHERAPI
    assert detect_kind(STATION_CURRENT) is ProviderKind.STATION
    assert normalizer.normalize(WEATHERAPI_CURRENT).source == "weatherapi"


def test_conditions_use_one_vocabulary(normalizer: ResponseNormalizer) -> None:
    openweather = normalizer.normalize(OPENWEATHER_CURRENT, ProviderKind.OPENWEATHER)
    weatherapi = normalizer.normalize(WEATHERAPI_CURRENT, ProviderKind.WEATHERAPI)
    station = normalizer.normalize(STATION_CURRENT, ProviderKind.STATION)

    assert (openweather.condition, openweather.icon) == ("few clouds", "02d")
    assert (weatherapi.condition, weatherapi.icon) == ("few clouds", "02d")
    assert (station.condition, station.icon) == ("clear sky", "01d")


def test_weatherapi_night_icon(normalizer: ResponseNormalizer) -> None:
    payload = copy.deepcopy(WEATHERAPI_CURRENT)
    payload["current"]["is_day"] = 0

    assert normalizer.normalize(payload, ProviderKind.WEATHERAPI).icon == "02n"


def test_missing_temperature_uses_placeholder(normalizer: ResponseNormalizer, caplog) -> None:
    payload = copy.deepcopy(OPENWEATHER_CURRENT)
    del payload["main"]["temp"]

    with caplog.at_level(logging.WARNING, logger="acquisition.normalizer"):
        snapshot = normalizer.normalize(payload, ProviderKind.OPENWEATHER)

    assert snapshot.temperature_c == NEUTRAL_TEMPERATURE_C
    assert "placeholder" in caplog.text


def test_missing_name_uses_hint(normalizer: ResponseNormalizer) -> None:
    payload = copy.deepcopy(OPENWEATHER_CURRENT)
    del payload["name"]

    assert normalizer.normalize(payload, ProviderKind.OPENWEATHER, location_hint="London").location_name == "London"
    assert normalizer.normalize(payload, ProviderKind.OPENWEATHER).location_name == "Unknown location"


@pytest.mark.parametrize(
    "payload, kind",
    [
        ([1, 2, 3], ProviderKind.OPENWEATHER),
        ({"cod": 200}, ProviderKind.OPENWEATHER),
        ({"location": {"name": "London"}}, ProviderKind.WEATHERAPI),
        ({"unexpected": True}, None),
    ],
)
def test_unrecognised_shapes_raise_schema_error(normalizer: ResponseNormalizer, payload, kind) -> None:
    with pytest.raises(SchemaError):
        normalizer.normalize(payload, kind)


def test_values_are_rounded_consistently(normalizer: ResponseNormalizer) -> None:
    payload = copy.deepcopy(OPENWEATHER_CURRENT)
    payload["main"].update({"temp": 21.96, "humidity": 59.6, "pressure": 1014.7})
    payload["wind"]["speed"] = 4.1049
    payload["rain"] = {"1h": 0.123}

    snapshot = normalizer.normalize(payload, ProviderKind.OPENWEATHER)

    assert snapshot.temperature_c == 22.0
    assert snapshot.humidity_pct == 60
    assert snapshot.pressure_hpa == 1015
    assert snapshot.wind_speed_ms == 4.1
    assert snapshot.precipitation_mm == 0.12


def test_openweather_forecast(normalizer: ResponseNormalizer) -> None:
    forecast = normalizer.normalize_forecast(OPENWEATHER_FORECAST, ProviderKind.OPENWEATHER)

    assert forecast.location_name == "London"
    assert forecast.country_code == "GB"
    assert len(forecast.entries) == 2
    first, second = forecast.entries
    assert first.temperature_c == 18.4
    assert first.precipitation_probability_pct == 35
    assert first.precipitation_mm == 0.42
    assert first.condition == "light rain"
    assert second.precipitation_probability_pct == 0
    assert second.precipitation_mm == 0.0


def test_weatherapi_forecast(normalizer: ResponseNormalizer) -> None:
    forecast = normalizer.normalize_forecast(WEATHERAPI_FORECAST, ProviderKind.WEATHERAPI)

    (entry,) = forecast.entries
    assert forecast.country_code == "GB"
    assert entry.temperature_c == 17.5
    assert entry.wind_speed_ms == 5.0
    assert entry.precipitation_probability_pct == 80
    assert (entry.condition, entry.icon) == ("light rain", "10d")


def test_forecast_without_entries_is_schema_error(normalizer: ResponseNormalizer) -> None:
    with pytest.raises(SchemaError):
        normalizer.normalize_forecast({"list": []}, ProviderKind.OPENWEATHER)
    with pytest.raises(SchemaError):
        normalizer.normalize_forecast(OPENWEATHER_FORECAST, ProviderKind.STATION)


def test_history_normalization(normalizer: ResponseNormalizer) -> None:
    history = normalizer.normalize_history(OPEN_METEO_ARCHIVE, location_name="London", country_code="GB")

    first, second = history.days
    assert history.source == "open-meteo"
    assert history.coordinates == Coordinates(51.5, -0.12)
    assert first.day == date(2023, 11, 13)
    assert first.temp_avg_c == 11.0
    assert first.wind_speed_ms == 6.0
    assert (first.condition, first.icon) == ("overcast clouds", "04d")
    assert second.temp_avg_c == 9.0
    assert second.condition == "moderate rain"


def test_history_without_daily_is_schema_error(normalizer: ResponseNormalizer) -> None:
    with pytest.raises(SchemaError):
        normalizer.normalize_history({"error": True}, location_name="London")


@pytest.mark.parametrize(
    "value, expected",
    [("gb", "GB"), ("United Kingdom", "GB"), ("united  states of america", "US"), ("Atlantis", None), (None, None)],
)
def test_country_code(value, expected) -> None:
    assert country_code(value) == expected


def test_extra_observation_fields(normalizer: ResponseNormalizer) -> None:
    openweather = normalizer.normalize(OPENWEATHER_CURRENT, ProviderKind.OPENWEATHER)
    weatherapi = normalizer.normalize(WEATHERAPI_CURRENT, ProviderKind.WEATHERAPI)

    assert (openweather.temp_min_c, openweather.temp_max_c) == (20.3, 23.4)
    assert openweather.visibility_m == weatherapi.visibility_m == 10000
    assert openweather.sunrise == datetime.fromtimestamp(1699947840, tz=timezone.utc)
    assert openweather.to_dict()["sunset"] == "2023-11-14T16:46:00Z"
    assert openweather.uv_index is None
    assert weatherapi.uv_index == 3.0
    assert weatherapi.sunrise is None


def test_non_finite_numbers_are_treated_as_missing(normalizer: ResponseNormalizer) -> None:
    payload = copy.deepcopy(OPENWEATHER_CURRENT)
    payload["main"]["humidity"] = float("inf")
    payload["main"]["pressure"] = float("nan")
    payload["wind"]["speed"] = float("-inf")

    snapshot = normalizer.normalize(payload, ProviderKind.OPENWEATHER)

    assert snapshot.humidity_pct is None
    assert snapshot.pressure_hpa is None
    assert snapshot.wind_speed_ms is None
    assert snapshot.temperature_c == 22.0


def test_non_finite_temperature_uses_placeholder(normalizer: ResponseNormalizer) -> None:
    payload = copy.deepcopy(OPENWEATHER_CURRENT)
    payload["main"]["temp"] = float("nan")

    assert normalizer.normalize(payload, ProviderKind.OPENWEATHER).temperature_c == NEUTRAL_TEMPERATURE_C


@pytest.mark.parametrize("observed_at", [10**20, -(10**20), float("inf")])
def test_out_of_range_timestamp_falls_back_to_now(normalizer: ResponseNormalizer, observed_at) -> None:
    payload = copy.deepcopy(OPENWEATHER_CURRENT)
    payload["dt"] = observed_at
    payload["sys"]["sunrise"] = observed_at

    before = datetime.now(tz=timezone.utc)
    snapshot = normalizer.normalize(payload, ProviderKind.OPENWEATHER)

    assert snapshot.timestamp >= before
    assert snapshot.sunrise is None


def test_history_skips_malformed_days(normalizer: ResponseNormalizer, caplog) -> None:
    payload = copy.deepcopy(OPEN_METEO_ARCHIVE)
    payload["daily"]["time"] = ["not-a-date", "2023-11-14"]

    with caplog.at_level(logging.WARNING):
        history = normalizer.normalize_history(payload, location_name="London")

    assert [day.day for day in history.days] == [date(2023, 11, 14)]
    assert "malformed date" in caplog.text


def test_history_with_only_malformed_days_is_schema_error(normalizer: ResponseNormalizer) -> None:
    payload = copy.deepcopy(OPEN_METEO_ARCHIVE)
    payload["daily"]["time"] = ["2023-13-45", "yesterday"]

    with pytest.raises(SchemaError):
        normalizer.normalize_history(payload, location_name="London")
