from __future__ import annotations

import json
import signal
import threading
from io import StringIO

import pytest
from django.core.cache import cache
from django.core.exceptions import ImproperlyConfigured
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import Client

from acquisition.cache import CacheStore
from acquisition.config import PipelineConfig
from acquisition.entities import WeatherSnapshot
from acquisition.services.weather import WeatherService
from backend.api.throttling import WeatherRateThrottle
from payloads import NOMINATIM_LONDON, OPEN_METEO_ARCHIVE, OPENWEATHER_CURRENT, OPENWEATHER_FORECAST

OPENWEATHER = "https://openweather.test/data/2.5"
GEOCODER = "https://geocoder.test"
ARCHIVE = "https://archive.test/v1"


def make_service(openweather_base_url: str = OPENWEATHER) -> WeatherService:
    config = PipelineConfig(
        openweather_api_key="ow-key",
        openweather_base_url=openweather_base_url,
        geocoding_base_url=GEOCODER,
        archive_base_url=ARCHIVE,
        max_retries=0,
    )
    return WeatherService.from_config(config, sleep=lambda seconds: None, cache=CacheStore())


@pytest.fixture(autouse=True)
def reset_rate_limits():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def service(monkeypatch) -> WeatherService:
    instance = make_service()
    monkeypatch.setattr("backend.api.views.get_weather_service", lambda: instance)
    return instance


def test_weather_endpoint_returns_payload(service, requests_mock) -> None:
    requests_mock.get(f"{OPENWEATHER}/weather", json=OPENWEATHER_CURRENT)

    response = Client().get("/api/weather", {"city": "London"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["location_name"] == "London"
    assert payload["temperature_c"] == 22.0
    assert payload["coordinates"] == {"latitude": 51.5074, "longitude": -0.1278}
    assert payload["is_fallback"] is False
    assert payload["timestamp"].endswith("Z")


def test_weather_endpoint_accepts_coordinates(service, requests_mock) -> None:
    requests_mock.get(f"{OPENWEATHER}/weather", json=OPENWEATHER_CURRENT)

    response = Client().get("/api/weather", {"lat": "51.5074", "lon": "-0.1278"})

    assert response.status_code == 200
    assert requests_mock.last_request.qs["lat"] == ["51.5074"]


@pytest.mark.parametrize("params", [{"lat": "abc", "lon": "37.61"}, {}, {"lat": "10"}])
def test_weather_endpoint_validates_params(service, params) -> None:
    response = Client().get("/api/weather", params)

    assert response.status_code == 400
    assert "detail" in response.json()


def test_rejected_input_is_a_bad_request(service, requests_mock) -> None:
    response = Client().get("/api/weather", {"city": "x UNION SELECT 1"})

    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid input provided."}
    assert requests_mock.call_count == 0


def test_unknown_city_is_not_found(service, requests_mock) -> None:
    requests_mock.get(f"{OPENWEATHER}/weather", status_code=404, json={"cod": "404"})

    response = Client().get("/api/weather", {"city": "Atlantis"})

    assert response.status_code == 404
    assert response.json() == {"detail": "City not found."}


def test_disallowed_protocol_is_a_bad_request(monkeypatch, requests_mock) -> None:
    instance = make_service(openweather_base_url="ftp://openweather.test")
    monkeypatch.setattr("backend.api.views.get_weather_service", lambda: instance)

    response = Client().get("/api/weather", {"city": "London"})

    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid request configuration."}


def test_outage_returns_flagged_fallback(service, requests_mock) -> None:
    requests_mock.get(f"{OPENWEATHER}/weather", status_code=503)

    response = Client().get("/api/weather", {"city": "London"})

    assert response.status_code == 200
    assert response.json()["is_fallback"] is True


def test_forecast_endpoint(service, requests_mock) -> None:
    requests_mock.get(f"{OPENWEATHER}/forecast", json=OPENWEATHER_FORECAST)

    response = Client().get("/api/weather/forecast", {"city": "London"})

    assert response.status_code == 200
    entries = response.json()["entries"]
    assert len(entries) == 2
    assert entries[0]["precipitation_probability_pct"] == 35


def test_historical_endpoint(service, requests_mock) -> None:
    requests_mock.get(f"{GEOCODER}/search", json=NOMINATIM_LONDON)
    requests_mock.get(f"{ARCHIVE}/archive", json=OPEN_METEO_ARCHIVE)

    response = Client().get("/api/weather/historical", {"city": "London", "days": "2"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["country_code"] == "GB"
    assert [day["day"] for day in payload["days"]] == ["2023-11-13", "2023-11-14"]


@pytest.mark.parametrize("params", [{"city": "London", "days": "many"}, {"city": "London", "days": "0"}, {"days": "3"}])
def test_historical_endpoint_validates_params(service, params) -> None:
    response = Client().get("/api/weather/historical", params)

    assert response.status_code == 400


def test_search_endpoint(service, requests_mock) -> None:
    requests_mock.get(f"{GEOCODER}/search", json=NOMINATIM_LONDON)

    response = Client().get("/api/weather/search", {"q": "Lon"})

    assert response.status_code == 200
    (result,) = response.json()["results"]
    assert result["name"] == "London"
    assert result["coordinates"]["latitude"] == pytest.approx(51.5073219)


def test_cities_endpoint(service, requests_mock) -> None:
    requests_mock.get(f"{OPENWEATHER}/weather", json=OPENWEATHER_CURRENT)

    response = Client().get("/api/weather/cities", {"names": "London, Paris"})

    assert response.status_code == 200
    assert len(response.json()["results"]) == 2


def test_fetch_command_prints_snapshot(monkeypatch, requests_mock) -> None:
    instance = make_service()
    monkeypatch.setattr("backend.api.management.commands.weather_fetch.get_weather_service", lambda: instance)
    requests_mock.get(f"{OPENWEATHER}/weather", json=OPENWEATHER_CURRENT)
    out = StringIO()

    call_command("weather_fetch", city="London", stdout=out)

    payload = json.loads(out.getvalue())
    assert payload["location_name"] == "London"
    assert payload["source"] == "openweather"


def test_fetch_command_requires_location() -> None:
    with pytest.raises(CommandError):
        call_command("weather_fetch")


def test_fetch_command_reports_user_message(monkeypatch, requests_mock) -> None:
    instance = make_service()
    monkeypatch.setattr("backend.api.management.commands.weather_fetch.get_weather_service", lambda: instance)
    requests_mock.get(f"{OPENWEATHER}/weather", status_code=404)

    with pytest.raises(CommandError, match="City not found."):
        call_command("weather_fetch", city="Atlantis")


def test_requests_beyond_the_limit_are_throttled(service, monkeypatch) -> None:
    monkeypatch.setattr(WeatherRateThrottle, "THROTTLE_RATES", {"weather": "2/15m"})
    client = Client()

    statuses = [client.get("/api/weather").status_code for _ in range(2)]
    response = client.get("/api/weather/search", {"q": "Lond"})

    assert statuses == [400, 400]
    assert response.status_code == 429
    assert response.json()["detail"].startswith("Too many requests from this IP")
    assert response["Retry-After"] == "900"


@pytest.mark.parametrize("rate, expected", [("100/15m", (100, 900)), ("5/h", (5, 3600)), ("30/10min", (30, 600))])
def test_rate_accepts_period_multipliers(rate, expected) -> None:
    assert WeatherRateThrottle().parse_rate(rate) == expected


@pytest.mark.parametrize("rate", ["ten/m", "10/fortnight", "10"])
def test_malformed_rate_is_a_configuration_error(rate) -> None:
    with pytest.raises(ImproperlyConfigured):
        WeatherRateThrottle().parse_rate(rate)


class ChangingWeather:
    """Reports 20 degrees once, then 26 degrees on every later call."""

    def __init__(self) -> None:
        self.calls = 0
        self._lock = threading.Lock()

    def get_current_weather(self, **kwargs) -> WeatherSnapshot:
        with self._lock:
            self.calls += 1
            temperature = 20.0 if self.calls == 1 else 26.0
        return WeatherSnapshot(location_name="London", temperature_c=temperature, source="openweather")


def test_watch_command_prints_baseline_alerts_and_updates(monkeypatch) -> None:
    weather = ChangingWeather()
    monkeypatch.setattr("backend.api.management.commands.weather_watch.get_weather_service", lambda: weather)
    sigint_handler = signal.getsignal(signal.SIGINT)
    out = StringIO()

    call_command("weather_watch", city="London", interval=0.001, updates=0.001, duration=0.02, stdout=out)

    lines = [json.loads(line) for line in out.getvalue().splitlines()]
    baselines = [line["baseline"] for line in lines if "baseline" in line]
    assert [item["temperature_c"] for item in baselines] == [20.0]
    alerts = [line for line in lines if "changes" in line]
    assert alerts and alerts[0]["changes"] == ["Temperature increased by 6.0°C"]
    assert any("update" in line for line in lines)
    assert signal.getsignal(signal.SIGINT) is sigint_handler


@pytest.mark.parametrize("options", [{}, {"city": "London", "interval": -1}, {"city": "London", "duration": 0}])
def test_watch_command_rejects_bad_options(options) -> None:
    with pytest.raises(CommandError):
        call_command("weather_watch", **options)
