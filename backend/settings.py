"""Django settings for the weather acquisition service."""
from __future__ import annotations

from pathlib import Path
import os
from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent


def env(name: str, default: str | None = None) -> str:
    """Fetch environment variables while allowing explicit defaults."""

    value = os.environ.get(name, default)
    if value is None:
        raise ImproperlyConfigured(f"Environment variable {name} is required")
    return value


SECRET_KEY = env("DJANGO_SECRET_KEY")
DEBUG = os.environ.get("DJANGO_DEBUG", "0") == "1"
ALLOWED_HOSTS = os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "backend.api",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "backend.urls"

WSGI_APPLICATION = "backend.wsgi.application"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("DB_NAME", ":memory:"),
    }
}

# Providers ---------------------------------------------------------------
OPENWEATHER_API_KEY = os.environ.get("OPENWEATHER_API_KEY", os.environ.get("WEATHER_API_KEY", ""))
OPENWEATHER_BASE_URL = os.environ.get("OPENWEATHER_BASE_URL", "https://api.openweathermap.org/data/2.5")
WEATHERAPI_KEY = os.environ.get("WEATHERAPI_KEY", "")
WEATHERAPI_BASE_URL = os.environ.get("WEATHERAPI_BASE_URL", "https://api.weatherapi.com/v1")
STATION_BASE_URL = os.environ.get("STATION_BASE_URL", "")
GEOCODING_BASE_URL = os.environ.get("GEOCODING_BASE_URL", "https://nominatim.openstreetmap.org")
OPEN_METEO_ARCHIVE_URL = os.environ.get("OPEN_METEO_ARCHIVE_URL", "https://archive-api.open-meteo.com/v1")
WEATHER_USER_AGENT = os.environ.get("WEATHER_USER_AGENT", "SkyCast/2.0 (weather acquisition pipeline)")

# Request policy ----------------------------------------------------------
WEATHER_REQUEST_TIMEOUT = float(os.environ.get("WEATHER_REQUEST_TIMEOUT", "10"))
WEATHER_MAX_RETRIES = int(os.environ.get("WEATHER_MAX_RETRIES", "2"))
WEATHER_RETRY_BASE_DELAY = float(os.environ.get("WEATHER_RETRY_BASE_DELAY", "1"))
WEATHER_RETRY_MAX_DELAY = float(os.environ.get("WEATHER_RETRY_MAX_DELAY", "5"))

# Cache (seconds) ---------------------------------------------------------
WEATHER_CACHE_TTL_CURRENT = int(os.environ.get("WEATHER_CACHE_TTL_CURRENT", "600"))
WEATHER_CACHE_TTL_FORECAST = int(os.environ.get("WEATHER_CACHE_TTL_FORECAST", "1800"))
WEATHER_CACHE_TTL_HISTORICAL = int(os.environ.get("WEATHER_CACHE_TTL_HISTORICAL", "3600"))
WEATHER_CACHE_TTL_GRID = int(os.environ.get("WEATHER_CACHE_TTL_GRID", "600"))
WEATHER_CACHE_MAX_ENTRIES = os.environ.get("WEATHER_CACHE_MAX_ENTRIES") or None

# Change detection --------------------------------------------------------
WEATHER_ALERT_TEMPERATURE_DELTA = float(os.environ.get("WEATHER_ALERT_TEMPERATURE_DELTA", "3"))
WEATHER_ALERT_PRECIPITATION_DELTA = float(os.environ.get("WEATHER_ALERT_PRECIPITATION_DELTA", "20"))
WEATHER_ALERT_WIND_DELTA_KMH = float(os.environ.get("WEATHER_ALERT_WIND_DELTA_KMH", "15"))
WEATHER_MONITOR_INTERVAL_MINUTES = float(os.environ.get("WEATHER_MONITOR_INTERVAL_MINUTES", "15"))

REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "UNAUTHENTICATED_USER": None,
    "DEFAULT_THROTTLE_CLASSES": [
        "backend.api.throttling.WeatherRateThrottle",
    ],
    "DEFAULT_THROTTLE_RATES": {
        "weather": os.environ.get("WEATHER_RATE_LIMIT", "100/15m"),
    },
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "acquisition": {"handlers": ["console"], "level": os.environ.get("WEATHER_LOG_LEVEL", "INFO")},
        "backend": {"handlers": ["console"], "level": os.environ.get("WEATHER_LOG_LEVEL", "INFO")},
    },
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True
