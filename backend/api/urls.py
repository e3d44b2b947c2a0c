"""API URL configuration."""
from __future__ import annotations

from django.urls import path

from backend.api.views import CitiesView, CitySearchView, ForecastView, HistoricalView, WeatherView

urlpatterns = [
    path("weather", WeatherView.as_view(), name="weather"),
    path("weather/forecast", ForecastView.as_view(), name="weather-forecast"),
    path("weather/historical", HistoricalView.as_view(), name="weather-historical"),
    path("weather/search", CitySearchView.as_view(), name="weather-search"),
    path("weather/cities", CitiesView.as_view(), name="weather-cities"),
]
