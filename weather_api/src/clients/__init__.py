"""Clients for the upstream geocoding and forecast providers."""

from weather_api.src.clients.forecast import ForecastClient
from weather_api.src.clients.geocoding import GeocodingClient

__all__ = ["ForecastClient", "GeocodingClient"]
