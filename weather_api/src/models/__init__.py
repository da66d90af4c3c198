"""Data models for the FastAPI service.

This package contains Pydantic models for provider results and
request/response validation.
"""

from weather_api.src.models.weather import (
    CurrentConditions,
    ErrorResponse,
    Location,
    ProductsResponse,
    WeatherResponse,
)

__all__ = [
    "CurrentConditions",
    "ErrorResponse",
    "Location",
    "ProductsResponse",
    "WeatherResponse",
]
