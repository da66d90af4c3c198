"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    WeatherMetrics,
    get_weather_metrics,
    get_metrics_handler,
)

__all__ = [
    "WeatherMetrics",
    "get_weather_metrics",
    "get_metrics_handler",
]
