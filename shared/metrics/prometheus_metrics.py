"""Prometheus metrics definitions and helpers.

Provides metric definitions for upstream provider calls and weather lookups.
"""

from functools import lru_cache
from typing import Callable

from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    REGISTRY,
    CollectorRegistry,
)


class WeatherMetrics:
    """Weather lookup metrics."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize weather metrics.

        Args:
            registry: Prometheus registry to use
        """
        # Upstream calls by provider and outcome
        self.upstream_requests = Counter(
            "weather_upstream_requests_total",
            "Total number of requests made to upstream providers",
            ["service", "outcome"],
            registry=registry,
        )

        # Upstream latency
        self.upstream_duration = Histogram(
            "weather_upstream_request_duration_seconds",
            "Time spent waiting on upstream providers",
            ["service"],
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=registry,
        )

        # End-to-end lookups
        self.lookups = Counter(
            "weather_lookups_total",
            "Total number of weather lookups by outcome",
            ["outcome"],
            registry=registry,
        )


@lru_cache()
def get_weather_metrics() -> WeatherMetrics:
    """Get the process-wide metrics instance bound to the default registry.

    Returns:
        WeatherMetrics registered on the default registry
    """
    return WeatherMetrics()


def get_metrics_handler(registry: CollectorRegistry = REGISTRY) -> Callable[[], bytes]:
    """Get metrics handler for HTTP endpoint.

    Returns:
        Function that generates Prometheus metrics output
    """

    def metrics_handler() -> bytes:
        return generate_latest(registry)

    return metrics_handler
