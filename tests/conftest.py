"""
Shared fixtures and test doubles.

Provides an in-memory stand-in for ``aiohttp.ClientSession`` so the
upstream clients can be exercised without network access.
"""

from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import Mock

import aiohttp
import pytest
from prometheus_client import CollectorRegistry

from shared.metrics import WeatherMetrics
from weather_api.src.utils.error_handler import RetryConfig


# ============================================================================
# AIOHTTP TEST DOUBLES
# ============================================================================


class FakeResponse:
    """Async context manager mimicking ``aiohttp.ClientResponse``."""

    def __init__(self, payload: Any = None, status: int = 200):
        self.payload = payload
        self.status = status

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientResponseError(
                request_info=Mock(real_url="http://upstream.test"),
                history=(),
                status=self.status,
                message="upstream error",
            )

    async def json(self, content_type: Optional[str] = "application/json"):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """Replays queued responses or exceptions, one per GET."""

    def __init__(self, *responses: Any):
        self.responses: List[Any] = list(responses)
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.closed = False

    def get(self, url: str, params: Optional[Dict[str, Any]] = None):
        self.calls.append((url, dict(params or {})))
        if not self.responses:
            raise AssertionError(f"Unexpected request to {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, FakeResponse):
            return item
        return FakeResponse(item)


# ============================================================================
# PROVIDER PAYLOADS
# ============================================================================


def mapbox_payload(place_name: str = "Boston, Massachusetts, United States",
                   longitude: float = -71.0596, latitude: float = 42.3605) -> Dict[str, Any]:
    """Minimal Mapbox forward geocoding body with one feature."""
    return {
        "type": "FeatureCollection",
        "query": ["boston"],
        "features": [
            {
                "id": "place.123",
                "place_name": place_name,
                "center": [longitude, latitude],
            }
        ],
    }


def weatherstack_payload(description: str = "Partly cloudy", temperature: float = 71,
                         feelslike: float = 70, humidity: Optional[float] = None) -> Dict[str, Any]:
    """Minimal Weatherstack current conditions body."""
    current = {
        "weather_descriptions": [description],
        "temperature": temperature,
        "feelslike": feelslike,
    }
    if humidity is not None:
        current["humidity"] = humidity
    return {"request": {"type": "LatLon"}, "current": current}


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def registry():
    """Isolated Prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry):
    """Weather metrics bound to an isolated registry."""
    return WeatherMetrics(registry=registry)


@pytest.fixture
def fast_retry():
    """Retry policy without delays."""
    return RetryConfig(max_attempts=3, initial_delay=0, max_delay=0, jitter=False)
