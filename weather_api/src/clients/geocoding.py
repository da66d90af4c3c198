"""Mapbox forward geocoding client.

Resolves a free-text address to the best matching place and its
coordinates.
"""

import asyncio
from typing import Optional
from urllib.parse import quote

import aiohttp
import structlog
from pydantic import ValidationError

from shared.metrics import WeatherMetrics
from weather_api.src.clients.base import UpstreamClient
from weather_api.src.models.weather import Location
from weather_api.src.utils.error_handler import (
    LocationNotFoundError,
    LocationServiceUnavailableError,
    RetryConfig,
)

logger = structlog.get_logger(__name__)


class GeocodingClient(UpstreamClient):
    """Async client for the Mapbox ``mapbox.places`` endpoint."""

    service_name = "geocoding"

    def __init__(
        self,
        session: aiohttp.ClientSession,
        access_token: Optional[str],
        base_url: str = "https://api.mapbox.com/geocoding/v5/mapbox.places",
        limit: int = 1,
        retry_config: Optional[RetryConfig] = None,
        metrics: Optional[WeatherMetrics] = None,
    ):
        """
        Initialize geocoding client.

        Args:
            session: Shared aiohttp session
            access_token: Mapbox access token
            base_url: Endpoint the quoted address is appended to
            limit: Number of candidate places to request
            retry_config: Retry policy for transient failures
            metrics: Metrics sink
        """
        super().__init__(session, retry_config=retry_config, metrics=metrics)
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.limit = limit

    def build_url(self, address: str) -> str:
        """Build the request URL; the address is a path segment."""
        return f"{self.base_url}/{quote(address, safe='')}.json"

    async def geocode(self, address: str) -> Location:
        """
        Resolve an address to a location.

        Args:
            address: Free-text address, e.g. "Boston"

        Returns:
            Best matching location

        Raises:
            LocationServiceUnavailableError: Provider unreachable or request rejected
            LocationNotFoundError: No place matched the address
        """
        params = {"access_token": self.access_token or "", "limit": self.limit}

        try:
            body = await self.get_json(self.build_url(address), params)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(
                "geocode_request_failed",
                address=address,
                error_type=type(e).__name__,
                error=str(e)
            )
            raise LocationServiceUnavailableError() from e

        if not isinstance(body, dict):
            logger.error(
                "geocode_response_malformed",
                address=address,
                body_type=type(body).__name__
            )
            raise LocationServiceUnavailableError()

        features = body.get("features")
        if not features:
            logger.info("geocode_no_match", address=address)
            raise LocationNotFoundError()

        feature = features[0]
        try:
            longitude, latitude = feature["center"][0], feature["center"][1]
            location = Location(
                name=feature["place_name"],
                latitude=latitude,
                longitude=longitude,
            )
        except (KeyError, IndexError, TypeError, ValidationError) as e:
            logger.error("geocode_response_malformed", address=address, error=str(e))
            raise LocationServiceUnavailableError() from e

        logger.info(
            "geocode_resolved",
            address=address,
            location=location.name,
            latitude=location.latitude,
            longitude=location.longitude
        )
        return location
