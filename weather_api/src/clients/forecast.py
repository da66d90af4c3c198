"""Weatherstack current conditions client."""

import asyncio
from typing import Optional

import aiohttp
import structlog
from pydantic import ValidationError

from shared.metrics import WeatherMetrics
from weather_api.src.clients.base import UpstreamClient
from weather_api.src.models.weather import CurrentConditions
from weather_api.src.utils.error_handler import (
    ForecastNotFoundError,
    ForecastServiceUnavailableError,
    RetryConfig,
)

logger = structlog.get_logger(__name__)


class ForecastClient(UpstreamClient):
    """Async client for the Weatherstack ``/current`` endpoint."""

    service_name = "forecast"

    def __init__(
        self,
        session: aiohttp.ClientSession,
        access_key: Optional[str],
        base_url: str = "http://api.weatherstack.com/current",
        units: str = "f",
        include_humidity: bool = False,
        retry_config: Optional[RetryConfig] = None,
        metrics: Optional[WeatherMetrics] = None,
    ):
        """
        Initialize forecast client.

        Args:
            session: Shared aiohttp session
            access_key: Weatherstack access key
            base_url: Current conditions endpoint
            units: Unit code (m, s or f)
            include_humidity: Append the humidity sentence to the forecast text
            retry_config: Retry policy for transient failures
            metrics: Metrics sink
        """
        super().__init__(session, retry_config=retry_config, metrics=metrics)
        self.access_key = access_key
        self.base_url = base_url
        self.units = units
        self.include_humidity = include_humidity

    async def current_conditions(self, latitude: float, longitude: float) -> CurrentConditions:
        """
        Fetch current conditions at a coordinate.

        Raises:
            ForecastServiceUnavailableError: Provider unreachable or request rejected
            ForecastNotFoundError: Provider reported an error for the query
        """
        params = {
            "access_key": self.access_key or "",
            "query": f"{latitude},{longitude}",
            "units": self.units,
        }

        try:
            body = await self.get_json(self.base_url, params)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(
                "forecast_request_failed",
                latitude=latitude,
                longitude=longitude,
                error_type=type(e).__name__,
                error=str(e)
            )
            raise ForecastServiceUnavailableError() from e

        if not isinstance(body, dict):
            logger.error("forecast_response_malformed", body_type=type(body).__name__)
            raise ForecastServiceUnavailableError()

        if body.get("error"):
            logger.info(
                "forecast_provider_error",
                latitude=latitude,
                longitude=longitude,
                provider_error=body["error"]
            )
            raise ForecastNotFoundError()

        try:
            current = body["current"]
            conditions = CurrentConditions(
                description=current["weather_descriptions"][0],
                temperature=current["temperature"],
                feels_like=current["feelslike"],
                humidity=current.get("humidity"),
            )
        except (KeyError, IndexError, TypeError, ValidationError) as e:
            logger.error("forecast_response_malformed", error=str(e))
            raise ForecastServiceUnavailableError() from e

        return conditions

    async def forecast(self, latitude: float, longitude: float) -> str:
        """
        Fetch the forecast text for a coordinate.

        Args:
            latitude: Latitude in decimal degrees
            longitude: Longitude in decimal degrees

        Returns:
            One-sentence summary of current conditions
        """
        conditions = await self.current_conditions(latitude, longitude)
        return conditions.summary(include_humidity=self.include_humidity)
