"""
Weather lookup service.

Chains the two upstream calls: the address is geocoded first, and only a
successful geocode is followed by a forecast request for its coordinates.
"""

from typing import Optional

import structlog

from shared.metrics import WeatherMetrics, get_weather_metrics
from weather_api.src.clients.forecast import ForecastClient
from weather_api.src.clients.geocoding import GeocodingClient
from weather_api.src.models.weather import WeatherResponse
from weather_api.src.utils.error_handler import WeatherLookupError

logger = structlog.get_logger(__name__)


class WeatherService:
    """Resolve an address to a forecast."""

    def __init__(
        self,
        geocoder: GeocodingClient,
        forecaster: ForecastClient,
        metrics: Optional[WeatherMetrics] = None,
    ):
        self.geocoder = geocoder
        self.forecaster = forecaster
        self.metrics = metrics or get_weather_metrics()

    async def get_weather(self, address: str) -> WeatherResponse:
        """
        Look up the forecast for an address.

        Args:
            address: Address as supplied by the caller; echoed back unchanged

        Returns:
            Forecast text, resolved place name and the original address

        Raises:
            WeatherLookupError: The first failure in the chain, message unchanged
        """
        try:
            location = await self.geocoder.geocode(address)
            forecast = await self.forecaster.forecast(location.latitude, location.longitude)
        except WeatherLookupError as e:
            self.metrics.lookups.labels(outcome=type(e).__name__).inc()
            logger.info("weather_lookup_failed", address=address, error=e.message)
            raise

        self.metrics.lookups.labels(outcome="success").inc()
        logger.info("weather_lookup_completed", address=address, location=location.name)

        return WeatherResponse(
            forecast=forecast,
            location=location.name,
            address=address,
        )
