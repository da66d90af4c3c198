"""
FastAPI dependency injection for upstream clients and services.

Provides injectable dependencies for:
- The shared outbound HTTP session (aiohttp)
- Geocoding and forecast client instances
- The weather lookup service
- The rate limiter applied to lookup endpoints

All dependencies use FastAPI's dependency injection system so tests can
swap them through ``app.dependency_overrides``.
"""

import aiohttp
import structlog
from typing import Optional
from fastapi import Depends
from slowapi import Limiter
from slowapi.util import get_remote_address

from weather_api.src.config import get_settings, Settings
from weather_api.src.clients.forecast import ForecastClient
from weather_api.src.clients.geocoding import GeocodingClient
from weather_api.src.services.weather_service import WeatherService
from weather_api.src.utils.error_handler import RetryConfig

logger = structlog.get_logger(__name__)


# ============================================================================
# RATE LIMITER
# ============================================================================

limiter = Limiter(
    key_func=get_remote_address,
    enabled=get_settings().rate_limit_enabled,
)


# ============================================================================
# OUTBOUND HTTP SESSION
# ============================================================================

_session: Optional[aiohttp.ClientSession] = None


async def init_http_session() -> aiohttp.ClientSession:
    """
    Initialize the shared outbound HTTP session.

    Should be called during application startup.

    Returns:
        aiohttp client session
    """
    global _session

    if _session is not None and not _session.closed:
        return _session

    settings = get_settings()
    _session = aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=settings.http_timeout),
        headers={"User-Agent": f"{settings.app_name}/{settings.app_version}"},
    )

    logger.info("http_session_initialized", timeout=settings.http_timeout)
    return _session


async def close_http_session():
    """
    Close the shared outbound HTTP session.

    Should be called during application shutdown.
    """
    global _session

    if _session is not None:
        await _session.close()
        logger.info("http_session_closed")
        _session = None


def get_http_session() -> aiohttp.ClientSession:
    """
    Get the shared outbound HTTP session.

    Returns:
        aiohttp client session

    Raises:
        RuntimeError: If the session is not initialized
    """
    if _session is None or _session.closed:
        logger.error("http_session_not_initialized")
        raise RuntimeError(
            "HTTP session not initialized. Call init_http_session() during startup."
        )
    return _session


def is_http_session_open() -> bool:
    """Check whether the shared HTTP session is usable."""
    return _session is not None and not _session.closed


# ============================================================================
# CLIENT AND SERVICE DEPENDENCIES
# ============================================================================


def get_retry_config(settings: Settings = Depends(get_settings)) -> RetryConfig:
    """Build the upstream retry policy from settings."""
    return RetryConfig(
        max_attempts=settings.http_retry_attempts,
        initial_delay=settings.http_retry_initial_delay,
        max_delay=settings.http_retry_max_delay,
    )


def get_geocoding_client(
    session: aiohttp.ClientSession = Depends(get_http_session),
    retry_config: RetryConfig = Depends(get_retry_config),
    settings: Settings = Depends(get_settings)
) -> GeocodingClient:
    """Get a Mapbox geocoding client bound to the shared session."""
    return GeocodingClient(
        session,
        access_token=settings.mapbox_access_token,
        base_url=settings.mapbox_geocoding_url,
        limit=settings.geocoding_result_limit,
        retry_config=retry_config,
    )


def get_forecast_client(
    session: aiohttp.ClientSession = Depends(get_http_session),
    retry_config: RetryConfig = Depends(get_retry_config),
    settings: Settings = Depends(get_settings)
) -> ForecastClient:
    """Get a Weatherstack forecast client bound to the shared session."""
    return ForecastClient(
        session,
        access_key=settings.weatherstack_access_key,
        base_url=settings.weatherstack_url,
        units=settings.forecast_units,
        include_humidity=settings.forecast_include_humidity,
        retry_config=retry_config,
    )


def get_weather_service(
    geocoder: GeocodingClient = Depends(get_geocoding_client),
    forecaster: ForecastClient = Depends(get_forecast_client)
) -> WeatherService:
    """
    Get weather lookup service.

    Example:
        @router.get("/weather")
        async def weather(service: WeatherService = Depends(get_weather_service)):
            return await service.get_weather("Boston")
    """
    return WeatherService(geocoder, forecaster)
