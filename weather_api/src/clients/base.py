"""Shared plumbing for upstream JSON APIs.

Wraps a single ``aiohttp.ClientSession`` GET with retry, latency metrics and
structured logging. Provider clients subclass it and translate failures into
weather lookup errors.
"""

import time
from typing import Any, Dict, Optional

import aiohttp
import structlog

from shared.metrics import WeatherMetrics, get_weather_metrics
from weather_api.src.utils.error_handler import RetryConfig, retry_with_backoff

logger = structlog.get_logger(__name__)


class UpstreamClient:
    """Base class for upstream JSON API clients."""

    service_name = "upstream"

    def __init__(
        self,
        session: aiohttp.ClientSession,
        retry_config: Optional[RetryConfig] = None,
        metrics: Optional[WeatherMetrics] = None,
    ):
        """
        Initialize upstream client.

        Args:
            session: Shared aiohttp session (owned by the application)
            retry_config: Retry policy for transient failures
            metrics: Metrics sink (defaults to the process-wide instance)
        """
        self.session = session
        self.retry_config = retry_config or RetryConfig()
        self.metrics = metrics or get_weather_metrics()
        self._fetch = retry_with_backoff(config=self.retry_config)(self._fetch_once)

    async def _fetch_once(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        async with self.session.get(url, params=params) as response:
            response.raise_for_status()
            return await response.json(content_type=None)

    async def get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        GET a JSON document, retrying transient failures.

        Args:
            url: Absolute request URL
            params: Query parameters

        Returns:
            Decoded JSON body

        Raises:
            aiohttp.ClientError, asyncio.TimeoutError: When the request
                ultimately fails
        """
        start_time = time.time()
        try:
            body = await self._fetch(url, params)
        except Exception:
            self.metrics.upstream_requests.labels(
                service=self.service_name, outcome="error"
            ).inc()
            raise
        finally:
            self.metrics.upstream_duration.labels(
                service=self.service_name
            ).observe(time.time() - start_time)

        self.metrics.upstream_requests.labels(
            service=self.service_name, outcome="success"
        ).inc()
        logger.debug(
            "upstream_response_received",
            service=self.service_name,
            duration=f"{time.time() - start_time:.3f}s"
        )
        return body
