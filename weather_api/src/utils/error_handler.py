"""
Error handling utilities with exponential backoff retry logic.

Provides the weather lookup exception hierarchy, error classification for
transient vs permanent upstream failures, and a retry decorator used by the
geocoding and forecast clients.
"""

import asyncio
import functools
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Tuple, Type

import aiohttp
import structlog


logger = structlog.get_logger(__name__)


# ============================================================================
# Lookup Errors
# ============================================================================


class WeatherLookupError(Exception):
    """Base class for errors surfaced to API callers as {"error": message}."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LocationServiceUnavailableError(WeatherLookupError):
    """The geocoding provider could not be reached or rejected the request."""

    def __init__(self, message: str = "Unable to connect to location services!"):
        super().__init__(message)


class LocationNotFoundError(WeatherLookupError):
    """The geocoding provider returned no match for the address."""

    def __init__(self, message: str = "Unable to find location. Try another search."):
        super().__init__(message)


class ForecastServiceUnavailableError(WeatherLookupError):
    """The forecast provider could not be reached or rejected the request."""

    def __init__(self, message: str = "Unable to connect to weather service!"):
        super().__init__(message)


class ForecastNotFoundError(WeatherLookupError):
    """The forecast provider reported an error for the coordinates."""

    def __init__(self, message: str = "Unable to find location"):
        super().__init__(message)


# ============================================================================
# Retry Support
# ============================================================================


class ErrorCategory(Enum):
    """Error category classification"""
    RETRYABLE = "retryable"
    NON_RETRYABLE = "non_retryable"
    RATE_LIMITED = "rate_limited"


@dataclass
class RetryConfig:
    """Configuration for retry behavior"""
    max_attempts: int = 3
    initial_delay: float = 0.2  # seconds
    max_delay: float = 2.0  # seconds
    exponential_base: float = 2.0
    jitter: bool = True
    jitter_range: float = 0.2  # +/- 20%


@dataclass
class RetryMetrics:
    """Metrics for retry operations"""
    total_attempts: int = 0
    successful_attempts: int = 0
    failed_attempts: int = 0
    retry_count: int = 0
    total_retry_duration_ms: float = 0.0
    last_error: Optional[str] = None
    last_error_timestamp: Optional[datetime] = None


RETRYABLE_EXCEPTIONS = (
    aiohttp.ClientConnectionError,
    aiohttp.ServerTimeoutError,
    asyncio.TimeoutError,
    ConnectionError,
    TimeoutError,
)

NON_RETRYABLE_EXCEPTIONS = (
    aiohttp.ContentTypeError,
    ValueError,
    TypeError,
    KeyError,
)

RETRYABLE_STATUS_CODES = {408, 500, 502, 503, 504}


def classify_error(exception: Exception) -> ErrorCategory:
    """
    Classify an exception as retryable or non-retryable.

    Args:
        exception: The exception to classify

    Returns:
        ErrorCategory indicating retry behavior
    """
    if isinstance(exception, aiohttp.ClientResponseError) and not isinstance(
        exception, aiohttp.ContentTypeError
    ):
        if exception.status == 429:
            return ErrorCategory.RATE_LIMITED
        if exception.status in RETRYABLE_STATUS_CODES:
            return ErrorCategory.RETRYABLE
        return ErrorCategory.NON_RETRYABLE

    if isinstance(exception, NON_RETRYABLE_EXCEPTIONS):
        return ErrorCategory.NON_RETRYABLE

    if isinstance(exception, RETRYABLE_EXCEPTIONS):
        return ErrorCategory.RETRYABLE

    return ErrorCategory.NON_RETRYABLE


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """
    Calculate delay for retry attempt with exponential backoff and jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        config: Retry configuration

    Returns:
        Delay in seconds
    """
    delay = config.initial_delay * (config.exponential_base ** attempt)
    delay = min(delay, config.max_delay)

    if config.jitter:
        jitter = random.uniform(-config.jitter_range, config.jitter_range)
        delay = delay * (1 + jitter)

    return max(0, delay)


def retry_with_backoff(
    config: Optional[RetryConfig] = None,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    on_retry: Optional[Callable] = None,
    metrics: Optional[RetryMetrics] = None
):
    """
    Decorator for retrying coroutines with exponential backoff.

    Rate limited responses are retried like transient ones; everything
    classified as non-retryable is raised immediately.

    Args:
        config: Retry configuration (uses defaults if None)
        retryable_exceptions: Extra exception types to always retry
        on_retry: Optional callback called on each retry
        metrics: Optional metrics object to track retry stats

    Returns:
        Decorated coroutine function with retry logic

    Example:
        @retry_with_backoff(RetryConfig(max_attempts=5))
        async def fetch_forecast(session, url):
            ...
    """
    if config is None:
        config = RetryConfig()

    if metrics is None:
        metrics = RetryMetrics()

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(config.max_attempts):
                try:
                    metrics.total_attempts += 1
                    result = await func(*args, **kwargs)
                    metrics.successful_attempts += 1
                    return result

                except Exception as e:
                    if retryable_exceptions and isinstance(e, retryable_exceptions):
                        error_category = ErrorCategory.RETRYABLE
                    else:
                        error_category = classify_error(e)

                    metrics.last_error = str(e)
                    metrics.last_error_timestamp = datetime.now(timezone.utc)

                    if error_category == ErrorCategory.NON_RETRYABLE:
                        logger.warning(
                            "non_retryable_error",
                            function=func.__name__,
                            attempt=attempt + 1,
                            error_type=type(e).__name__,
                            error=str(e)
                        )
                        metrics.failed_attempts += 1
                        raise

                    if attempt == config.max_attempts - 1:
                        logger.error(
                            "max_retries_exhausted",
                            function=func.__name__,
                            max_attempts=config.max_attempts,
                            total_retry_duration_ms=metrics.total_retry_duration_ms,
                            error_type=type(e).__name__,
                            error=str(e)
                        )
                        metrics.failed_attempts += 1
                        raise

                    delay = calculate_delay(attempt, config)
                    metrics.retry_count += 1
                    metrics.total_retry_duration_ms += delay * 1000

                    logger.warning(
                        "retrying_operation",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_attempts=config.max_attempts,
                        delay_seconds=round(delay, 3),
                        error_type=type(e).__name__,
                        error_category=error_category.value
                    )

                    if on_retry:
                        on_retry(attempt, e, delay)

                    await asyncio.sleep(delay)

        return wrapper

    return decorator
