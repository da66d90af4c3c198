"""
FastAPI application entry point for the Weather App API.

This module provides the main FastAPI application with:
- Weather lookup, product search and help routes
- Health and readiness endpoints
- Request logging with correlation IDs
- Prometheus metrics
- CORS, security headers, and rate limiting
- Outbound HTTP session lifecycle
"""

import time
import uuid
import structlog
import uvicorn
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Any

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match
from starlette.exceptions import HTTPException as StarletteHTTPException

from prometheus_client import Counter, Histogram, Gauge, CONTENT_TYPE_LATEST

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.logging import configure_logging, bind_context, unbind_context
from shared.metrics import get_metrics_handler
from weather_api.src.config import get_settings, Settings
from weather_api.src.dependencies import (
    close_http_session,
    init_http_session,
    is_http_session_open,
    limiter,
)
from weather_api.src.routers import weather

# Get settings
settings: Settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    log_format=settings.log_format,
    service_name=settings.app_name,
    environment=settings.environment,
)

logger = structlog.get_logger(__name__)

PAGE_NOT_FOUND_MESSAGE = "Page not found."
UNMATCHED_ENDPOINT = "unmatched"

# ============================================================================
# Prometheus Metrics
# ============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"]
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently in progress",
    ["method", "endpoint"]
)

# ============================================================================
# Lifespan Management
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup and shutdown events.

    Opens the outbound HTTP session shared by the upstream clients and
    closes it on shutdown.
    """
    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment
    )

    try:
        await init_http_session()

        if not settings.mapbox_access_token:
            logger.warning("mapbox_access_token_missing")
        if not settings.weatherstack_access_key:
            logger.warning("weatherstack_access_key_missing")

        logger.info(
            "application_started",
            app_name=settings.app_name,
            version=settings.app_version,
            environment=settings.environment
        )

        yield

    except Exception as e:
        logger.error("application_startup_failed", error=str(e), exc_info=True)
        raise

    finally:
        logger.info("application_shutting_down")
        try:
            await close_http_session()
            logger.info("application_shutdown_complete")
        except Exception as e:
            logger.error("application_shutdown_failed", error=str(e), exc_info=True)

# ============================================================================
# FastAPI Application
# ============================================================================

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=(
        "Weather lookup API. Geocodes a free-text address and returns "
        "the current forecast for it."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=settings.debug,
)

app.state.limiter = limiter

# ============================================================================
# Middleware Configuration
# ============================================================================

# CORS Middleware
if settings.cors_enabled:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

# GZip Compression Middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)

# Request Logging and Metrics Middleware
def route_template(request: Request) -> str:
    """
    Return the path template of the route that will serve the request.

    Paths that match no route, or match one only partially (wrong method),
    share the "unmatched" label.
    """
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", UNMATCHED_ENDPOINT)
    return UNMATCHED_ENDPOINT


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging and metrics."""

    async def dispatch(self, request: Request, call_next):
        """Process request and log details."""
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())

        method = request.method
        path = request.url.path
        endpoint = route_template(request)
        client_ip = request.client.host if request.client else "unknown"

        bind_context(correlation_id=correlation_id)
        http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.time()

        logger.info(
            "request_started",
            method=method,
            path=path,
            client_ip=client_ip
        )

        try:
            response = await call_next(request)

            duration = time.time() - start_time

            http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status=response.status_code
            ).inc()

            http_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint
            ).observe(duration)

            logger.info(
                "request_completed",
                method=method,
                path=path,
                status_code=response.status_code,
                duration=f"{duration:.3f}s"
            )

            response.headers["X-Correlation-ID"] = correlation_id
            return response

        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                "request_failed",
                method=method,
                path=path,
                error=str(e),
                duration=f"{duration:.3f}s",
                exc_info=True
            )
            raise

        finally:
            http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()
            unbind_context("correlation_id")

app.add_middleware(RequestLoggingMiddleware)

# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        if settings.security_headers_enabled:
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response

app.add_middleware(SecurityHeadersMiddleware)

# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    logger.warning(
        "validation_error",
        path=request.url.path,
        errors=exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()}
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions; unmatched routes report "Page not found."."""
    detail = exc.detail
    if exc.status_code == status.HTTP_404_NOT_FOUND and detail == "Not Found":
        detail = PAGE_NOT_FOUND_MESSAGE

    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=detail
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail},
        headers=getattr(exc, "headers", None)
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(
        "unexpected_exception",
        path=request.url.path,
        error=str(exc),
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )

app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================================
# Health and Readiness Endpoints
# ============================================================================

@app.get("/health", tags=["Health"], response_class=JSONResponse)
async def health_check() -> Dict[str, Any]:
    """
    Health check endpoint.

    Returns basic health status without checking dependencies.
    Use for container health checks.
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment
    }

@app.get("/ready", tags=["Health"], response_class=JSONResponse)
async def readiness_check() -> JSONResponse:
    """
    Readiness check endpoint.

    Checks if application is ready to serve lookups by verifying:
    - The outbound HTTP session is open
    - Both upstream providers have credentials configured

    Returns:
        Readiness status with component health
    """
    checks = {
        "http_session": "healthy" if is_http_session_open() else "unhealthy",
        "geocoding": "configured" if settings.mapbox_access_token else "missing_credentials",
        "forecast": "configured" if settings.weatherstack_access_key else "missing_credentials",
    }

    all_ready = all(value in ("healthy", "configured") for value in checks.values())
    overall_status = "ready" if all_ready else "not_ready"
    status_code = status.HTTP_200_OK if all_ready else status.HTTP_503_SERVICE_UNAVAILABLE

    if not all_ready:
        logger.warning("readiness_check_failed", checks=checks)

    return JSONResponse(
        status_code=status_code,
        content={
            "status": overall_status,
            "service": settings.app_name,
            "version": settings.app_version,
            "checks": checks
        }
    )

# ============================================================================
# Metrics Endpoint
# ============================================================================

if settings.metrics_enabled:
    metrics_handler = get_metrics_handler()

    @app.get("/metrics", tags=["Monitoring"], response_class=PlainTextResponse)
    async def metrics() -> Response:
        """
        Prometheus metrics endpoint.

        Exposes application metrics in Prometheus format for scraping.
        """
        return Response(
            content=metrics_handler(),
            media_type=CONTENT_TYPE_LATEST
        )

# ============================================================================
# API Router Registration
# ============================================================================

app.include_router(weather.router)

# ============================================================================
# Application Entry Point
# ============================================================================

def run() -> None:
    """Run the application with Uvicorn."""
    logger.info(
        "starting_uvicorn_server",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )

    uvicorn.run(
        "weather_api.src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run()
