"""
FastAPI application configuration using Pydantic Settings.

Provides centralized configuration for:
- API settings (bind address, environment)
- Geocoding provider (Mapbox)
- Forecast provider (Weatherstack)
- Outbound HTTP timeouts and retry policy
- CORS, rate limiting and security headers
- Logging and monitoring

All settings support environment variable overrides and .env file loading.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field, field_validator
from typing import List, Optional
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables with the
    prefix "WEATHER_APP_" (e.g., WEATHER_APP_MAPBOX_ACCESS_TOKEN).

    Environment variables are loaded from:
    1. System environment
    2. .env file in the current directory
    3. Default values defined below
    """

    # =========================================================================
    # API Settings
    # =========================================================================

    app_name: str = Field(
        default="Weather App",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="API version"
    )

    debug: bool = Field(
        default=False,
        description="Debug mode - enables verbose logging and error traces"
    )
    environment: str = Field(
        default="production",
        description="Environment: development|staging|production"
    )

    host: str = Field(
        default="0.0.0.0",
        description="API bind host"
    )
    port: int = Field(
        default=3000,
        description="API bind port (also read from the plain PORT variable)",
        validation_alias=AliasChoices("weather_app_port", "port"),
        gt=0,
        lt=65536
    )

    # =========================================================================
    # Geocoding Settings (Mapbox)
    # =========================================================================

    mapbox_access_token: Optional[str] = Field(
        default=None,
        description="Mapbox access token used for forward geocoding"
    )
    mapbox_geocoding_url: str = Field(
        default="https://api.mapbox.com/geocoding/v5/mapbox.places",
        description="Mapbox forward geocoding endpoint (address is appended)"
    )
    geocoding_result_limit: int = Field(
        default=1,
        description="Number of candidate places requested from the geocoder",
        ge=1,
        le=10
    )

    # =========================================================================
    # Forecast Settings (Weatherstack)
    # =========================================================================

    weatherstack_access_key: Optional[str] = Field(
        default=None,
        description="Weatherstack API access key"
    )
    weatherstack_url: str = Field(
        default="http://api.weatherstack.com/current",
        description="Weatherstack current conditions endpoint"
    )
    forecast_units: str = Field(
        default="f",
        description="Weatherstack units: m (metric)|s (scientific)|f (fahrenheit)"
    )
    forecast_include_humidity: bool = Field(
        default=False,
        description="Append \"The humidity is N%.\" to the forecast text"
    )

    # =========================================================================
    # Outbound HTTP Settings
    # =========================================================================

    http_timeout: float = Field(
        default=10.0,
        description="Total timeout for a single upstream request (seconds)",
        gt=0
    )
    http_retry_attempts: int = Field(
        default=3,
        description="Attempts per upstream request, including the first one",
        ge=1,
        le=10
    )
    http_retry_initial_delay: float = Field(
        default=0.2,
        description="Delay before the first retry (seconds)",
        ge=0
    )
    http_retry_max_delay: float = Field(
        default=2.0,
        description="Upper bound for a single retry delay (seconds)",
        ge=0
    )

    # =========================================================================
    # CORS Settings
    # =========================================================================

    cors_enabled: bool = Field(
        default=True,
        description="Enable CORS middleware"
    )
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )
    cors_allow_methods: List[str] = Field(
        default=["GET", "OPTIONS"],
        description="Allowed HTTP methods"
    )
    cors_allow_headers: List[str] = Field(
        default=["*"],
        description="Allowed HTTP headers"
    )

    # =========================================================================
    # Rate Limiting Settings
    # =========================================================================

    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable rate limiting of the weather endpoint"
    )
    rate_limit_requests: int = Field(
        default=60,
        description="Max weather lookups per window and client",
        gt=0,
        le=10000
    )
    rate_limit_window: int = Field(
        default=60,
        description="Rate limit window (seconds)",
        gt=0,
        le=3600
    )

    # =========================================================================
    # Security Settings
    # =========================================================================

    security_headers_enabled: bool = Field(
        default=True,
        description="Enable security headers (X-Frame-Options, etc.)"
    )

    # =========================================================================
    # Monitoring and Logging
    # =========================================================================

    metrics_enabled: bool = Field(
        default=True,
        description="Expose Prometheus metrics on /metrics"
    )

    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG|INFO|WARNING|ERROR|CRITICAL"
    )
    log_format: str = Field(
        default="json",
        description="Log format: json|text"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}, got: {v}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}, got: {v}")
        return v_lower

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        allowed = ["json", "text"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got: {v}")
        return v_lower

    @field_validator("forecast_units")
    @classmethod
    def validate_forecast_units(cls, v: str) -> str:
        """Validate Weatherstack unit code."""
        allowed = ["m", "s", "f"]
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"forecast_units must be one of {allowed}, got: {v}")
        return v_lower

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: List[str]) -> List[str]:
        """Validate CORS origins are not empty."""
        if not v:
            return ["*"]
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def rate_limit(self) -> str:
        """Rate limit expression understood by slowapi."""
        return f"{self.rate_limit_requests} per {self.rate_limit_window} seconds"

    # =========================================================================
    # Model Config
    # =========================================================================

    model_config = SettingsConfigDict(
        env_prefix="WEATHER_APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once and shared across the application from:
    1. Environment variables with WEATHER_APP_ prefix
    2. .env file in the current directory
    3. Default values

    Returns:
        Settings: Cached settings instance

    Example:
        >>> from weather_api.src.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.weatherstack_url)
        http://api.weatherstack.com/current
    """
    return Settings()


def clear_settings_cache():
    """
    Clear the settings cache.

    Useful for testing when you need to reload settings with different
    environment variables.
    """
    get_settings.cache_clear()
