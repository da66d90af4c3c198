"""
Weather lookup models.

Provides Pydantic schemas for:
- Geocoding results (Location)
- Current conditions reported by the forecast provider
- Weather, products and error responses returned by the API
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Provider Results
# ============================================================================


class Location(BaseModel):
    """Place resolved by the geocoding provider."""
    name: str = Field(
        ...,
        description="Full place name as reported by the geocoder"
    )
    latitude: float = Field(
        ...,
        ge=-90,
        le=90,
        description="Latitude in decimal degrees"
    )
    longitude: float = Field(
        ...,
        ge=-180,
        le=180,
        description="Longitude in decimal degrees"
    )

    model_config = {"frozen": True}


class CurrentConditions(BaseModel):
    """Current conditions reported by the forecast provider."""
    description: str = Field(
        ...,
        description="First weather description, e.g. 'Partly cloudy'"
    )
    temperature: float = Field(
        ...,
        description="Temperature in the configured units"
    )
    feels_like: float = Field(
        ...,
        description="Apparent temperature in the configured units"
    )
    humidity: Optional[float] = Field(
        None,
        ge=0,
        le=100,
        description="Relative humidity in percent"
    )

    def summary(self, include_humidity: bool = False) -> str:
        """
        Render the forecast text.

        Args:
            include_humidity: Append a humidity sentence when one is reported
        """
        text = (
            f"{self.description}. It is currently {self.temperature:g} degrees out. "
            f"It feels like {self.feels_like:g} degrees out."
        )
        if include_humidity and self.humidity is not None:
            text += f" The humidity is {self.humidity:g}%."
        return text


# ============================================================================
# API Responses
# ============================================================================


class WeatherResponse(BaseModel):
    """Successful weather lookup."""
    forecast: str = Field(..., description="Forecast text for the location")
    location: str = Field(..., description="Place name resolved by the geocoder")
    address: str = Field(..., description="Address exactly as supplied by the caller")

    model_config = {
        "json_schema_extra": {
            "example": {
                "forecast": "Partly cloudy. It is currently 71 degrees out. It feels like 71 degrees out.",
                "location": "Philadelphia, Pennsylvania, United States",
                "address": "philadelphia"
            }
        }
    }


class ProductsResponse(BaseModel):
    """Product search result."""
    products: List[Any] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error payload returned in place of a result."""
    error: str = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {"error": "You must provide an address."}
        }
    }
