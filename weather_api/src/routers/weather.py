"""
Weather router.

Provides REST API endpoints for:
- Weather lookup by address (geocode, then forecast)
- Product search
- Help articles

Lookup failures are reported in the body as {"error": message} with a 200
status, which is what the browser client checks for.
"""

import structlog
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from weather_api.src.config import get_settings
from weather_api.src.dependencies import get_weather_service, limiter
from weather_api.src.models.weather import ErrorResponse, ProductsResponse, WeatherResponse
from weather_api.src.services.weather_service import WeatherService
from weather_api.src.utils.error_handler import WeatherLookupError

logger = structlog.get_logger(__name__)

MISSING_ADDRESS_MESSAGE = "You must provide an address."
MISSING_SEARCH_MESSAGE = "You must provide a search term."
HELP_ARTICLE_NOT_FOUND_MESSAGE = "Help article not found."

router = APIRouter(tags=["Weather"])


def error_response(message: str) -> JSONResponse:
    """Build the {"error": message} payload."""
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=ErrorResponse(error=message).model_dump()
    )


# ============================================================================
# WEATHER
# ============================================================================


@router.get(
    "/weather",
    response_model=WeatherResponse,
    summary="Weather by address",
    description="""
    Geocode the address and return the current forecast for it.

    **Query Parameters:**
    - address: Free-text address, e.g. "Boston"

    **Response (200):**
    - forecast, location and address on success
    - error when the address is missing or either lookup fails
    """,
    responses={
        200: {
            "description": "Forecast or lookup error",
            "content": {
                "application/json": {
                    "examples": {
                        "forecast": {"value": WeatherResponse.model_config["json_schema_extra"]["example"]},
                        "error": {"value": {"error": MISSING_ADDRESS_MESSAGE}},
                    }
                }
            }
        }
    }
)
@limiter.limit(get_settings().rate_limit)
async def get_weather(
    request: Request,
    address: Optional[str] = Query(None, description="Address to look up"),
    weather_service: WeatherService = Depends(get_weather_service)
):
    """
    Look up the forecast for an address.

    Args:
        request: HTTP request (used for rate limiting)
        address: Address to look up
        weather_service: Weather lookup service

    Returns:
        Weather response or error payload
    """
    if not address or not address.strip():
        logger.info("weather_request_rejected", reason="missing_address")
        return error_response(MISSING_ADDRESS_MESSAGE)

    try:
        return await weather_service.get_weather(address)
    except WeatherLookupError as e:
        return error_response(e.message)


# ============================================================================
# PRODUCTS
# ============================================================================


@router.get(
    "/products",
    response_model=ProductsResponse,
    summary="Product search"
)
async def search_products(
    search: Optional[str] = Query(None, description="Search term")
):
    """Search products. The catalogue is empty, so a valid search returns no products."""
    if not search:
        return error_response(MISSING_SEARCH_MESSAGE)

    logger.info("products_searched", search=search)
    return ProductsResponse(products=[])


# ============================================================================
# HELP
# ============================================================================


@router.get("/help/{article:path}", include_in_schema=False)
async def get_help_article(article: str):
    """No help articles are published."""
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=HELP_ARTICLE_NOT_FOUND_MESSAGE
    )
