"""FastAPI service for the Weather App.

This package provides REST API endpoints that geocode an address and
return the current forecast for it.
"""

__version__ = "1.0.0"
