"""Weather App service package."""
