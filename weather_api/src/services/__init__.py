"""Business logic services.

This package contains service classes that orchestrate the upstream
clients and provide high-level functionality to API endpoints.
"""
