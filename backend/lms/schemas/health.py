"""
Health check schema.
"""

from typing import Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """
    Health check response.

    Only the database decides the status: without Redis the API keeps
    serving, just without rate limiting.

    Attributes:
        status: "healthy" or "degraded"
        app_name: Application name
        version: API version
        environment: Current environment
        database: Database reachable
        rate_limiter: "up", "disabled" or "unavailable"
    """

    status: Literal["healthy", "degraded"]
    app_name: str
    version: str
    environment: str
    database: bool
    rate_limiter: Literal["up", "disabled", "unavailable"]

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "status": "healthy",
                    "app_name": "Library Management API",
                    "version": "1.0.0",
                    "environment": "production",
                    "database": True,
                    "rate_limiter": "up",
                }
            ]
        }
    }
