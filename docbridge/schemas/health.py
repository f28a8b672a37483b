"""
Health check endpoint schemas.

The health endpoint is PUBLIC (no authentication required).
"""

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Response model for GET /health."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"status": "ok", "service": "docbridge"}}
    )

    status: str = Field(
        default="ok",
        description="Health status of the API (always 'ok' if responding)",
        examples=["ok"]
    )
    service: str = Field(default="docbridge", description="Service name")
