"""
Health check route for docbridge.

This endpoint is PUBLIC (no authentication required) and provides a simple
status check for load balancers, monitoring, and deployment verification.
"""

from fastapi import APIRouter

from docbridge.schemas.health import HealthResponse
from docbridge.utils.logging import get_logger

logger = get_logger(__name__)

# Create router with no prefix (mounted at root level in main.py)
router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint",
    tags=["system"],
    status_code=200,
)
async def health_check() -> HealthResponse:
    """Public health check endpoint."""
    logger.debug("Health check endpoint called")

    return HealthResponse(status="ok")
