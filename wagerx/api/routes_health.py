"""
WAGERX - Health check routes.
"""

from fastapi import APIRouter
from wagerx.schemas import HealthResponse

router = APIRouter(prefix="", tags=["health"])


@router.get("/healthz", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return HealthResponse(status="OK")
