"""
Health Routes
=============

FastAPI routes for health check endpoints.
"""

from fastapi import APIRouter, Request

from marky.config.logging import get_logger
from marky.models.schemas import HealthStatus

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthStatus)
async def health_check(request: Request) -> HealthStatus:
    """Report preview server status and broadcast progress."""
    state = request.app.state
    broadcaster = state.broadcaster

    health_status = HealthStatus(
        status="closed" if broadcaster.closed else "healthy",
        version=state.settings.app_version,
        subscribers=broadcaster.subscriber_count,
        version_counter=broadcaster.version,
    )

    logger.debug(
        "Health check completed",
        status=health_status.status,
        subscribers=health_status.subscribers,
        version_counter=health_status.version_counter,
    )
    return health_status
