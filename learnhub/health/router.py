"""Health check endpoints."""

from fastapi import APIRouter, Request, status
from fastapi.responses import ORJSONResponse

from learnhub.config import get_settings
from learnhub.core.database import AsyncCassandraConnection


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> ORJSONResponse:
    """Readiness probe - the database must be connected and services built."""
    settings = get_settings()
    database = AsyncCassandraConnection.is_connected()
    services = getattr(request.app.state, "progress_service", None) is not None
    ready = database and services

    return ORJSONResponse(
        status_code=(
            status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE
        ),
        content={
            "status": "ready" if ready else "not_ready",
            "database": database,
            "services": services,
            "environment": settings.environment,
        },
    )


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
