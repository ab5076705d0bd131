"""Health check endpoints."""

from fastapi import APIRouter

from src.config import get_settings
from src.core.database import AsyncCassandraConnection
from src.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness() -> dict[str, str | bool]:
    """Readiness probe with backing service state.

    Redis is optional, so a missing cache never makes the API unready.
    """
    settings = get_settings()
    database = AsyncCassandraConnection.is_connected()
    return {
        "status": "ready" if database else "degraded",
        "environment": settings.environment,
        "debug": settings.debug,
        "database": database,
        "cache": get_redis() is not None,
    }


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
