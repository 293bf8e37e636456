"""Health check endpoints."""

import asyncio

from fastapi import APIRouter, status
from pydantic import BaseModel

from agenda.config import settings
from agenda.core.redis_client import check_redis_connection
from agenda.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str
    # Only filled by the detailed check
    database: str | None = None
    redis: str | None = None


def _label(healthy: bool) -> str:
    return "healthy" if healthy else "unhealthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Report that the process is up."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
)
async def detailed_health_check() -> HealthResponse:
    """
    Check the database and Redis.

    Redis only backs caches, so the service is "degraded" rather than down
    when either dependency fails; calendar reads still fall back to the store.
    """
    db_healthy, redis_healthy = await asyncio.gather(
        check_database_connection(),
        check_redis_connection(),
    )
    return HealthResponse(
        status="healthy" if db_healthy and redis_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database=_label(db_healthy),
        redis=_label(redis_healthy),
    )


@router.get("/ping", status_code=status.HTTP_200_OK, summary="Simple ping")
async def ping() -> dict[str, str]:
    return {"message": "pong"}
