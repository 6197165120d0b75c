"""
Health Check Router - Accelerator Evaluation Platform
evaluation_platform/routers/health.py

Reports the version, the storage backend and Redis reachability.
"""
import logging
from datetime import datetime, timezone
from typing import Dict

import redis
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from evaluation_platform.config import settings
from evaluation_platform.core.dependencies import get_repository
from evaluation_platform.repositories.contracts import EvaluationRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


#  Schemas


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    storage_backend: str
    dependencies: Dict[str, str]


#  Dependency Health Checks


def check_storage(repository: EvaluationRepository) -> str:
    if repository.ping():
        return f"healthy (backend: {settings.STORAGE_BACKEND})"
    return f"unhealthy: {settings.STORAGE_BACKEND} unreachable"


def check_redis() -> str:
    """Check Redis connection health."""
    if not settings.CACHE_ENABLED:
        return "disabled"
    try:
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
        )
        client.ping()
        client.close()
        return "healthy"
    except redis.RedisError as e:
        error_msg = str(e)[:100] + "..." if len(str(e)) > 100 else str(e)
        logger.warning(f"Redis health check failed: {error_msg}")
        return f"unhealthy: {error_msg}"


#  Routes


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        200: {"description": "Storage reachable"},
        503: {"description": "Storage unreachable"},
    },
    summary="Health check",
)
async def health_check(repository: EvaluationRepository = Depends(get_repository)):
    dependencies = {
        "storage": check_storage(repository),
        "redis": check_redis(),
    }
    # Redis is a cache; the service keeps working without it
    storage_ok = dependencies["storage"].startswith("healthy")
    redis_ok = not dependencies["redis"].startswith("unhealthy")

    response = HealthResponse(
        status="healthy" if storage_ok and redis_ok else ("degraded" if storage_ok else "unhealthy"),
        timestamp=datetime.now(timezone.utc),
        version=settings.APP_VERSION,
        storage_backend=settings.STORAGE_BACKEND,
        dependencies=dependencies,
    )
    if storage_ok:
        return response
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json"),
    )


@router.get("/health/redis", summary="Check Redis connection")
async def health_redis():
    result = check_redis()
    return {
        "service": "redis",
        "status": result,
        "is_healthy": result.startswith("healthy"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
