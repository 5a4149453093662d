"""
Health check endpoints (v1).

Provides health, readiness, and liveness probes with consistent
response patterns and comprehensive OpenAPI documentation.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.dependencies import DB, AppSettings
from models.schemas.health import (
    DatabaseHealth,
    HealthResponse,
    LivenessResponse,
    ProviderInfo,
    ReadinessResponse,
)
from utils.db_utils import check_pool_health

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Health check with database pool statistics and provider configuration.",
    responses={
        200: {
            "description": "System health status",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "version": "1.0.0",
                        "database": {
                            "healthy": True,
                            "pool_size": 10,
                            "pool_free": 8,
                            "pool_used": 2,
                        },
                        "provider": {
                            "model": "LongCat-Flash-Chat",
                            "base_url": "https://api.longcat.chat/openai/v1",
                        },
                    }
                }
            },
        }
    },
)
async def health_check(db: DB, settings: AppSettings) -> HealthResponse:
    """Health check endpoint."""
    db_health_data = await check_pool_health(db)
    db_healthy = bool(db_health_data.get("healthy", False))

    return HealthResponse(
        status="healthy" if db_healthy else "unhealthy",
        version=settings.app_version,
        database=DatabaseHealth(
            healthy=db_healthy,
            pool_size=db_health_data.get("pool_size", 0),
            pool_free=db_health_data.get("free_connections", 0),
            pool_used=db_health_data.get("used_connections", 0),
            error=None if db_healthy else "Database unavailable",
        ),
        provider=ProviderInfo(model=settings.llm_model, base_url=settings.llm_base_url_str),
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="Kubernetes-style readiness probe for load balancer integration.",
    responses={
        200: {
            "description": "Service ready",
            "content": {"application/json": {"example": {"ready": True}}},
        },
        503: {
            "description": "Service not ready",
            "content": {"application/json": {"example": {"ready": False, "error": "Database unavailable"}}},
        },
    },
)
async def readiness_check(db: DB) -> ReadinessResponse | JSONResponse:
    """Kubernetes-style readiness probe."""
    try:
        async with db.acquire(timeout=5.0) as conn:
            await conn.fetchval("SELECT 1")
        return ReadinessResponse(ready=True)
    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "error": str(e)},
        )


@router.get(
    "/health/live",
    response_model=LivenessResponse,
    summary="Liveness probe",
    description="Kubernetes-style liveness probe to confirm process is running.",
    responses={
        200: {
            "description": "Process alive",
            "content": {"application/json": {"example": {"alive": True}}},
        }
    },
)
async def liveness_check() -> LivenessResponse:
    """Kubernetes-style liveness probe."""
    return LivenessResponse(alive=True)
