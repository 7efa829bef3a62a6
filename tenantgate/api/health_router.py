"""
Health check endpoints for monitoring and orchestration.

Provides:
- Liveness probe: Is the app running?
- Readiness probe: Can the app serve traffic?
"""

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from tenantgate.config import settings
from tenantgate.core.cache import cache_manager
from tenantgate.core.database import db_manager

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health/live")
async def liveness() -> dict:
    """
    Liveness probe.

    Returns:
        200: Application is running
    """
    return {"status": "alive", "version": settings.app_version}


@router.get("/health/ready")
async def readiness() -> JSONResponse:
    """
    Readiness probe.

    The database is required. Redis only backs rate limiting, which fails
    open, so an unreachable Redis is reported as degraded but still ready.

    Returns:
        200: Ready to serve traffic
        503: Not ready (database unavailable)
    """
    checks = {}
    is_ready = True

    try:
        async with db_manager.session() as db:
            await db.execute(text("SELECT 1"))
            checks["database"] = {"status": "healthy"}
    except Exception as e:
        logger.warning("readiness_database_failed", error=str(e))
        checks["database"] = {"status": "unhealthy"}
        is_ready = False

    if cache_manager.is_ready and await cache_manager.ping():
        checks["redis"] = {"status": "healthy"}
    else:
        checks["redis"] = {"status": "degraded"}

    status_code = status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if is_ready else "not_ready",
            "checks": checks,
        }
    )
