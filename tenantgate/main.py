"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tenantgate.config import settings
from tenantgate.core.cache import cache_manager
from tenantgate.core.database import db_manager
from tenantgate.core.error_tracking import error_tracker
from tenantgate.core.exceptions import ErrorKind, TenantGateException
from tenantgate.core.logging_config import get_logger, setup_logging
from tenantgate.core.middleware import RequestContextMiddleware
from tenantgate.core.performance import track_http_metrics

# Setup logging first
setup_logging()
logger = get_logger(__name__)

OPAQUE_INTERNAL_MESSAGE = "An internal error occurred. Please contact support."


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    db_manager.init()

    # Redis only backs rate limiting, which fails open
    try:
        await cache_manager.init()
    except Exception as e:
        logger.warning("redis_unavailable", error=str(e))

    logger.info("application_ready")

    yield

    logger.info("application_shutting_down")
    await db_manager.close()
    await cache_manager.close()
    logger.info("application_shutdown_complete")


def _error_body(request: Request, kind: ErrorKind, detail: str) -> dict:
    return {
        "error": kind.value,
        "detail": detail,
        "request_id": getattr(request.state, "request_id", None),
    }


def create_application() -> FastAPI:
    """Application factory."""

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-tenant authorization and credential redemption",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Middleware (first added = innermost)
    @app.middleware("http")
    async def performance_middleware(request: Request, call_next):
        return await track_http_metrics(request, call_next)

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(TenantGateException)
    async def tenantgate_exception_handler(
        request: Request,
        exc: TenantGateException,
    ) -> JSONResponse:
        if exc.kind == ErrorKind.INTERNAL:
            logger.error(
                "internal_failure",
                path=request.url.path,
                method=request.method,
                error=exc.message,
                exc_info=exc,
            )
            error_tracker.capture_exception(
                exc.__cause__ or exc,
                context={"request": {
                    "request_id": getattr(request.state, "request_id", None),
                    "path": request.url.path,
                    "method": request.method,
                }},
            )
            detail = OPAQUE_INTERNAL_MESSAGE
        else:
            logger.info(
                "request_rejected",
                path=request.url.path,
                kind=exc.kind.value,
                reason=exc.message,
            )
            detail = exc.message

        headers = {"WWW-Authenticate": "Bearer"} if exc.kind == ErrorKind.UNAUTHENTICATED else None
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.kind, detail),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning(
            "validation_error",
            path=request.url.path,
            errors=exc.errors(),
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Unhandled errors: full context server-side, opaque message to the caller."""
        request_id = getattr(request.state, "request_id", None)

        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )

        error_tracker.capture_exception(
            exc,
            context={"request": {
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
            }},
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(request, ErrorKind.INTERNAL, OPAQUE_INTERNAL_MESSAGE),
        )

    # Register routers
    from tenantgate.api.health_router import router as health_router
    from tenantgate.api.metrics_router import router as metrics_router
    from tenantgate.api.v1.router import v1_router

    app.include_router(health_router)

    if settings.metrics_enabled:
        app.include_router(metrics_router)

    app.include_router(v1_router, prefix="/api")

    @app.get("/", tags=["Root"])
    async def root() -> dict:
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "environment": settings.environment,
            "docs": "/docs" if settings.is_development else "Disabled in production",
            "health": "/health/live",
            "metrics": "/metrics" if settings.metrics_enabled else "Disabled",
        }

    logger.info("application_configured")
    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tenantgate.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload and settings.is_development,
        log_level=settings.log_level.lower(),
        access_log=False,  # We handle logging ourselves
    )
