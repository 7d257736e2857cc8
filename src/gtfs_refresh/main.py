"""FastAPI application entry point."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gtfs_refresh.config import get_settings
from gtfs_refresh.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from gtfs_refresh.routers.refresh import router as refresh_router
from gtfs_refresh.routers.schedule import router as schedule_router
from gtfs_refresh.services.gtfs_static.refresher import get_refresher, reset_refresher
from gtfs_refresh.services.gtfs_static.scheduler import get_scheduler, shutdown_scheduler
from gtfs_refresh.services.store import StoreConfigError, close_store, get_store

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    setup_logging()
    logger.info("Starting GTFS Schedule Refresh API")

    settings = get_settings()
    if settings.refresh_auto_start:
        await get_scheduler().start()

    yield

    await shutdown_scheduler()
    reset_refresher()

    logger.info("Shutting down GTFS Schedule Refresh API")
    await close_store()


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Refreshes GTFS schedule tables and serves filtered reads over them",
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.environment == "development" else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next: Any) -> Any:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        bind_request_context(request_id=request_id, path=request.url.path)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        clear_request_context()
        return response

    app.include_router(refresh_router)
    app.include_router(schedule_router)

    @app.get("/health", tags=["meta"])
    async def health_check() -> dict[str, Any]:
        """Health check endpoint returning application status."""
        settings = get_settings()
        missing_env = settings.missing_required_env()
        store_healthy: bool | None = None
        scheduler_status: dict[str, Any] | None = None
        last_report = None
        try:
            store = get_store()
        except StoreConfigError:
            # Reported through missing_env; nothing to ping
            store = None
        if store is not None:
            store_healthy = await store.ping()
            scheduler_status = get_scheduler().get_status()
            last_report = get_refresher().last_report

        status = "unhealthy" if missing_env else "healthy" if store_healthy else "degraded"

        issues: list[str] = []
        if missing_env:
            issues.append("Missing required environment variables: " + ", ".join(missing_env))
        if store_healthy is False:
            issues.append(f"Table store ({settings.store_backend}) is unreachable")
        if settings.refresh_auto_start and not (scheduler_status and scheduler_status["running"]):
            issues.append("Refresh scheduler is not running")

        return {
            "service": settings.app_name,
            "status": status,
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": {
                "store": store_healthy,
                "refresh": {
                    "schedulerRunning": bool(scheduler_status and scheduler_status["running"]),
                    "runCount": scheduler_status["run_count"] if scheduler_status else 0,
                    "lastRunAt": scheduler_status["last_run_at"] if scheduler_status else None,
                    "lastStatus": last_report.status if last_report else None,
                },
            },
            "issues": issues,
        }

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        _request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(StoreConfigError)
    async def store_config_exception_handler(
        _request: Request, exc: StoreConfigError
    ) -> JSONResponse:
        logger.error("Store is not configured", error=str(exc))
        return _error_response(503, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        return _error_response(400, f"invalid {location}: {first.get('msg', 'bad request')}")

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", exc_info=exc, path=request.url.path)
        return _error_response(500, "internal server error")

    return app


app = create_app()
