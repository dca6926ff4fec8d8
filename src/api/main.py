"""FastAPI application for Taskboard API.

Provides the main application instance with routers, middleware,
and exception handlers configured.
"""

import logging
import os
import sys
import time as _time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request

# Configure logging to stdout for uvicorn to capture
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
# Ensure our application loggers are captured
logging.getLogger("src").setLevel(logging.INFO)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.middleware.auth import maybe_require_api_key
from src.api.routes import filters, tasks
from src.db.connection import async_engine, async_init_db, close_async_db
from src.errors.domain import FilterFetchError
from src.filters.config import validate_filter_cache_config
from src.services.filter_provider import get_filter_cache, get_filter_compiler

logger = logging.getLogger(__name__)

# Module-level state for health endpoint
_startup_time: float = 0.0


def _parse_allowed_origins() -> list[str]:
    """Parse comma-separated CORS allowlist from ALLOWED_ORIGINS env var."""
    raw = os.environ.get("ALLOWED_ORIGINS", "").strip()
    if not raw:
        return []
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Async lifespan: config validation, schema creation, shutdown cleanup."""
    global _startup_time

    # --- Startup ---
    _startup_time = _time.time()

    # Fail fast if the filter cache settings are inconsistent
    validate_filter_cache_config()

    await async_init_db()
    if async_engine.dialect.name != "postgresql":
        logger.warning(
            "Database dialect %s: filter CRUD works, task listing will return 503",
            async_engine.dialect.name,
        )
    get_filter_compiler()

    yield

    # --- Shutdown ---
    get_filter_cache().invalidate_all()
    await close_async_db()


app = FastAPI(
    title="Taskboard API",
    description="Task listing with persisted and custom filters",
    version="0.1.0",
    lifespan=lifespan,
)

# Optional API auth for /api/* when TASKBOARD_API_KEY is configured.
app.middleware("http")(maybe_require_api_key)

# CORS allowlist is env-driven. If unset, CORS is disabled (same-origin only).
allowed_origins = _parse_allowed_origins()
if allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key", "X-User-Id"],
    )


@app.exception_handler(FilterFetchError)
async def filter_fetch_error_handler(
    request: Request, exc: FilterFetchError
) -> JSONResponse:
    """Report unreadable filter definitions as a temporary outage.

    Listing without the requested filters would widen the result set,
    so the request fails instead.

    Args:
        request: The incoming request.
        exc: The FilterFetchError exception.

    Returns:
        JSONResponse with status 503.
    """
    logger.error("filter_fetch_failed path=%s ids=%s", request.url.path, exc.filter_ids)
    return JSONResponse(
        status_code=503,
        content={
            "detail": "Filters are temporarily unavailable. Retry the request.",
            "filter_ids": exc.filter_ids,
        },
    )


# Include routers
app.include_router(filters.router, prefix="/api/v1")
app.include_router(tasks.router, prefix="/api/v1")


@app.get("/health")
def health_check() -> dict:
    """Health check endpoint with process status.

    Returns:
        Dictionary with health status, uptime and filter cache size.
    """
    uptime = int(_time.time() - _startup_time) if _startup_time else 0
    return {
        "status": "healthy",
        "version": "0.1.0",
        "uptime_seconds": uptime,
        "filter_cache_entries": len(get_filter_cache()),
    }


@app.get("/readyz")
async def readiness_check():
    """Dependency-aware readiness check for local/container deployments."""
    from sqlalchemy import text

    from src.db.connection import get_async_db_context

    uptime = int(_time.time() - _startup_time) if _startup_time else 0
    checks: dict[str, dict[str, Any]] = {}

    # DB connectivity gate.
    try:
        async with get_async_db_context() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = {"status": "ok"}
    except Exception as exc:
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "uptime_seconds": uptime,
                "checks": {
                    "database": {"status": "error", "message": str(exc)},
                },
            },
        )

    return {
        "status": "ready",
        "uptime_seconds": uptime,
        "checks": checks,
    }


@app.get("/api")
def api_root() -> dict:
    """API root with links to docs.

    Returns:
        Dictionary with API info and links.
    """
    return {
        "name": "Taskboard API",
        "version": "0.1.0",
        "docs": "/docs",
        "redoc": "/redoc",
    }
