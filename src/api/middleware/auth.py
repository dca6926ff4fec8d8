"""Request authentication for the Taskboard API.

Session verification happens upstream (gateway or auth service), which
forwards the authenticated user id in the X-User-Id header. This module:

- optionally enforces a shared API key on /api/ paths when
  TASKBOARD_API_KEY is set, so only the trusted upstream can call in;
- exposes ``get_current_user_id`` as a FastAPI dependency.
"""

from __future__ import annotations

import hmac
import logging
import os

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"

_PUBLIC_PATH_PREFIXES = (
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
)


def get_expected_api_key() -> str:
    """Return configured API key; empty string means key check disabled."""
    return os.environ.get("TASKBOARD_API_KEY", "").strip()


def should_authenticate(path: str) -> bool:
    """Return True when this path should be protected by API-key auth."""
    if path.startswith(_PUBLIC_PATH_PREFIXES):
        return False
    return path.startswith("/api/")


async def maybe_require_api_key(request: Request, call_next) -> Response:
    """FastAPI middleware entrypoint for optional API-key auth."""
    if request.method.upper() == "OPTIONS":
        return await call_next(request)

    expected_key = get_expected_api_key()
    if not expected_key or not should_authenticate(request.url.path):
        return await call_next(request)

    provided_key = request.headers.get("X-API-Key", "")
    if not provided_key or not hmac.compare_digest(provided_key, expected_key):
        logger.warning("Rejected request to %s: invalid API key", request.url.path)
        return JSONResponse(
            status_code=401,
            content={"detail": "Invalid or missing API key"},
        )
    return await call_next(request)


def get_current_user_id(request: Request) -> int:
    """Return the authenticated user id forwarded by the upstream auth layer.

    Raises:
        HTTPException: 401 if the header is missing or not a positive integer.
    """
    raw = request.headers.get(USER_ID_HEADER, "").strip()
    try:
        user_id = int(raw)
    except ValueError:
        user_id = 0
    if user_id <= 0:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user_id
