"""Aggregated health check endpoint.

Reports database and broker status using the resources the lifespan
hooks placed on ``app.state``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


async def _check_database(request: Request) -> dict[str, str]:
    """Check database connectivity via SELECT 1."""
    engine = getattr(request.app.state, "db_engine", None)
    if engine is None:
        return {"status": "error", "detail": "not initialized"}
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("health_check: database unhealthy: %s", exc)
        return {"status": "error", "detail": type(exc).__name__}
    return {"status": "ok"}


async def _check_broker(request: Request) -> dict[str, str]:
    """Check the notifier's broker connection."""
    notifier = getattr(request.app.state, "user_notifier", None)
    if notifier is None:
        return {"status": "error", "detail": "not initialized"}
    if not notifier.is_connected:
        logger.warning("health_check: broker connection is down")
        return {"status": "error", "detail": "disconnected"}
    return {"status": "ok"}


@router.get("/healthz")
async def healthz(request: Request) -> Any:
    """Return 200 when every subsystem is healthy, 503 otherwise."""
    checks = {
        "database": await _check_database(request),
        "broker": await _check_broker(request),
    }
    all_ok = all(c["status"] == "ok" for c in checks.values())
    return JSONResponse(
        content={"status": "ok" if all_ok else "degraded", "checks": checks},
        status_code=200 if all_ok else 503,
    )
