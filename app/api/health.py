"""Health and readiness endpoints.

  /health (liveness)
    "Is this process alive?"  If it fails, the orchestrator restarts the
    container, so it only reports; it never returns 503.

  /ready (readiness)
    "Can this instance take traffic right now?"  A 503 takes the
    instance out of the load balancer without restarting it.  When a
    database is configured it must answer a trivial query; without one
    the service runs on in-memory stores and is always ready.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from sqlalchemy import text

from app.db import engine as db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def check_database() -> str:
    """Return "ok", "degraded" or "not_configured"."""
    if db.engine is None:
        return "not_configured"
    try:
        async with db.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
async def health() -> dict:
    """Liveness probe plus dependency status.

    Returns 200 even when degraded; the status field tells the story.
    """
    database = await check_database()
    return {
        "status": "degraded" if database == "degraded" else "ok",
        "checks": {"database": database},
    }


@router.get("/ready")
async def ready() -> Response:
    if await check_database() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
