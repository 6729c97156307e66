"""Health check endpoint. Public, no auth required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from healthday.config import get_settings
from healthday.services.database import get_pool

router = APIRouter(tags=["system"])
logger = logging.getLogger("healthday.health")


@router.get("/health")
async def health_check() -> dict:
    """Liveness probe. Returns 200 if the API process is up.

    With the Postgres store, also performs a lightweight connectivity check.
    """
    settings = get_settings()
    database = "not_used"
    if settings.record_store == "postgres":
        database = "unreachable"
        try:
            pool = get_pool()
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            database = "connected"
        except Exception as exc:
            logger.warning("Health check DB probe failed: %s", exc)

    return {
        "status": "degraded" if database == "unreachable" else "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "record_store": settings.record_store,
        "database": database,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
