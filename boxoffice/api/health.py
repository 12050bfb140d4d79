"""Health and readiness endpoints.

/health is liveness: 200 whenever the process answers, with per-dependency
detail in the body ("degraded" means alive but impaired, not restart me).

/ready is readiness: 503 while PostgreSQL is unreachable, so the load
balancer stops routing scans to an instance that cannot record them.
Redis only backs rate limiting, so it never makes an instance unready.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response, status
from sqlalchemy import text

from boxoffice.db import engine as db_engine
from boxoffice.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_database() -> str:
    if db_engine.engine is None:
        return "not_configured"
    try:
        async with db_engine.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database health check failed")
        return "degraded"
    return "ok"


async def _check_redis() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except Exception:
        logger.exception("Redis health check failed")
        return "degraded"
    return "ok"


@router.get("/health")
async def health() -> dict:
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if await _check_database() == "degraded":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
