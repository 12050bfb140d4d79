"""Redis connection management.

Mirrors engine.py: when REDIS_URL is configured a connection pool is
created at import time, otherwise ``redis_pool`` is None and the rate
limiter uses its in-memory backend.  Redis only ever holds rate-limit
buckets here; credentials and batches live in PostgreSQL.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from boxoffice.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis; mirrors lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured; rate limiting is per-process")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        # Start anyway; /health reports redis as degraded
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
