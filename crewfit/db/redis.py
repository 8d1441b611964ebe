"""Redis connection management.

When REDIS_URL is configured, session snapshots written by the portal's
autosave live in Redis with a TTL, so a respondent can reload the page or
reach a different API instance and resume where they stopped.  When it is
not set (local dev, tests), everything falls back to in-memory stores and
no Redis server is needed.

The client is synchronous: autosave fires from timer callbacks on the
event loop, outside any request handler, and each write is a single
SET with expiry.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis

from crewfit.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_client: redis.Redis | None = redis.Redis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        socket_timeout=2.0,
        max_connections=20,
    )
else:
    redis_client = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook: verify connectivity, release the pool on exit."""
    if redis_client is None:
        logger.info("No REDIS_URL configured, session snapshots stay in memory")
        yield
        return

    try:
        redis_client.ping()
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except redis.RedisError:
        # Start anyway; autosave retries and reports failures per session.
        logger.exception("Redis connection failed on startup")
        yield
        return

    yield

    redis_client.close()
    logger.info("Redis connection pool closed")
