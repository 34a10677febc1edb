"""
Redis client for the request rate limiter.

Redis is optional: when it is disabled or unreachable the limiter lets
every request through and the rest of the API is unaffected.
"""

import logging
from typing import Optional

import redis.asyncio as redis

from lms.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

redis_client: Optional[redis.Redis] = None


def get_redis() -> Optional[redis.Redis]:
    """Current client, read at call time so startup and tests can swap it."""
    return redis_client


async def init_redis() -> Optional[redis.Redis]:
    """Creates the client on startup unless rate limiting is switched off."""
    global redis_client
    if not settings.RATE_LIMIT_ENABLED:
        logger.info("Rate limiting disabled, Redis not initialized")
        return None
    redis_client = redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=2,
    )
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None


async def check_redis_connection() -> bool:
    """True when the client exists and answers PING."""
    client = get_redis()
    if client is None:
        return False
    try:
        await client.ping()
    except Exception as e:
        logger.warning(f"Redis health check failed: {e}")
        return False
    return True
