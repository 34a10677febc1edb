"""
Redis-backed rate limiting with a fixed window counter.

Callers are keyed by the user id in their access token (header or cookie)
or by client IP, per route. Configured through:
    - RATE_LIMIT_ENABLED: bool (default: True)
    - RATE_LIMIT_REQUESTS: int (default: 60) requests per window
    - RATE_LIMIT_WINDOW_SECONDS: int (default: 60)

Presets:
    - rate_limit_auth: credential endpoints, 10 per minute
    - rate_limit_mail: endpoints that send an email code, 5 per 10 minutes
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials

from lms.core.config import get_settings
from lms.core.deps import extract_token, security
from lms.core.security import decode_token
from lms.db import redis as redis_db

logger = logging.getLogger(__name__)
settings = get_settings()


class RateLimiter:
    """
    Rate limiting dependency.

    Fails open: without a Redis client, or when Redis errors, the request
    passes and a warning is logged.

    Args:
        requests: Max requests per window (default: settings)
        window: Window length in seconds (default: settings)
        key_prefix: Redis key prefix, one counter space per preset
    """

    def __init__(
        self,
        requests: Optional[int] = None,
        window: Optional[int] = None,
        key_prefix: str = "rate_limit",
    ):
        self.requests = requests or settings.RATE_LIMIT_REQUESTS
        self.window = window or settings.RATE_LIMIT_WINDOW_SECONDS
        self.key_prefix = key_prefix

    async def __call__(
        self,
        request: Request,
        credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)] = None,
    ) -> None:
        """
        Raises:
            HTTPException 429: Limit exceeded, with Retry-After
        """
        if not settings.RATE_LIMIT_ENABLED:
            return

        client = redis_db.get_redis()
        if client is None:
            return

        identifier = self._get_identifier(request, credentials)
        key = f"{self.key_prefix}:{request.url.path}:{identifier}"

        try:
            current = await client.incr(key)
            if current == 1:
                await client.expire(key, self.window)
            if current <= self.requests:
                return
            ttl = await client.ttl(key)
        except Exception as e:
            logger.warning(f"Rate limiter unavailable, letting request through: {e}")
            return

        retry_after = max(ttl, 1)
        logger.info(f"Rate limit hit on {request.url.path} by {identifier}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many requests. Try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)},
        )

    def _get_identifier(
        self,
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials],
    ) -> str:
        """
        Priority:
            1. user id from a valid access token (header, then cookie)
            2. client IP, X-Forwarded-For first
        """
        token = extract_token(request, credentials)
        if token:
            payload = decode_token(token)
            if payload and "sub" in payload:
                return f"user:{payload['sub']}"

        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"
        return f"ip:{request.client.host if request.client else 'unknown'}"


rate_limit_auth = RateLimiter(requests=10, window=60, key_prefix="auth_limit")
rate_limit_mail = RateLimiter(requests=5, window=600, key_prefix="mail_limit")
