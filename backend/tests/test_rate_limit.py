"""
Tests for the Redis-backed rate limiter, with Redis mocked.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from lms.core import rate_limit
from lms.core.rate_limit import RateLimiter
from lms.core.security import create_access_token
from lms.db import redis as redis_db


def _request(
    path: str = "/api/v1/auth/login",
    ip: str = "10.0.0.1",
    forwarded: str | None = None,
    cookies: dict | None = None,
):
    request = MagicMock()
    request.url.path = path
    request.client.host = ip
    request.headers = {"X-Forwarded-For": forwarded} if forwarded else {}
    request.cookies = cookies or {}
    return request


def _redis(count: int, ttl: int = 42) -> AsyncMock:
    client = AsyncMock()
    client.incr.return_value = count
    client.ttl.return_value = ttl
    return client


class TestRateLimiter:

    @pytest.mark.anyio
    async def test_first_request_sets_window(self):
        limiter = RateLimiter(requests=3, window=60)
        client = _redis(1)

        with patch.object(redis_db, "redis_client", client):
            await limiter(_request(), None)

        client.incr.assert_awaited_once_with("rate_limit:/api/v1/auth/login:ip:10.0.0.1")
        client.expire.assert_awaited_once_with("rate_limit:/api/v1/auth/login:ip:10.0.0.1", 60)

    @pytest.mark.anyio
    async def test_within_limit(self):
        limiter = RateLimiter(requests=3, window=60)
        client = _redis(3)

        with patch.object(redis_db, "redis_client", client):
            await limiter(_request(), None)

        client.expire.assert_not_awaited()

    @pytest.mark.anyio
    async def test_over_limit_raises_429(self):
        limiter = RateLimiter(requests=3, window=60)

        with patch.object(redis_db, "redis_client", _redis(4, ttl=17)):
            with pytest.raises(HTTPException) as exc_info:
                await limiter(_request(), None)

        assert exc_info.value.status_code == 429
        assert exc_info.value.headers == {"Retry-After": "17"}

    @pytest.mark.anyio
    async def test_retry_after_never_below_one_second(self):
        limiter = RateLimiter(requests=3, window=60)

        with patch.object(redis_db, "redis_client", _redis(4, ttl=-1)):
            with pytest.raises(HTTPException) as exc_info:
                await limiter(_request(), None)

        assert exc_info.value.headers == {"Retry-After": "1"}

    @pytest.mark.anyio
    async def test_redis_error_fails_open(self):
        limiter = RateLimiter(requests=3, window=60)
        client = AsyncMock()
        client.incr.side_effect = ConnectionError("redis down")

        with patch.object(redis_db, "redis_client", client):
            await limiter(_request(), None)

    @pytest.mark.anyio
    async def test_no_client_passes(self):
        limiter = RateLimiter(requests=1, window=60)

        with patch.object(redis_db, "redis_client", None):
            await limiter(_request(), None)

    @pytest.mark.anyio
    async def test_disabled(self):
        limiter = RateLimiter(requests=1, window=60)
        client = _redis(100)
        settings = rate_limit.settings.model_copy(update={"RATE_LIMIT_ENABLED": False})

        with patch.object(rate_limit, "settings", settings):
            with patch.object(redis_db, "redis_client", client):
                await limiter(_request(), None)

        client.incr.assert_not_awaited()


class TestIdentifier:

    def test_user_from_token(self):
        token = create_access_token(subject="user-123")
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

        identifier = RateLimiter()._get_identifier(_request(), credentials)

        assert identifier == "user:user-123"

    def test_forwarded_for_wins_over_client(self):
        identifier = RateLimiter()._get_identifier(_request(forwarded="203.0.113.9, 10.0.0.1"), None)

        assert identifier == "ip:203.0.113.9"

    def test_invalid_token_falls_back_to_ip(self):
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="garbage")

        identifier = RateLimiter()._get_identifier(_request(ip="10.1.1.1"), credentials)

        assert identifier == "ip:10.1.1.1"

    def test_user_from_access_cookie(self):
        token = create_access_token(subject="user-456")

        identifier = RateLimiter()._get_identifier(_request(cookies={"access_token": token}), None)

        assert identifier == "user:user-456"


class TestPresets:

    def test_mail_preset_is_stricter_than_auth(self):
        assert rate_limit.rate_limit_mail.requests < rate_limit.rate_limit_auth.requests
        assert rate_limit.rate_limit_mail.window > rate_limit.rate_limit_auth.window
        assert rate_limit.rate_limit_mail.key_prefix != rate_limit.rate_limit_auth.key_prefix
