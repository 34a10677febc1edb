"""
Security utilities: password hashing, JWT and one-time codes.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from lms.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def hash_password(password: str) -> str:
    """
    Hashes a password with bcrypt.

    Args:
        password: Plain-text password

    Returns:
        bcrypt hash
    """
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Checks a password against its bcrypt hash.

    Args:
        plain_password: Plain-text password
        hashed_password: Stored bcrypt hash

    Returns:
        True when the password matches
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8"),
        )
    except ValueError as e:
        logger.debug(f"Password verification failed: {type(e).__name__}")
        return False


def create_access_token(
    subject: str,
    extra_data: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Creates a signed access token.

    Args:
        subject: User identifier (user id)
        extra_data: Extra claims (email, role)
        expires_delta: Custom lifetime

    Returns:
        Signed JWT
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.JWT_EXPIRES_MINUTES)
    return _encode(
        subject,
        ACCESS_TOKEN_TYPE,
        settings.JWT_SECRET,
        expires_delta,
        extra_data,
    )


def create_refresh_token(
    subject: str,
    extra_data: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Creates a signed refresh token.

    Refresh tokens use their own secret so an access token can never be
    replayed against the refresh endpoint.
    """
    if expires_delta is None:
        expires_delta = timedelta(days=settings.JWT_REFRESH_EXPIRES_DAYS)
    return _encode(
        subject,
        REFRESH_TOKEN_TYPE,
        settings.JWT_REFRESH_SECRET,
        expires_delta,
        extra_data,
    )


def _encode(
    subject: str,
    token_type: str,
    secret: str,
    expires_delta: timedelta,
    extra_data: dict[str, Any] | None,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "type": token_type,
        "exp": now + expires_delta,
        "iat": now,
        # Unique id so two tokens minted in the same second still differ
        "jti": secrets.token_hex(8),
    }
    if extra_data:
        payload.update(extra_data)

    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decodes and validates an access token.

    Args:
        token: JWT

    Returns:
        Token payload, or None when invalid, expired or not an access token
    """
    return _decode(token, settings.JWT_SECRET, ACCESS_TOKEN_TYPE)


def decode_refresh_token(token: str) -> dict[str, Any] | None:
    """Decodes and validates a refresh token."""
    return _decode(token, settings.JWT_REFRESH_SECRET, REFRESH_TOKEN_TYPE)


def _decode(token: str, secret: str, token_type: str) -> dict[str, Any] | None:
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        return None

    if payload.get("type") != token_type:
        return None
    return payload


def hash_token(token: str) -> str:
    """SHA-256 digest of a token, used to store refresh tokens and OTPs at rest."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_otp() -> str:
    """Generates a 4-digit one-time code (1000-9999)."""
    return str(secrets.randbelow(9000) + 1000)
