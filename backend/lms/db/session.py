"""
Async SQLAlchemy engine, session factory and the request-scoped session
dependency.

PostgreSQL (asyncpg) is the production target; SQLite URLs are accepted
for local runs and tests and skip the pool settings they do not support.
"""

from typing import Any, AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from lms.core.config import get_settings

settings = get_settings()


class Base(DeclarativeBase):
    """Declarative base for the library tables."""


def build_engine(url: str, **overrides: Any) -> AsyncEngine:
    """Creates an async engine with pool settings suited to the backend."""
    options: dict[str, Any] = {}
    if not url.startswith("sqlite"):
        options.update(
            pool_pre_ping=True,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )
    options.update(overrides)
    return create_async_engine(url, **options)


engine = build_engine(settings.DATABASE_URL)

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yields one session per request.

    Services commit explicitly; anything left uncommitted when the
    request fails is rolled back here.
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def check_database_connection() -> tuple[bool, str | None]:
    """
    Runs SELECT 1 against the configured database.

    Returns:
        Tuple (success, error_message)
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True, None
    except Exception as e:
        return False, str(e)
