"""
Database package: connections and sessions.

Exports:
    - Base: Declarative base for the models
    - engine: Async SQLAlchemy engine
    - get_db: Session dependency
    - init_redis / close_redis: Redis lifecycle for the rate limiter
"""

from lms.db.session import Base, engine, get_db, async_session_factory
from lms.db.redis import init_redis, close_redis

__all__ = [
    "Base",
    "engine",
    "get_db",
    "async_session_factory",
    "init_redis",
    "close_redis",
]
