"""Async SQLAlchemy engine and sessions for the audit store.

The engine is built lazily from ``DATABASE_URL``; PostgreSQL via asyncpg in
deployments, SQLite via aiosqlite under test.
"""

import logging
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import JSON, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from intake.config import Settings, get_settings

logger = logging.getLogger("db")

# JSONB on PostgreSQL, plain JSON on every other dialect
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options(settings: Settings) -> dict[str, Any]:
    # SQLite files can't share pooled connections across the loops TestClient spins up
    if settings.database_disable_pooling or settings.database_url.startswith("sqlite"):
        return {"poolclass": NullPool}
    return {"pool_size": 5, "max_overflow": 10, "pool_pre_ping": True}


def reset_async_session_factory() -> None:
    """Forget the cached session factory (tests swap engines between cases)."""
    global _async_session_factory
    _async_session_factory = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(settings.database_url, **_engine_options(settings))
        logger.info(
            "Database engine created",
            extra={"service": "db", "metadata": {"url": settings._redact_url(settings.database_url)}},
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            bind=get_engine(),
            expire_on_commit=False,
            autoflush=False,
        )
    return _async_session_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, committed on success.

    ``AuditService`` commits and rolls back its own writes; the commit here
    only flushes whatever a handler left pending.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def check_db() -> bool:
    """Readiness probe: True when ``SELECT 1`` round-trips."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Database not reachable", extra={"service": "db", "error": str(exc)})
        return False
    return True


async def init_db() -> None:
    """Startup check. An unreachable database is logged, not fatal.

    The audit endpoints already degrade (503 on write, empty lists on read),
    so the app keeps serving the voice socket without it.
    """
    if await check_db():
        logger.info("Database connection verified", extra={"service": "db"})
    else:
        logger.error("Database unavailable at startup", extra={"service": "db"})


async def close_db() -> None:
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
    reset_async_session_factory()
    logger.info("Database connections closed", extra={"service": "db"})


__all__ = [
    "Base",
    "JSONType",
    "get_engine",
    "get_session_factory",
    "get_session",
    "init_db",
    "check_db",
    "close_db",
    "reset_async_session_factory",
]
