"""Async engine and session lifecycle for the user store.

The relational database only holds accounts and display identities; every
session-scoped piece of state lives in the cache. Production runs on
PostgreSQL through asyncpg, tests on SQLite through aiosqlite.
"""

import asyncio
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from arcana.core.config import Settings, get_settings
from arcana.core.logging import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def engine_options(settings: Settings) -> dict[str, Any]:
    """Keyword arguments for ``create_async_engine`` based on the database URL.

    - SQLite: driver defaults, no pool sizing
    - Neon (``neon.tech``): NullPool, the provider pools connections itself
    - Any other PostgreSQL: a sized, recycled SQLAlchemy pool
    """
    url = settings.database_url
    options: dict[str, Any] = {"echo": settings.db_echo}

    if url.startswith("sqlite"):
        return options

    options["pool_pre_ping"] = True
    # asyncpg statement caches break behind pgbouncer-style poolers
    options["connect_args"] = {"statement_cache_size": 0, "prepared_statement_cache_size": 0}

    if "neon.tech" in url:
        options["poolclass"] = NullPool
    else:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=1800,
        )
    return options


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine

    if _engine is None:
        settings = get_settings()
        options = engine_options(settings)
        _engine = create_async_engine(settings.database_url, **options)
        logger.info(
            "Database engine created",
            pooled="pool_size" in options,
            null_pool="poolclass" in options,
        )

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session per request.

    Commits when the route returns normally and rolls back when it raises.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create missing tables; deployments run Alembic migrations as well."""
    from arcana.db.models import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables initialized")


async def close_db() -> None:
    """Dispose of the engine so the next use starts a fresh pool."""
    global _engine, _session_factory

    if _engine is None:
        return

    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Database connections closed")


async def check_db_health(timeout: float = 5.0) -> bool:
    """Run ``SELECT 1`` within ``timeout`` seconds; never raises."""

    async def _ping() -> bool:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    try:
        return await asyncio.wait_for(_ping(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error("Database health check timed out", timeout=timeout)
        return False
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return False
