from __future__ import annotations

from collections.abc import AsyncGenerator
import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

if not settings.database:
    raise RuntimeError("Database configuration not initialized")

DB_CFG = settings.database
assert DB_CFG is not None

_ASYNC_DRIVERS = {
    "postgresql+psycopg2://": "postgresql+asyncpg://",
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


def to_async_dsn(url: str) -> str:
    """Rewrite a provider connection string to the async driver SQLAlchemy needs."""
    if "+asyncpg" in url or "+aiosqlite" in url:
        return url
    for prefix, replacement in _ASYNC_DRIVERS.items():
        if url.startswith(prefix):
            return replacement + url[len(prefix) :]
    return url


ASYNC_DATABASE_URL = to_async_dsn(DB_CFG.url)


def _engine_options(url: str) -> dict[str, Any]:
    # SQLite pools do not accept sizing options
    if url.startswith("sqlite"):
        return {"echo": DB_CFG.echo}
    return {
        "echo": DB_CFG.echo,
        "pool_size": DB_CFG.pool_size,
        "max_overflow": DB_CFG.max_overflow,
        "pool_pre_ping": DB_CFG.pool_pre_ping,
        "pool_timeout": DB_CFG.pool_timeout,
        "pool_recycle": 3600,
    }


# Created lazily so importing the app never opens a pool
_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_async_engine(ASYNC_DATABASE_URL, **_engine_options(ASYNC_DATABASE_URL))
        logger.debug("AsyncEngine created for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    global _session_maker
    if _session_maker is None:
        _session_maker = async_sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)
    return _session_maker


async def get_db() -> AsyncGenerator[AsyncSession]:
    """Request-scoped session; services commit explicitly, anything left open is rolled back."""
    async with get_session_maker()() as session:
        try:
            yield session
        except Exception as e:
            try:
                await session.rollback()
            except Exception as rollback_error:
                logger.warning("Rollback after session error failed: %s", rollback_error)
            logger.debug("Session for request closed after error: %s", e)
            raise


async def check_db_connection() -> bool:
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection is healthy")
        return True
    except Exception as e:
        logger.error("Database connection check failed: %s", e)
        return False


async def close_db_connections() -> None:
    global _engine, _session_maker
    try:
        if _engine is not None:
            await _engine.dispose()
            logger.info("Database connections closed")
    except Exception as e:
        logger.error("Error closing database connections: %s", e)
    finally:
        _engine = None
        _session_maker = None
