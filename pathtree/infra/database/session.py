"""Database session management for the async SQLAlchemy engine."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from pathtree.core.database import Base
from pathtree.core.settings import DatabaseSettings, get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

# Created on first use so DB_URL can be changed before the first session
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine(db_settings: DatabaseSettings | None = None) -> AsyncEngine:
    """Get the process-wide async engine, creating it on first call."""
    global _engine, _session_factory

    if _engine is None:
        db_settings = db_settings or get_db_settings()
        _engine = create_async_engine(db_settings.url, echo=db_settings.echo)
        _session_factory = async_sessionmaker(
            _engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.debug("Database engine created", extra={"dialect": _engine.dialect.name})
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory bound to the process-wide engine."""
    get_engine()
    if _session_factory is None:
        raise RuntimeError("Database engine is not initialized")
    return _session_factory


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Yields:
        Database session that is automatically closed.

    Example:
        async with get_async_session() as session:
            tree = MaterializedPathTree(session, Category)
            await tree.save(Category(id="A", name="A"))
            await session.commit()
    """
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_database() -> None:
    """Create all tables registered on Base.metadata (idempotent)."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized", extra={"tables": sorted(Base.metadata.tables)})


async def close_database() -> None:
    """Dispose the engine; the next get_engine() call creates a new one."""
    global _engine, _session_factory

    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.debug("Database connection closed")


__all__ = [
    "close_database",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
]
