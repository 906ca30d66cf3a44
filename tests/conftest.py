"""Pytest configuration and shared fixtures.

Organization:
    - Settings Fixtures: isolated settings caches
    - Database Fixtures: SQLAlchemy async engine and session on in-memory SQLite
    - Tree Fixtures: MaterializedPathTree instances for the demo Category model
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pathtree.core.database import Base, DeletePolicy, MaterializedPathTree
from pathtree.core.settings import TreeSettings, clear_settings_cache
from pathtree.features.categories import Category

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def _isolated_settings():
    """Drop cached settings before and after every test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create async SQLAlchemy engine with in-memory SQLite.

    Yields:
        Async SQLAlchemy engine connected to in-memory SQLite.
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create async database session with automatic table creation and cleanup.

    Yields:
        Async database session; rolled back after the test.
    """
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ============================================================================
# Tree Fixtures
# ============================================================================


@pytest.fixture
def tree(db_session: AsyncSession) -> MaterializedPathTree[Category]:
    """Category tree with the default DELETE policy and two workers."""
    return MaterializedPathTree(db_session, Category, TreeSettings(num_workers=2))


@pytest.fixture
def reparenting_tree(db_session: AsyncSession) -> MaterializedPathTree[Category]:
    """Category tree that promotes children on delete."""
    return MaterializedPathTree(
        db_session,
        Category,
        TreeSettings(on_delete=DeletePolicy.REPARENT, num_workers=2),
    )
