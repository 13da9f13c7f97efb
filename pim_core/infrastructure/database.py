"""Database configuration and session management.

Engines are built on demand so importing the models never opens a
connection; the ordering tables are the only SQL-backed state.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from pim_core.infrastructure.config import Settings, settings as default_settings

# Base class for models
Base = declarative_base()


def build_engine(config: Settings | None = None, url: str | None = None) -> AsyncEngine:
    """Create an async engine.

    Args:
        config: Settings providing ``database_url`` and ``debug``.
        url: Explicit URL overriding the configured one.

    Returns:
        Async SQLAlchemy engine.
    """
    config = config or default_settings
    return create_async_engine(
        url or config.database_url,
        echo=config.debug,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create every table known to ``Base``."""
    # Import for side effect: registers the tables on Base.metadata
    from pim_core.infrastructure import models  # noqa: F401

    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Open a session that commits on success and rolls back on error.

    Yields:
        AsyncSession for database operations.
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
