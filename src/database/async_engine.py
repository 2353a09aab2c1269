"""Async database engine and session management.

Provides the async SQLAlchemy engine for PostgreSQL (production) and
SQLite (development and tests), plus the FastAPI session dependency used
by the admin review routes.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from sqlalchemy import event, text

from config.database import DatabaseSettings, get_database_settings

logger = logging.getLogger(__name__)


# Global engine instance (lazy initialization)
_async_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine(settings: Optional[DatabaseSettings] = None) -> AsyncEngine:
    """
    Create an async SQLAlchemy engine.

    Args:
        settings: Database settings. If None, loads from environment.

    Returns:
        AsyncEngine: Configured async engine instance.
    """
    settings = settings or get_database_settings()

    logger.info(
        "Creating async database engine",
        extra={
            "driver": settings.driver,
            "database": str(settings.sqlite_path) if settings.is_sqlite else settings.name,
        }
    )

    if settings.is_sqlite:
        pool_kwargs = {"poolclass": NullPool}
    else:
        pool_kwargs = {
            "pool_size": settings.pool_size,
            "max_overflow": settings.max_overflow,
            "pool_timeout": settings.pool_timeout,
            "pool_recycle": settings.pool_recycle,
            "pool_pre_ping": settings.pool_pre_ping,
        }

    engine = create_async_engine(
        settings.async_url,
        echo=settings.echo_sql,
        connect_args=settings.get_connect_args(),
        **pool_kwargs,
    )

    if settings.is_sqlite:
        _enable_sqlite_foreign_keys(engine)

    return engine


def _enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_async_engine(settings: Optional[DatabaseSettings] = None) -> AsyncEngine:
    """Get or create the global async engine instance."""
    global _async_engine

    if _async_engine is None:
        _async_engine = create_engine(settings)

    return _async_engine


def get_async_session_factory(
    settings: Optional[DatabaseSettings] = None
) -> async_sessionmaker[AsyncSession]:
    """Get or create the global session factory."""
    global _async_session_factory

    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            bind=get_async_engine(settings),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _async_session_factory


@asynccontextmanager
async def get_async_session(
    settings: Optional[DatabaseSettings] = None
) -> AsyncGenerator[AsyncSession, None]:
    """
    Get an async database session as a context manager.

    Usage:
        async with get_async_session() as session:
            result = await session.execute(query)

    Yields:
        AsyncSession: Database session that auto-commits/rollbacks.
    """
    session = get_async_session_factory(settings)()

    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a request-scoped session."""
    async with get_async_session() as session:
        yield session


async def check_database_connection(
    settings: Optional[DatabaseSettings] = None
) -> bool:
    """
    Check if the database is accessible.

    Returns:
        bool: True if database is accessible, False otherwise.
    """
    try:
        engine = get_async_engine(settings)
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False


async def init_database(settings: Optional[DatabaseSettings] = None) -> None:
    """
    Create tables on SQLite. PostgreSQL schemas are managed out of band.
    """
    settings = settings or get_database_settings()

    if not settings.is_sqlite:
        logger.info("PostgreSQL detected - skipping create_all")
        return

    from database.models import Base

    engine = get_async_engine(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("SQLite database initialized", extra={"path": str(settings.sqlite_path)})


async def close_database() -> None:
    """
    Close the database engine and cleanup connections.

    Should be called during application shutdown.
    """
    global _async_engine, _async_session_factory

    if _async_engine is not None:
        logger.info("Closing database engine")
        await _async_engine.dispose()
        _async_engine = None
        _async_session_factory = None
