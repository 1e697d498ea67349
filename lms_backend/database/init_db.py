"""
Database initialization and connection management.

This module provides functions for:
1. Creating the async engine and session factory
2. Creating the schema for the assessment tables
3. Disposing of the engine on shutdown
"""

from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from lms_backend.common.logger import app_logger
from lms_backend.database.base import Base

logger = app_logger.getChild("database.init_db")

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def get_engine() -> AsyncEngine:
    """Get the global async engine instance."""
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call initialize_database() first.")
    return _engine


def get_session_factory() -> async_sessionmaker:
    """Get the global async session factory."""
    if _session_factory is None:
        raise RuntimeError("Database engine not initialized. Call initialize_database() first.")
    return _session_factory


def get_engine_kwargs(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
) -> Dict[str, Any]:
    """
    Get engine keyword arguments based on database type.

    PostgreSQL gets a sized connection pool; an in-memory SQLite database
    shares one connection so every session sees the same data.
    """
    kwargs: Dict[str, Any] = {"echo": echo}

    if database_url.startswith("postgresql"):
        kwargs.update({
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
            "pool_pre_ping": True,
            "pool_recycle": 300,
        })
    elif database_url.startswith("sqlite") and ":memory:" in database_url:
        kwargs.update({
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        })

    return kwargs


async def create_schema(engine: AsyncEngine) -> None:
    """Create every assessment table that does not exist yet."""
    # Imported for its side effect of registering the models on Base.metadata
    from lms_backend.assessments import database_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured")


async def initialize_database(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    create_tables: bool = True,
) -> AsyncEngine:
    """
    Initialize the async database engine and session factory.

    Args:
        database_url: Database connection URL
        echo: Whether to echo SQL statements
        pool_size: Connection pool size (PostgreSQL only)
        max_overflow: Connections allowed above pool_size (PostgreSQL only)
        pool_timeout: Seconds to wait for a pooled connection (PostgreSQL only)
        create_tables: Whether to create missing tables

    Returns:
        AsyncEngine instance
    """
    global _engine, _session_factory

    try:
        logger.info(f"Initializing database with URL: {database_url.split('://')[0]}://...")

        _engine = create_async_engine(
            database_url,
            **get_engine_kwargs(database_url, echo, pool_size, max_overflow, pool_timeout)
        )
        _session_factory = async_sessionmaker(
            _engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

        if create_tables:
            await create_schema(_engine)

        logger.info("Database engine initialized successfully")
        return _engine

    except Exception as e:
        logger.error(f"Failed to initialize async database: {e}")
        raise


async def close_database() -> None:
    """Close the database engine and all connections."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database engine closed successfully")
