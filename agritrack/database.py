"""
Database connection and session management.
Uses SQLAlchemy 2.0 async pattern.

The engine and session factory are process-wide and created explicitly by
``init_db()`` during application startup; ``close_db()`` disposes them.
"""

from typing import AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from agritrack.config import get_settings
from agritrack.logging_config import get_logger

logger = get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine with options suited to the database type."""
    settings = get_settings()

    if database_url.startswith("sqlite"):
        # SQLite with NullPool: every session gets its own connection
        engine = create_async_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=NullPool,
        )

        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_conn, connection_record):
            """Enable WAL mode + foreign keys on every new SQLite connection."""
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

        return engine

    # PostgreSQL with a bounded connection pool
    return create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db() -> None:
    """Create the engine, the session factory and the tables."""
    global _engine, _session_maker

    # Import models so they are registered on the metadata
    from agritrack.kernel.models import Base

    settings = get_settings()
    if _engine is None:
        _engine = create_engine(settings.database_url, echo=settings.debug)
        _session_maker = create_session_maker(_engine)
        logger.info("Database engine created", extra={"dialect": _engine.dialect.name})

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    global _engine, _session_maker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_maker = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields database sessions."""
    if _session_maker is None:
        raise RuntimeError("Database is not initialized; call init_db() first")

    async with _session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
