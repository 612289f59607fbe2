"""Database configuration and session management.

Provides the async SQLAlchemy engine, the session factory and the
FastAPI session dependency. Association rows rely on ON DELETE CASCADE,
so SQLite connections get foreign key enforcement switched on.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from catalog_manager.infrastructure.config import settings

# Base class for models
Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, *, echo: bool = False, **kwargs: Any) -> AsyncEngine:
    """Create an async engine for the given URL.

    Args:
        database_url: SQLAlchemy URL, e.g. ``postgresql+asyncpg://...`` or
            ``sqlite+aiosqlite:///./catalog.db``.
        echo: Log emitted SQL.
        **kwargs: Passed through to ``create_async_engine`` (e.g. ``poolclass``).

    Returns:
        Configured AsyncEngine.
    """
    async_engine = create_async_engine(database_url, echo=echo, pool_pre_ping=True, **kwargs)
    if make_url(database_url).get_backend_name() == "sqlite":
        event.listen(async_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return async_engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory whose objects stay readable after commit."""
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.database_url, echo=settings.debug)
async_session_factory = build_session_factory(engine)


async def create_tables(bind: AsyncEngine | None = None) -> None:
    """Create the catalog tables if they don't exist."""
    # Registers the catalog tables on Base.metadata
    from catalog_manager.catalog import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping(session: AsyncSession) -> None:
    """Round-trip a trivial statement; raises SQLAlchemyError when unreachable."""
    await session.execute(text("SELECT 1"))


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session.

    Commits when the request handler returns normally and rolls back
    when it raises.

    Yields:
        AsyncSession for database operations.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
