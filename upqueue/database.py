"""Async SQLAlchemy database setup for the upload queue."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

logger = logging.getLogger(__name__)


def normalize_async_url(database_url: str) -> str:
    """Coerce sync driver URLs into their async-driver variants.

    sqlite:/// becomes sqlite+aiosqlite:/// and postgresql:// becomes
    postgresql+asyncpg://. Anything else is returned unchanged.
    """
    url = (database_url or "").strip()
    if url.startswith("sqlite:///") and "aiosqlite" not in url:
        return url.replace("sqlite:///", "sqlite+aiosqlite:///")
    if url.startswith("postgresql://") and "+asyncpg" not in url:
        return url.replace("postgresql://", "postgresql+asyncpg://")
    return url


class Database:
    """Async database connection manager.

    Owns the engine and session factory. All queue entry reads and writes go
    through session(), which commits on success and rolls back on error, so a
    rejected write never leaves a partial row behind.
    """

    def __init__(self, database_url: str):
        """Initialize database with connection URL.

        Args:
            database_url: SQLAlchemy database URL. Sync sqlite/postgres URLs
                are converted to their async drivers.
        """
        database_url = normalize_async_url(database_url)
        self._is_sqlite = database_url.startswith("sqlite")

        connect_args = {}
        if self._is_sqlite:
            # Completion reports arrive concurrently; wait on locks instead of failing.
            connect_args["timeout"] = 30

        self._engine: AsyncEngine = create_async_engine(
            database_url,
            echo=False,
            future=True,
            connect_args=connect_args,
        )
        self._async_session: async_sessionmaker[AsyncSession] = (
            async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        )

    @property
    def engine(self) -> AsyncEngine:
        """Get the async engine instance."""
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope around a series of operations.

        Usage:
            async with db.session() as session:
                session.add(model)
                # commit happens automatically on success
                # rollback happens automatically on exception

        Yields:
            AsyncSession: An async SQLAlchemy session.
        """
        async with self._async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def init_db(self) -> None:
        """Create all tables from ORM metadata.

        Intended for tests and quick local runs. Deployments should rely on
        the Alembic migrations instead.
        """
        async with self._engine.begin() as conn:
            if conn.dialect.name == "sqlite":
                await conn.execute(text("PRAGMA journal_mode=WAL"))
                await conn.execute(text("PRAGMA busy_timeout=30000"))
            await conn.run_sync(Base.metadata.create_all)
        logger.debug("Database tables ensured")

    async def close(self) -> None:
        """Close database connections and dispose of the engine."""
        await self._engine.dispose()
