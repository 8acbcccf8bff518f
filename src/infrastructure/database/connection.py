# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Connection pool for the analytics database (SQLAlchemy async + asyncpg).

Example:
    await init_database(settings)

    async with get_session() as db:
        service = AnalyticsService(SQLAnalyticsStore(db))
        await service.record_session(session)
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import Settings

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None


class DatabaseError(Exception):
    """Raised when the analytics database cannot be used.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy error, if any.
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


async def init_database(settings: "Settings") -> None:
    """Create the engine and session factory from ``settings.db``.

    Raises:
        DatabaseError: If the engine cannot be created.
    """
    global _engine, _sessionmaker

    try:
        _engine = create_async_engine(
            settings.db.url,
            pool_size=settings.db.pool_size,
            max_overflow=settings.db.max_overflow,
            pool_pre_ping=True,
            echo=settings.debug,
        )
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize database connection", e) from e

    # Reports keep using rows after the aggregator's early commit.
    _sessionmaker = async_sessionmaker(_engine, expire_on_commit=False, autoflush=False)


async def close_database() -> None:
    """Dispose of the pool at shutdown."""
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessionmaker = None


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Session scope that commits on success and rolls back on any error.

    Raises:
        DatabaseError: If the database is not initialized, or wrapping a
            SQLAlchemy error raised inside the scope.
    """
    if _sessionmaker is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")

    async with _sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            if isinstance(e, SQLAlchemyError):
                raise DatabaseError("Database operation failed", e) from e
            raise


async def check_database_connection() -> bool:
    """Return True when a trivial query succeeds; used by the health check."""
    if _engine is None:
        return False

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return False
    return True
