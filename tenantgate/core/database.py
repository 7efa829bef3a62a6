"""
Database session management with async SQLAlchemy 2.0.

Redemption claims are conditional UPDATEs whose rowcount decides the
winner, so every backend must serialize concurrent writers: PostgreSQL
does so with row locks, SQLite with its database lock plus a busy
timeout so losers wait instead of failing with "database is locked".
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from tenantgate.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by every TenantGate table."""


def engine_options(database_url: str) -> dict[str, Any]:
    """Keyword arguments for ``create_async_engine`` suited to the backend."""
    options: dict[str, Any] = {"echo": settings.db_echo and settings.is_development}

    if make_url(database_url).get_backend_name() == "sqlite":
        options["poolclass"] = NullPool
        options["connect_args"] = {"timeout": settings.db_busy_timeout}
    elif settings.is_development:
        options["poolclass"] = NullPool
        options["pool_pre_ping"] = True
    else:
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
        options["pool_pre_ping"] = True

    return options


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Guards and services keep reading ORM objects after commit
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


class DatabaseManager:
    """
    Manages database engine and session lifecycle.

    One engine per process, created in the application lifespan.
    """

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def init(self, database_url: str | None = None) -> None:
        url = database_url or settings.database_url
        self._engine = create_async_engine(url, **engine_options(url))
        self._session_factory = make_session_factory(self._engine)
        logger.info("Database engine ready (%s)", self._engine.url.get_backend_name())

    async def close(self) -> None:
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database connections closed")

    @property
    def engine(self) -> AsyncEngine:
        if not self._engine:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Unit of work: commits when the block exits cleanly, rolls back if
        it raised. Services that own their transaction boundary (the
        redemption engine) commit and roll back explicitly; the trailing
        commit is then a no-op.
        """
        if not self._session_factory:
            raise RuntimeError("Database not initialized. Call init() first.")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


db_manager = DatabaseManager()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/tenants")
        async def list_tenants(db: Annotated[AsyncSession, Depends(get_db)]):
            ...
    """
    async with db_manager.session() as session:
        yield session
