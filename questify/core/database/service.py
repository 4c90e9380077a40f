"""
Process-wide async engine plus session/transaction context managers.

PostgreSQL (asyncpg) in deployments, SQLite (aiosqlite) in tests. An
in-memory SQLite URL gets a StaticPool so every session sees the same
database.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from questify.core.config.config import Config
from questify.core.database.base import Base
from questify.core.logging.logger import get_logger

logger = get_logger(__name__)


class DatabaseInitializationError(RuntimeError):
    pass


class DatabaseNotInitializedError(RuntimeError):
    pass


def _engine_options(url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": Config.DATABASE_ECHO}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=Config.DATABASE_POOL_SIZE,
            max_overflow=Config.DATABASE_MAX_OVERFLOW,
            pool_recycle=Config.DATABASE_POOL_RECYCLE,
            pool_pre_ping=True,
        )
    elif ":memory:" in url or url.endswith("://"):
        options.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
    return options


class DatabaseService:
    """
    Classmethod singleton; `initialize` and `shutdown` are idempotent.

    >>> await DatabaseService.initialize("sqlite+aiosqlite:///:memory:")
    >>> async with DatabaseService.get_transaction() as session:
    ...     session.add(record)
    """

    _engine: Optional[AsyncEngine] = None
    _sessions: Optional[async_sessionmaker[AsyncSession]] = None
    _guard: Optional[asyncio.Lock] = None

    @classmethod
    def _lock(cls) -> asyncio.Lock:
        if cls._guard is None:
            cls._guard = asyncio.Lock()
        return cls._guard

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        async with cls._lock():
            if cls._engine is not None:
                return
            target = url or Config.DATABASE_URL
            if not target:
                raise DatabaseInitializationError("DATABASE_URL is empty")
            try:
                engine = create_async_engine(target, **_engine_options(target))
            except Exception as exc:
                logger.error("Could not create database engine", exc_info=True)
                raise DatabaseInitializationError(f"Database initialization failed: {exc}") from exc

            cls._engine = engine
            cls._sessions = async_sessionmaker(engine, expire_on_commit=False)
            logger.info("Database engine ready", extra={"dialect": engine.dialect.name})

    @classmethod
    async def shutdown(cls) -> None:
        async with cls._lock():
            engine, cls._engine, cls._sessions = cls._engine, None, None
            if engine is not None:
                await engine.dispose()
                logger.info("Database engine disposed")

    @classmethod
    def _require(cls) -> async_sessionmaker[AsyncSession]:
        if cls._sessions is None:
            raise DatabaseNotInitializedError("Call DatabaseService.initialize() first")
        return cls._sessions

    @classmethod
    async def create_all(cls) -> None:
        cls._require()
        import questify.database.models  # noqa: F401  (registers tables)

        async with cls._engine.begin() as conn:  # type: ignore[union-attr]
            await conn.run_sync(Base.metadata.create_all)

    @classmethod
    async def drop_all(cls) -> None:
        cls._require()
        async with cls._engine.begin() as conn:  # type: ignore[union-attr]
            await conn.run_sync(Base.metadata.drop_all)

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncIterator[AsyncSession]:
        """Plain session; nothing is committed for you."""
        async with cls._require()() as session:
            yield session

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncIterator[AsyncSession]:
        """Commit when the block exits cleanly, roll back and re-raise otherwise."""
        async with cls._require()() as session:
            try:
                yield session
                await session.commit()
            except Exception as exc:
                await session.rollback()
                logger.debug(
                    "Transaction rolled back",
                    extra={"error_type": type(exc).__name__},
                )
                raise
