"""
Async engine and session lifecycle for Questboard.

Purpose
-------
Own the single ``AsyncEngine`` used by the progression store and hand out
sessions. Every progression write (stats row, reward claims) goes through
``get_transaction()`` so the claim and the stats update commit or roll back
together.

Architecture Notes
------------------
- Classmethod API; there is one engine per process.
- ``get_transaction()`` commits on clean exit and rolls back on any exception.
  Callers never commit themselves.
- Row locks come from ``select(...).with_for_update()`` inside a transaction.
- ``TESTING`` switches to NullPool so connections are never shared across
  event loops.
- PostgreSQL sessions get ``SET LOCAL statement_timeout`` so a stuck lock
  wait surfaces as an error instead of hanging the caller.

>>> async with DatabaseService.get_transaction() as session:
...     row = await repo.find_by_user(session, user_id, for_update=True)
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Optional, Type

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool, Pool

from questboard.core.config.config import Config
from questboard.core.exceptions import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
)
from questboard.core.logging.logger import get_logger

logger = get_logger(__name__)

_POSTGRES_SCHEMES = ("postgresql", "postgresql+asyncpg")


@dataclass(frozen=True)
class EngineSettings:
    """Engine options captured once at initialization."""

    url: str
    echo: bool = False
    pool_class: Type[Pool] = AsyncAdaptedQueuePool
    pool_options: Dict[str, int] = field(default_factory=dict)
    statement_timeout_ms: int = 30_000

    @property
    def scheme(self) -> str:
        return self.url.partition(":")[0] or "unknown"

    @property
    def is_postgres(self) -> bool:
        return self.scheme in _POSTGRES_SCHEMES

    @classmethod
    def from_config(cls, url: Optional[str] = None) -> EngineSettings:
        database_url = url or Config.DATABASE_URL
        if not isinstance(database_url, str) or not database_url:
            raise DatabaseInitializationError("DATABASE_URL is not configured")

        if Config.is_testing():
            return cls(
                url=database_url,
                echo=Config.DATABASE_ECHO,
                pool_class=NullPool,
                statement_timeout_ms=Config.DATABASE_STATEMENT_TIMEOUT_MS,
            )
        return cls(
            url=database_url,
            echo=Config.DATABASE_ECHO,
            pool_options={
                "pool_size": Config.DATABASE_POOL_SIZE,
                "max_overflow": Config.DATABASE_MAX_OVERFLOW,
                "pool_recycle": Config.DATABASE_POOL_RECYCLE,
                "pool_timeout": Config.DATABASE_POOL_TIMEOUT,
            },
            statement_timeout_ms=Config.DATABASE_STATEMENT_TIMEOUT_MS,
        )


class DatabaseService:
    """
    Process-wide database access.

    - ``initialize(url=None)`` / ``shutdown()``
    - ``get_session()`` for reads
    - ``get_transaction()`` for writes
    - ``health_check()``
    """

    _engine: Optional[AsyncEngine] = None
    _sessions: Optional[async_sessionmaker[AsyncSession]] = None
    _settings: Optional[EngineSettings] = None
    _lock = asyncio.Lock()

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Create the engine. A second call is a no-op.

        Raises:
            DatabaseInitializationError: If the URL is missing or the engine
                cannot be created
        """
        async with cls._lock:
            if cls._engine is not None:
                return

            try:
                settings = EngineSettings.from_config(url)
                engine_options: Dict[str, Any] = {
                    "echo": settings.echo,
                    "poolclass": settings.pool_class,
                    **settings.pool_options,
                }
                cls._engine = create_async_engine(settings.url, **engine_options)
            except DatabaseInitializationError:
                logger.error("Database URL missing; cannot initialize")
                raise
            except Exception as exc:
                logger.error(
                    "Engine creation failed",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise DatabaseInitializationError(f"Engine creation failed: {exc}") from exc

            cls._sessions = async_sessionmaker(cls._engine, expire_on_commit=False)
            cls._settings = settings
            logger.info(
                "DatabaseService initialized",
                extra={"scheme": settings.scheme, "pool_class": settings.pool_class.__name__},
            )

    @classmethod
    async def shutdown(cls) -> None:
        async with cls._lock:
            engine, cls._engine = cls._engine, None
            cls._sessions = None
            cls._settings = None
            if engine is not None:
                await engine.dispose()
                logger.info("DatabaseService shut down")

    @classmethod
    def get_engine(cls) -> AsyncEngine:
        if cls._engine is None:
            raise DatabaseNotInitializedError("DatabaseService.initialize() has not been called")
        return cls._engine

    @classmethod
    async def health_check(cls) -> bool:
        """``SELECT 1``; False on failure or before initialization."""
        if cls._engine is None:
            return False
        try:
            async with cls._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (OperationalError, DBAPIError) as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        return True

    @classmethod
    def _session_factory(cls) -> async_sessionmaker[AsyncSession]:
        if cls._sessions is None:
            raise DatabaseNotInitializedError("DatabaseService.initialize() has not been called")
        return cls._sessions

    @classmethod
    async def _prepare(cls, session: AsyncSession) -> None:
        settings = cls._settings
        if settings is not None and settings.is_postgres:
            await session.execute(
                text(f"SET LOCAL statement_timeout = {int(settings.statement_timeout_ms)}")
            )

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncIterator[AsyncSession]:
        """Session without automatic commit; use for reads."""
        async with cls._session_factory()() as session:
            await cls._prepare(session)
            yield session

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncIterator[AsyncSession]:
        """Session in one transaction: commit on exit, rollback on any exception."""
        factory = cls._session_factory()
        started = time.perf_counter()
        async with factory() as session:
            try:
                await cls._prepare(session)
                yield session
                await session.commit()
            except Exception as exc:
                await session.rollback()
                logger.warning(
                    "Transaction rolled back",
                    extra={
                        "error_type": type(exc).__name__,
                        "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
                    },
                )
                raise
            logger.debug(
                "Transaction committed",
                extra={"duration_ms": round((time.perf_counter() - started) * 1000.0, 2)},
            )
