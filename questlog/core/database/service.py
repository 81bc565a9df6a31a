"""
Async database engine and session management.

Purpose
-------
Owns the SQLAlchemy ``AsyncEngine`` for one process and hands out sessions
with consistent commit/rollback, statement timeouts, logging, and a circuit
breaker. ``SqlStore`` is its only consumer.

Public API
----------
- initialize() / shutdown(): engine lifecycle (idempotent)
- get_session(): session for reads, no commit
- get_transaction(): atomic unit of work, commit on success, rollback on error
- health_check(): ``SELECT 1`` reachability probe

Error Handling
--------------
Connection-level failures (``OperationalError``, ``InterfaceError``,
timeouts, socket errors) and an open circuit breaker surface as
``StoreUnavailableError``. Every other exception rolls back and propagates
unchanged, so callers can still catch ``IntegrityError`` and friends.

Design Notes
------------
Instance-based: a ServiceContainer constructs one DatabaseService and passes
it to the store. Nothing here is module-global, so tests can point several
services at different databases.

Usage
-----
>>> db = DatabaseService()
>>> await db.initialize()
>>> async with db.get_transaction("award_xp") as session:
...     profile = await session.get(ProfileModel, user_id, with_for_update=True)
...     profile.total_xp += 10
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional, Type

from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool, Pool

from questlog.core.config.config import Config
from questlog.core.database.circuit_breaker import CircuitBreaker
from questlog.core.exceptions import ConfigurationError, StoreUnavailableError
from questlog.core.logging.logger import get_logger

logger = get_logger(__name__)

_UNAVAILABLE_ERRORS = (
    OperationalError,
    InterfaceError,
    asyncio.TimeoutError,
    ConnectionError,
)


class DatabaseNotInitializedError(RuntimeError):
    """Raised when sessions are requested before initialize()."""


# ============================================================================
# Configuration Snapshot
# ============================================================================


@dataclass(frozen=True)
class _DatabaseConfigSnapshot:
    """Immutable view of the database settings for the engine's lifetime."""

    url: str
    echo: bool
    pool_class: Type[Pool]
    pool_size: int
    max_overflow: int
    pool_recycle: int
    pool_timeout: int
    statement_timeout_ms: int

    @property
    def is_postgres(self) -> bool:
        return self.url.startswith(("postgresql://", "postgresql+asyncpg://"))

    @property
    def url_scheme(self) -> str:
        return self.url.split(":", 1)[0] if ":" in self.url else "unknown"


# ============================================================================
# DatabaseService
# ============================================================================


class DatabaseService:
    """Async engine, session factory and circuit breaker for one database."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        circuit_breaker: Optional[CircuitBreaker] = None,
        **overrides: Any,
    ) -> None:
        self._url = url
        self._overrides = overrides
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._config: Optional[_DatabaseConfigSnapshot] = None
        self._init_lock = asyncio.Lock()
        self._circuit_breaker = circuit_breaker or CircuitBreaker()

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def _build_config_snapshot(self) -> _DatabaseConfigSnapshot:
        url = self._url or Config.DATABASE_URL
        if not url or not isinstance(url, str):
            raise ConfigurationError(
                "DATABASE_URL", "must be configured as a non-empty string"
            )

        pool_class: Type[Pool] = NullPool if Config.is_testing() else AsyncAdaptedQueuePool
        return _DatabaseConfigSnapshot(
            url=url,
            echo=bool(self._overrides.get("echo", Config.DATABASE_ECHO)),
            pool_class=self._overrides.get("pool_class", pool_class),
            pool_size=int(self._overrides.get("pool_size", Config.DATABASE_POOL_SIZE)),
            max_overflow=int(
                self._overrides.get("max_overflow", Config.DATABASE_MAX_OVERFLOW)
            ),
            pool_recycle=int(
                self._overrides.get("pool_recycle", Config.DATABASE_POOL_RECYCLE)
            ),
            pool_timeout=int(
                self._overrides.get("pool_timeout", Config.DATABASE_POOL_TIMEOUT)
            ),
            statement_timeout_ms=int(
                self._overrides.get(
                    "statement_timeout_ms", Config.DATABASE_STATEMENT_TIMEOUT_MS
                )
            ),
        )

    async def initialize(self) -> None:
        """Create the engine and session factory. Safe to call repeatedly."""
        async with self._init_lock:
            if self._engine is not None:
                return

            config = self._build_config_snapshot()
            engine_kwargs: dict[str, Any] = {
                "echo": config.echo,
                "poolclass": config.pool_class,
                "pool_pre_ping": True,
            }
            if config.pool_class is AsyncAdaptedQueuePool:
                engine_kwargs.update(
                    pool_size=config.pool_size,
                    max_overflow=config.max_overflow,
                    pool_recycle=config.pool_recycle,
                    pool_timeout=config.pool_timeout,
                )

            self._engine = create_async_engine(config.url, **engine_kwargs)
            self._session_factory = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            self._config = config

            logger.info(
                "DatabaseService initialized",
                extra={
                    "url_scheme": config.url_scheme,
                    "pool_class": config.pool_class.__name__,
                    "pool_size": config.pool_size,
                    "statement_timeout_ms": config.statement_timeout_ms,
                },
            )

    async def shutdown(self) -> None:
        """Dispose the engine. No-op if not initialized."""
        async with self._init_lock:
            if self._engine is None:
                return
            try:
                await self._engine.dispose()
                logger.info("DatabaseService shutdown complete")
            finally:
                self._engine = None
                self._session_factory = None
                self._config = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseNotInitializedError(
                "DatabaseService.initialize() must be awaited before use"
            )
        return self._engine

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    def _ensure_initialized(self) -> async_sessionmaker[AsyncSession]:
        if self._engine is None or self._session_factory is None:
            raise DatabaseNotInitializedError(
                "DatabaseService.initialize() must be awaited before use"
            )
        return self._session_factory

    # ========================================================================
    # Health Check
    # ========================================================================

    async def health_check(self) -> bool:
        """True if ``SELECT 1`` succeeds; never raises."""
        if self._engine is None:
            return False

        start = time.perf_counter()
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except _UNAVAILABLE_ERRORS as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        finally:
            logger.debug(
                "Database health check completed",
                extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
            )

    # ========================================================================
    # Sessions
    # ========================================================================

    async def _prepare(self, session: AsyncSession) -> None:
        config = self._config
        if config is None:
            raise DatabaseNotInitializedError("DatabaseService was shut down mid-session")
        if config.is_postgres:
            await session.execute(
                text(f"SET LOCAL statement_timeout = {config.statement_timeout_ms}")
            )

    async def _guard(self, operation: str) -> async_sessionmaker[AsyncSession]:
        session_factory = self._ensure_initialized()
        if not await self._circuit_breaker.allow_request():
            logger.warning(
                "Database request rejected by circuit breaker",
                extra={"operation": operation},
            )
            raise StoreUnavailableError(operation, "database circuit breaker is open")
        return session_factory

    @asynccontextmanager
    async def get_session(
        self, operation: str = "read"
    ) -> AsyncGenerator[AsyncSession, None]:
        """
        Session for read-only work. Nothing is committed; the implicit
        transaction is rolled back when the session closes.
        """
        session_factory = await self._guard(operation)

        start = time.perf_counter()
        async with session_factory() as session:
            try:
                await self._prepare(session)
                yield session
            except _UNAVAILABLE_ERRORS as exc:
                await self._circuit_breaker.record_failure()
                logger.error(
                    "Store unavailable during read",
                    extra={"operation": operation, "error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise StoreUnavailableError(operation, str(exc)) from exc
            else:
                await self._circuit_breaker.record_success()
            finally:
                logger.debug(
                    "Database session closed",
                    extra={
                        "operation": operation,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                )

    @asynccontextmanager
    async def get_transaction(
        self, operation: str = "transaction"
    ) -> AsyncGenerator[AsyncSession, None]:
        """
        Atomic unit of work: commit on clean exit, rollback on any exception.

        Never call ``session.commit()`` or ``session.rollback()`` inside the
        block. Use ``with_for_update`` selects for row locks.
        """
        session_factory = await self._guard(operation)

        start = time.perf_counter()
        async with session_factory() as session:
            try:
                await self._prepare(session)
                yield session
                await session.commit()
            except _UNAVAILABLE_ERRORS as exc:
                await session.rollback()
                await self._circuit_breaker.record_failure()
                logger.error(
                    "Store unavailable; transaction rolled back",
                    extra={
                        "operation": operation,
                        "error_type": type(exc).__name__,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                    exc_info=True,
                )
                raise StoreUnavailableError(operation, str(exc)) from exc
            except BaseException as exc:
                await session.rollback()
                logger.debug(
                    "Transaction rolled back",
                    extra={
                        "operation": operation,
                        "error_type": type(exc).__name__,
                    },
                )
                raise
            else:
                await self._circuit_breaker.record_success()
                logger.debug(
                    "Database transaction committed",
                    extra={
                        "operation": operation,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                )
