"""Database abstraction layer using SQLAlchemy 2.0 async.

This module provides the database session management and engine configuration
for SQLAlchemy with async support. It supports both SQLite (aiosqlite) and
PostgreSQL (asyncpg) drivers.

Every lifecycle operation runs as one transaction. On PostgreSQL the
conditional writes and ``SELECT ... FOR UPDATE`` row locks serialize
competing requests; SQLite ignores ``FOR UPDATE``, so its transactions are
started with ``BEGIN IMMEDIATE`` instead, which takes the write lock up front.
"""

import asyncio
import functools
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Awaitable, Callable, TypeVar

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from gatekeep.core.config import Settings, get_settings
from gatekeep.core.logging import get_logger
from gatekeep.domain.errors import (
    GatekeepError,
    InfrastructureError,
    InfrastructureTimeoutError,
)

logger = get_logger(__name__)

T = TypeVar("T")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models.

    All models should inherit from this class to get proper ORM mapping
    and metadata management.
    """

    pass


def configure_sqlite_engine(engine: AsyncEngine, foreign_keys: bool = True) -> None:
    """Make every SQLite transaction take the write lock when it begins.

    pysqlite's own BEGIN handling is switched off and replaced by an explicit
    ``BEGIN IMMEDIATE``, so two transactions can never both read a token row
    as active before one of them writes.

    Args:
        engine: Async engine bound to a SQLite database.
        foreign_keys: Whether to enforce foreign keys on each connection.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        if foreign_keys:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class DatabaseManager:
    """Database connection and session manager.

    This class manages the async database engine and session factory.
    One instance is created at process start and handed to whoever needs it.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the database manager.

        Args:
            settings: Settings to use. Defaults to the cached application settings.
        """
        self.settings = settings or get_settings()
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_sqlite(self) -> bool:
        return self.settings.database_url.startswith("sqlite")

    @property
    def engine(self) -> AsyncEngine:
        """Get or create the database engine.

        Returns:
            AsyncEngine: SQLAlchemy async engine instance.
        """
        if self._engine is None:
            kwargs: dict[str, Any] = {"echo": self.settings.db_echo}
            if self.is_sqlite:
                kwargs["connect_args"] = {
                    "check_same_thread": False,
                    "timeout": self.settings.db_sqlite_busy_timeout / 1000,
                }
            if ":memory:" in self.settings.database_url:
                # One shared connection, or each checkout would see an empty database
                kwargs["poolclass"] = StaticPool
            else:
                kwargs.update(
                    pool_size=self.settings.db_pool_size,
                    max_overflow=self.settings.db_max_overflow,
                    pool_timeout=self.settings.db_pool_timeout,
                    pool_recycle=self.settings.db_pool_recycle,
                )

            self._engine = create_async_engine(self.settings.database_url, **kwargs)
            if self.is_sqlite:
                configure_sqlite_engine(self._engine)

            logger.info(
                "Database engine created",
                database_url=self._engine.url.render_as_string(hide_password=True),
                pool_size=self.settings.db_pool_size,
            )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
            logger.debug("Database session factory created")
        return self._session_factory

    async def create_tables(self) -> None:
        """Create all database tables.

        Should be called on application startup for development.
        In production, use migrations instead.
        """
        from gatekeep.infrastructure.persistence import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created")

    async def drop_tables(self) -> None:
        """Drop all database tables.

        WARNING: This will delete all data. Only use in testing!
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            logger.warning("Database tables dropped")

    async def disconnect(self) -> None:
        """Close the database engine and all connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database engine disposed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for database operations.

        Example:
            async with db.session() as session:
                result = await session.execute(select(ExternalUserModel))
        """
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def check_connection(self) -> bool:
        """Check if database connection is working."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
                logger.debug("Database connection check successful")
                return True
        except (SQLAlchemyError, OSError) as e:
            logger.error("Database connection check failed", error=str(e))
            return False


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for FastAPI to get a database session.

    The database manager is created at startup and kept on ``app.state.db``.

    Yields:
        AsyncSession: SQLAlchemy async session.
    """
    db: DatabaseManager = request.app.state.db
    async with db.session() as session:
        yield session


async def init_database(db: DatabaseManager) -> None:
    """Initialize the database.

    Creates tables in development mode. In production, migrations
    should be used instead.

    Raises:
        RuntimeError: If the database is unreachable.
    """
    settings = db.settings

    if db.is_sqlite and ":memory:" not in settings.database_url:
        db_path = settings.database_url.split(":///")[-1]
        db_dir = Path(db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Database directory created", path=str(db_dir))

    if not await db.check_connection():
        logger.error("Database connection failed")
        raise RuntimeError("Failed to connect to database")

    if settings.is_development or settings.is_testing:
        logger.info("Development mode: Creating database tables")
        await db.create_tables()
    else:
        logger.info("Production mode: Skipping auto-create, use migrations")


async def _rollback_quietly(session: AsyncSession) -> None:
    try:
        await session.rollback()
    except SQLAlchemyError as e:
        logger.warning("Rollback after failed unit of work also failed", error=str(e))


def unit_of_work(
    func: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """Run a service method as one bounded, all-or-nothing unit of work.

    The wrapped method's instance must expose ``session`` (an AsyncSession)
    and ``store_timeout`` (seconds). Any failure or cancellation rolls the
    transaction back. Timeouts surface as ``InfrastructureTimeoutError`` and
    other store failures as ``InfrastructureError``.
    """

    @functools.wraps(func)
    async def wrapper(self, *args: Any, **kwargs: Any) -> T:
        operation = func.__qualname__
        try:
            return await asyncio.wait_for(
                func(self, *args, **kwargs), timeout=self.store_timeout
            )
        except asyncio.TimeoutError as e:
            await _rollback_quietly(self.session)
            logger.error(
                "Unit of work timed out",
                operation=operation,
                timeout_seconds=self.store_timeout,
            )
            raise InfrastructureTimeoutError() from e
        except GatekeepError:
            await _rollback_quietly(self.session)
            raise
        except SQLAlchemyError as e:
            await _rollback_quietly(self.session)
            logger.error(
                "Store failure",
                operation=operation,
                error=str(e),
                exc_type=type(e).__name__,
                exc_info=True,
            )
            raise InfrastructureError() from e
        except asyncio.CancelledError:
            await asyncio.shield(_rollback_quietly(self.session))
            raise

    return wrapper
