import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, TypeVar

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from settleup.config.settings import settings
from settleup.core.exceptions import StorageTimeoutError

T = TypeVar("T")


def _enable_sqlite_savepoints(engine: AsyncEngine):
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works on SQLite."""

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


class DatabaseSessionManager:
    """Manages database connections and sessions."""

    def __init__(self):
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    def init(self, database_url: str, **engine_kwargs: Any):
        """Initialize database engine and session maker."""
        if not database_url.startswith("sqlite"):
            engine_kwargs.setdefault("pool_size", 20)
            engine_kwargs.setdefault("max_overflow", 10)
            engine_kwargs.setdefault("pool_pre_ping", True)

        self._engine = create_async_engine(
            database_url,
            echo=settings.debug,
            **engine_kwargs,
        )

        if database_url.startswith("sqlite"):
            _enable_sqlite_savepoints(self._engine)

        self._sessionmaker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self):
        """Create missing tables."""
        from settleup.database.base import Base
        from settleup.database import models  # noqa: F401

        if self._engine is None:
            raise RuntimeError("DatabaseSessionManager is not initialized")

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self):
        """Close database connections."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session."""
        if self._sessionmaker is None:
            raise RuntimeError("DatabaseSessionManager is not initialized")

        async with self._sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


# Global session manager instance
sessionmanager = DatabaseSessionManager()


async def with_storage_timeout(
        awaitable: Awaitable[T],
        operation: str,
        timeout: float | None = None
) -> T:
    """Await a storage call, turning a timeout into a retryable error."""
    timeout = settings.storage_timeout if timeout is None else timeout
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        raise StorageTimeoutError(operation, timeout) from None
