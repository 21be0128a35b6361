"""Database engine, session handling and transaction helpers."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from classroom.config.settings import Settings

# Import models so they are attached to Base.metadata before table creation
from classroom.models import Base

logger = logging.getLogger(__name__)

# Failures a caller may safely retry: lost connections, pool exhaustion and
# statement timeouts.
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    OperationalError,
    InterfaceError,
    PoolTimeoutError,
    TimeoutError,
)


def _configure_sqlite(engine: AsyncEngine) -> None:
    """Enforce foreign keys and take the write lock when a transaction begins."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        # Disable the driver's implicit BEGIN; "_on_begin" emits our own.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _create_engine(
    url: str,
    *,
    echo: bool,
    pooled: bool,
    query_timeout: float | None,
) -> AsyncEngine:
    """Create an async engine with environment-appropriate pooling."""

    is_sqlite = url.startswith("sqlite")
    engine_options: dict[str, Any] = {
        "echo": echo,
        "pool_pre_ping": True,
    }

    connect_args: dict[str, Any] = {}
    if query_timeout is not None:
        # sqlite3 waits this long on a locked database; asyncpg aborts slow statements.
        connect_args["timeout" if is_sqlite else "command_timeout"] = query_timeout
    if connect_args:
        engine_options["connect_args"] = connect_args

    if is_sqlite or not pooled:
        engine_options["poolclass"] = NullPool

    engine = create_async_engine(url, **engine_options)
    if is_sqlite:
        _configure_sqlite(engine)
    return engine


class Database:
    """Store handle owning one engine and its session factory.

    Created by the application factory and kept on ``app.state`` so that
    request handlers, middleware and tests all receive it explicitly.
    """

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        pooled: bool = True,
        query_timeout: float | None = None,
    ) -> None:
        self.url = url
        self.engine = _create_engine(
            url,
            echo=echo,
            pooled=pooled,
            query_timeout=query_timeout,
        )
        self.session_factory = async_sessionmaker(
            self.engine,
            expire_on_commit=False,
            class_=AsyncSession,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.database.url,
            echo=settings.debug,
            # Disable pooling when working with serverless databases (or in debug).
            pooled=not (settings.database.serverless or settings.debug),
            query_timeout=settings.database.query_timeout,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session; its open transaction is rolled back on exit."""

        async with self.session_factory() as session:
            yield session

    async def init_models(self) -> None:
        """Create database tables if they do not exist."""

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Ensured database tables for %s.", self.engine.dialect.name)

    async def dispose(self) -> None:
        """Dispose of the engine and release pooled connections."""

        await self.engine.dispose()


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit everything done inside the block, or roll all of it back."""

    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding a session from the app's database."""

    database: Database = request.app.state.database
    async with database.session() as session:
        yield session


__all__ = ["Database", "TRANSIENT_ERRORS", "atomic", "get_session"]
