"""
Wanderlust: Database Connection Management
==========================================

What:  The single shared database connection (an async SQLAlchemy engine),
       its session factory, the declarative base, and identifier parsing.
How:   `Database.connect()` creates the engine and proves it works with a
       round-trip query. Only after that succeeds is the live engine handed
       to dependents (session store, request sessions).
Who:   Built by the startup sequencer; exposed through the application
       context; used by route handlers via `get_db_session`.

Connection Pooling (non-SQLite URLs only):
    pool_size / max_overflow from settings, pool_pre_ping to catch stale
    connections after a database restart, pool_recycle=3600.
    SQLite (tests) keeps SQLAlchemy's default pool for aiosqlite.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from wanderlust.config import Settings
from wanderlust.exceptions import (
    DatabaseConnectionError,
    MalformedIdentifierError,
    StartupOrderError,
)

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Shares one metadata object so `create_all` and Alembic see every table.
    """
    pass


def parse_identifier(value: Any, model: str = "resource") -> uuid.UUID:
    """
    Convert a path parameter into a primary key.

    Raises:
        MalformedIdentifierError: the value is not a UUID. The error funnel
        turns this into a 400 "Invalid ID format!" response.
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        raise MalformedIdentifierError(value, model=model) from None


class Database:
    """
    Owner of the one engine the process uses.

    Lifecycle:
        1. Database(url)            → nothing opened yet, `is_connected` False
        2. await connect()          → engine created and verified with SELECT 1
        3. engine / session()       → available to dependents
        4. await dispose()          → pool closed on shutdown

    Accessing `engine` before `connect()` raises StartupOrderError instead of
    handing out a half-initialised handle.
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 10,
        max_overflow: int = 10,
        pool_pre_ping: bool = True,
        echo: bool = False,
    ):
        self.url = url
        self._pool_options = {
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_pre_ping": pool_pre_ping,
            "pool_recycle": 3600,
        }
        self._echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            echo=settings.log_level == "DEBUG",
        )

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        """The live engine. Only valid after a successful `connect()`."""
        if self._engine is None:
            raise StartupOrderError("Database engine requested before connect() succeeded")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise StartupOrderError("Session factory requested before connect() succeeded")
        return self._session_factory

    async def connect(self) -> None:
        """
        Open the shared connection pool and verify it with one round-trip.

        No retry loop: a database that is unreachable at boot is fatal.

        Raises:
            DatabaseConnectionError: engine creation or the probe query failed.
        """
        if self._engine is not None:
            return

        options = {} if self.url.startswith("sqlite") else dict(self._pool_options)
        try:
            engine = create_async_engine(self.url, echo=self._echo, **options)
        except Exception as exc:
            raise DatabaseConnectionError(
                f"Could not create database engine: {exc}",
                context={"error_type": type(exc).__name__},
            ) from exc

        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as exc:
            await engine.dispose()
            raise DatabaseConnectionError(
                f"Database is unreachable: {exc}",
                context={"error_type": type(exc).__name__},
            ) from exc

        self._engine = engine
        # expire_on_commit=False: objects stay readable after the request
        # session commits (templates render them afterwards)
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("connection successful")

    async def create_schema(self) -> None:
        """Create any missing tables for every registered model."""
        # Imported for their side effect of registering with Base.metadata
        from wanderlust import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        """Lightweight liveness probe used by the health route."""
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as exc:
            logger.warning("Database ping failed: %s", exc)
            return False

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Unit of work: commit on success, roll back on any error, always close.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def dispose(self) -> None:
        """Close every pooled connection. Safe to call when never connected."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency providing one database session per request.

    The session is shared by every dependency of the same request (guards and
    handler see the same objects). Services commit their own writes; newer
    FastAPI releases run this teardown only after the response has gone back
    through the middleware, so the commit below must never be the one that
    persists a request's changes. It rolls back whatever a failed handler
    left behind.
    """
    database: Database = request.app.state.context.database
    async with database.session() as session:
        yield session
