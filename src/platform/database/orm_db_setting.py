"""
SQLAlchemy async engine and session management

This module provides:
1. AsyncEngineManager: event-loop-aware engine/session maker lifecycle
2. Base: declarative base for every ORM model
3. Database: session provider injected into repositories as `session_factory`

PostgreSQL (asyncpg) is the production target. SQLite (aiosqlite) is accepted for tests and
local runs; there every transaction opens with BEGIN IMMEDIATE so the conditional capacity
updates are serialized instead of failing with "database is locked".
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


def is_sqlite_url(url: str) -> bool:
    return url.startswith('sqlite')


def _enable_sqlite_immediate_transactions(engine: AsyncEngine) -> None:
    """https://docs.sqlalchemy.org/en/20/dialects/sqlite.html#serializable-isolation-savepoints-transactional-ddl"""

    @event.listens_for(engine.sync_engine, 'connect')
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        # Stop pysqlite from emitting its own BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, 'begin')
    def _on_begin(conn: Connection) -> None:
        conn.exec_driver_sql('BEGIN IMMEDIATE')


class AsyncEngineManager:
    """
    Manages the SQLAlchemy async engine with event loop awareness.

    Ensures the engine is always bound to the current event loop to prevent
    "Task got Future attached to a different loop" errors (TestClient and pytest-asyncio
    each run their own loop).
    """

    def __init__(self) -> None:
        self._engine: Optional[AsyncEngine] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    def get_engine(self) -> AsyncEngine:
        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            if self._engine is None:
                self._engine = self._create_engine()
            return self._engine

        if self._loop is not current_loop:
            if self._engine is not None:
                Logger.base.warning('🔄 [DB] Event loop changed, dropping old engine...')
                self._session_maker = None
            Logger.base.info(f'🔗 [DB] Creating engine for event loop {id(current_loop)}')
            self._engine = self._create_engine()
            self._loop = current_loop

        assert self._engine is not None
        return self._engine

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        engine = self.get_engine()
        if self._session_maker is None:
            self._session_maker = async_sessionmaker(
                engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_maker

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_maker = None
        self._loop = None

    def _create_engine(self) -> AsyncEngine:
        url = settings.DATABASE_URL_ASYNC
        if is_sqlite_url(url):
            engine = create_async_engine(
                url,
                echo=False,
                poolclass=NullPool,
                connect_args={'timeout': 30},
            )
            _enable_sqlite_immediate_transactions(engine)
            return engine

        return create_async_engine(
            url,
            echo=False,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_POOL_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=settings.DB_POOL_PRE_PING,
        )


# Global engine manager
_engine_manager = AsyncEngineManager()


def get_engine() -> AsyncEngine:
    """Get event-loop-aware engine"""
    return _engine_manager.get_engine()


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get event-loop-aware session maker"""
    return _engine_manager.get_session_maker()


async def dispose_engine() -> None:
    await _engine_manager.dispose()


class Base(DeclarativeBase):
    pass


def dialect_insert(session: AsyncSession, model: type[Base]) -> Any:
    """INSERT supporting `on_conflict_do_nothing` / `on_conflict_do_update` on the bound dialect"""
    if session.get_bind().dialect.name == 'postgresql':
        return postgresql.insert(model)
    return sqlite.insert(model)


async def create_db_and_tables() -> None:
    """Create database tables if they don't exist (tests and local sqlite runs)"""
    # Register every model on Base.metadata
    import src.service.booking.driven_adapter.model  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    Logger.base.info('🗄️  [DB] Tables ensured')


class Database:
    """
    Session provider for dependency injection

    Repositories receive `database.provided.session` and open one session per operation:

        async with self.session_factory() as session:
            async with session.begin():
                ...
    """

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session_maker = get_session_maker()
        async with session_maker() as session:
            yield session
