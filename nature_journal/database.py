"""
Nature Journal — Document Store Session Management
====================================================

What:  Async SQLAlchemy engine, session factory and transactional scope.
How:   The engine is built lazily from `settings.database_url` the first time
       it is needed. `session_scope()` commits on success, rolls back on
       error and always closes the session.
Who:   Used by EntryStore; the engine is disposed by JournalApp on shutdown.

Connection Pooling:
    PostgreSQL (asyncpg) uses a queue pool sized by db_pool_size and
    db_max_overflow, with pre-ping and hourly recycling.
    SQLite (aiosqlite) uses a StaticPool: a single shared connection, which
    keeps an in-memory database alive across sessions.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from nature_journal.config import settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models (shared metadata for Alembic)."""
    pass


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine with pool options suited to the backend."""
    if database_url.startswith("sqlite"):
        return create_async_engine(
            database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=settings.log_level == "DEBUG",
        )

    return create_async_engine(
        database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
        echo=settings.log_level == "DEBUG",
    )


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = build_engine(settings.database_url)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory bound to `get_engine()`."""
    global _session_factory
    if _session_factory is None:
        _session_factory = make_session_factory(get_engine())
    return _session_factory


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: rows are converted to schemas after commit
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def session_scope(
    factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AsyncIterator[AsyncSession]:
    """
    Provide a transactional session around a block of store operations.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the caller
        3. On success: commits the transaction
        4. On error: rolls back and re-raises
        5. Always: closes the session (returns connection to pool)
    """
    session_factory = factory or get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_models(engine: Optional[AsyncEngine] = None) -> None:
    """
    Create all tables that do not exist yet.

    Used for local SQLite stores and tests; deployed PostgreSQL stores are
    migrated with Alembic instead.
    """
    # Registers the models on Base.metadata
    from nature_journal.models import entry  # noqa: F401

    target = engine or get_engine()
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close all pooled connections and forget the process-wide engine."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
