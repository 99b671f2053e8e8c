"""
Database engine configuration for autonews.

Provides async SQLAlchemy engine with SQLite WAL mode,
crash-safe PRAGMA configuration, and session management.
"""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from autonews.config import settings


def configure_sqlite_pragmas(dbapi_conn, connection_record):
    """
    Configure SQLite PRAGMA settings for crash safety and performance.

    - WAL mode: Write-Ahead Logging so pipeline writes don't block API reads
    - FULL synchronous: Maximum crash safety
    - Foreign keys: required for artifact ON DELETE CASCADE
    - Busy timeout: Wait up to 5s for locks
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=FULL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine for the given URL.

    In-memory SQLite databases share a single connection (StaticPool) so every
    session sees the same schema and rows.
    """
    kwargs = {"echo": False}
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    new_engine = create_async_engine(database_url, **kwargs)

    if database_url.startswith("sqlite"):
        # CRITICAL: Use engine.sync_engine for aiosqlite compatibility
        event.listens_for(new_engine.sync_engine, "connect")(configure_sqlite_pragmas)
    return new_engine


def build_session_factory(bound_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False lets callers read ORM objects after the session closes
    return async_sessionmaker(
        bound_engine,
        expire_on_commit=False,
        class_=AsyncSession,
    )


# Create async engine
engine = build_engine(settings.storage.database_url)

# Create session factory
async_session = build_session_factory(engine)


async def get_session():
    """
    Dependency injection function for async sessions.

    Yields an async session and ensures proper cleanup.
    """
    async with async_session() as session:
        yield session


async def shutdown():
    """Dispose of engine and close all connections."""
    await engine.dispose()
