"""
Database module for autonews.

Provides async SQLAlchemy engine with SQLite WAL mode,
session management, and schema initialization.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from autonews.db.engine import (
    async_session,
    build_engine,
    build_session_factory,
    engine,
    get_session,
    shutdown,
)
from autonews.db.models import Base, Job, Article, Summary, Audio, Video

logger = logging.getLogger(__name__)


async def init_database(bound_engine: Optional[AsyncEngine] = None):
    """Initialize database schema on first run."""
    target = bound_engine or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready (%s)", target.url.render_as_string(hide_password=True))


__all__ = [
    "Base",
    "Job",
    "Article",
    "Summary",
    "Audio",
    "Video",
    "engine",
    "async_session",
    "build_engine",
    "build_session_factory",
    "get_session",
    "shutdown",
    "init_database",
]
