"""
Database Engine

Async SQLAlchemy engine and session factory used by the appointment and
push subscription stores. The booking application owns the schema; this
service only reads appointments and flips their reminder flags.
"""

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from reminder_service.config import settings
from reminder_service.models.database import Base

logger = logging.getLogger(__name__)

# Runs are short and infrequent; don't hold connections between them
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    poolclass=NullPool,
)

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_db() -> None:
    """Create missing tables. Development only."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine."""
    await engine.dispose()


async def check_db_health() -> bool:
    """
    Check that the database answers a trivial query.

    Returns:
        bool: True if reachable, False otherwise
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"Database health check failed: {e}")
        return False
    return True
