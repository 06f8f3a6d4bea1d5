"""Database engine and session management.

Supports PostgreSQL (asyncpg) and SQLite (aiosqlite), selected from the
scheme of the effective database URL.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from workflow_engine.core.config import settings

logger = logging.getLogger(__name__)


def _create_engine(db_url: str | None = None):
    """Create the async engine matching the database URL scheme."""
    db_url = db_url or settings.effective_database_url

    if db_url.startswith("postgresql://") or db_url.startswith("postgresql+asyncpg://"):
        if not db_url.startswith("postgresql+asyncpg://"):
            db_url = db_url.replace("postgresql://", "postgresql+asyncpg://")

        logger.info(f"Using PostgreSQL database: {db_url.split('@')[-1]}")
        return create_async_engine(
            db_url,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            echo=False,
        )

    elif db_url.startswith("sqlite"):
        if db_url.startswith("sqlite://"):
            db_url = db_url.replace("sqlite://", "sqlite+aiosqlite://")
        logger.info(f"Using SQLite database: {db_url}")
        return create_async_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=NullPool,
        )

    else:
        raise ValueError(f"Unsupported database URL scheme: {db_url}")


engine = _create_engine()
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:
    async with async_session() as session:
        yield session
