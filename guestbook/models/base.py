"""Database base and session setup."""
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

import config

logger = logging.getLogger("guestbook.db")


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


engine = create_async_engine(
    config.DATABASE_URL,
    echo=False,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def ensure_schema() -> None:
    """Create entries and settings tables (with indexes) if missing.

    Safe to call concurrently: every statement is create-if-not-exists. Failures
    are logged and swallowed so a request can still proceed with defaults.
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized")
    except Exception:
        logger.exception("Failed to initialize database")


async def ensure_settings_table() -> None:
    """Create only the settings table if missing."""
    from guestbook.models.setting import Setting

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Setting.__table__.create, checkfirst=True)
    except Exception:
        logger.exception("Failed to create settings table")
