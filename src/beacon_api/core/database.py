"""
Database Configuration

Async SQLAlchemy engine, session factory and the declarative Base shared by
all models.
"""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from beacon_api.core.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
    pool_recycle=1800,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding a database session.

    The session is rolled back if the request handler raises, so a failed
    request never leaves a half-written transaction behind.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def _import_models() -> None:
    """Import every model module so their tables are registered on Base.metadata."""
    from beacon_api.modules.applications import models as _applications  # noqa: F401
    from beacon_api.modules.payments import models as _payments  # noqa: F401
    from beacon_api.modules.users import models as _users  # noqa: F401


async def init_db() -> None:
    """
    Verify database connectivity on startup.

    In development the tables are created directly; other environments are
    expected to run the Alembic migrations.
    """
    _import_models()
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if settings.is_development:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Development mode: ensured database tables exist")


async def close_db() -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
