"""
Database engine and session factory management with SQLAlchemy async
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
)
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given URL"""
    return create_async_engine(
        database_url,
        echo=echo,
        poolclass=NullPool,  # Short-lived jobs, no pooling across runs
        future=True
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create a session factory bound to an engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


def warehouse_engine() -> AsyncEngine:
    """Engine for the analytics warehouse"""
    return create_engine(settings.WAREHOUSE_DATABASE_URL)
