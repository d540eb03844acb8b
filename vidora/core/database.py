"""
Async SQLAlchemy engine, session factory and declarative Base.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from vidora.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def build_engine(settings: Optional[Settings] = None) -> AsyncEngine:
    settings = settings or get_settings()
    url = settings.database_url
    kwargs = {"echo": settings.db_echo, "pool_pre_ping": True}
    if url.startswith("postgresql"):
        kwargs.update(pool_size=settings.db_pool_size, max_overflow=settings.db_max_overflow)
    return create_async_engine(url, **kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine()
async_session_factory = build_session_factory(engine)


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """Create all tables (idempotent)."""
    # Models must be imported so their tables are registered on Base.metadata
    from vidora.models import models  # noqa: F401

    bind = bind or engine
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured")
