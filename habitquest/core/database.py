"""Database engine and session management."""

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from habitquest.core.config import settings

logger = structlog.get_logger()

Base = declarative_base()

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def get_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Get (or lazily create) the async engine."""
    global _engine, _session_factory

    if _engine is None:
        _engine = create_async_engine(database_url or settings.DATABASE_URL)
        _session_factory = async_sessionmaker(_engine, expire_on_commit=False)

    return _engine


def get_session_factory() -> async_sessionmaker:
    """Get the session factory bound to the global engine."""
    get_engine()
    return _session_factory


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """Create tables if they don't exist."""
    # Register models on Base.metadata
    from habitquest.models import progression  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database initialized", url=engine.url.render_as_string(hide_password=True))


async def dispose_engine() -> None:
    """Dispose the global engine."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
