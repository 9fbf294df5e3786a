"""
Database Connection

Async SQLAlchemy connection management (asyncpg in production, aiosqlite in tests).
"""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine
)
from sqlalchemy.pool import NullPool

from config.settings import Settings, settings as default_settings


# Lazy initialization - don't create engine at module load
_engine: Optional[AsyncEngine] = None


def create_engine_for(database_url: str, echo: bool = False) -> AsyncEngine:
    """Build an async engine for the given URL."""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo)
    return create_async_engine(
        database_url,
        echo=echo,
        poolclass=NullPool,  # Better for serverless
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Build a session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False
    )


def configure(app_settings: Optional[Settings] = None) -> async_sessionmaker:
    """
    (Re)configure the module-level engine and return a session factory for it.

    Called once by the application, worker and CLI entry points with their
    Settings value.

    Usage:
        session_factory = configure(settings)
        await init_db()
        async with session_factory() as session:
            result = await session.execute(select(RFP))
    """
    global _engine

    app_settings = app_settings or default_settings
    _engine = create_engine_for(app_settings.database_url, app_settings.database_echo)
    return create_session_factory(_engine)


def get_engine() -> AsyncEngine:
    """Get or create the async engine (lazy initialization)."""
    if _engine is None:
        configure()
    return _engine


async def init_db(engine: Optional[AsyncEngine] = None):
    """
    Initialize database tables.

    Note: In production, use Alembic migrations instead.
    """
    from database.models import Base

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connections."""
    global _engine

    if _engine:
        await _engine.dispose()
        _engine = None
