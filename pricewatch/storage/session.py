"""Async database engine and session configuration."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from pricewatch.storage.models import Base


def create_engine(database_url: str, echo: bool = False, **engine_kwargs) -> AsyncEngine:
    """Create the async engine for ``database_url``.

    Extra keyword arguments (e.g. ``poolclass``) go straight to SQLAlchemy.
    """
    kwargs: dict = {"echo": echo}
    # SQLite doesn't support pool_size / max_overflow / pool_pre_ping
    if not database_url.startswith("sqlite"):
        kwargs.update(pool_size=20, max_overflow=10, pool_pre_ping=True)
    kwargs.update(engine_kwargs)
    return create_async_engine(database_url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create missing tables (no migrations; existing tables are left alone)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
