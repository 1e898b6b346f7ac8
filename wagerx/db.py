"""
WAGERX - Database connection and session management for the wager mirror.

The gateway uses the module-level engine built from `settings.database_url`.
Tests and tools build their own through `build_engine` so they get the same
driver options (SQLite needs cross-thread access, and an in-memory database
must share one connection or every session sees an empty schema).
"""

from typing import Any, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from wagerx.config import settings

# Base class for models
Base = declarative_base()


def build_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """Create an async engine with the options the mirror needs for its backend."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        connect_args = dict(kwargs.pop("connect_args", {}))
        connect_args.setdefault("check_same_thread", False)
        kwargs["connect_args"] = connect_args
        if url.database in (None, "", ":memory:"):
            kwargs.setdefault("poolclass", StaticPool)
    kwargs.setdefault("echo", False)
    return create_async_engine(url, **kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    """Session factory used for every mirror session."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine(settings.database_url)
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncSession:
    """Dependency for FastAPI to get database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """Create the mirror tables on the given engine (default: the gateway's)."""
    import wagerx.models  # noqa: F401  registers the tables on Base

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
