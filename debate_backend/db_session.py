"""
SQLAlchemy async session setup for the debate backend.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from debate_backend import config


def normalize_database_url(url: str) -> str:
    """Convert postgres URLs to the asyncpg driver and sync sqlite URLs to aiosqlite."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def build_engine(database_url: Optional[str] = None, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine.

    An in-memory SQLite URL gets a ``StaticPool`` so every session shares the
    one connection that holds the database.
    """
    url = normalize_database_url(database_url or config.DATABASE_URL)
    kwargs = {"echo": echo, "future": True}
    if url.startswith("sqlite") and ":memory:" in url:
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_async_engine(url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
