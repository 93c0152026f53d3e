"""Async SQLAlchemy engine and the session factory behind the issue store."""

from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

_engine: AsyncEngine | None = None
_sessions: async_sessionmaker[AsyncSession] | None = None


def engine_options(url: str) -> dict[str, Any]:
    """Pool settings for asyncpg; other drivers (SQLite in tests) take the defaults."""
    options: dict[str, Any] = {"pool_pre_ping": True}
    if url.startswith("postgresql"):
        # pgbouncer in transaction mode cannot hold prepared statements.
        options.update(pool_size=20, max_overflow=10, connect_args={"statement_cache_size": 0})
    return options


async def init_db(url: str) -> None:
    global _engine, _sessions  # noqa: PLW0603
    _engine = create_async_engine(url, **engine_options(url))
    _sessions = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)


async def close_db() -> None:
    global _engine, _sessions  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessions = None


def get_engine() -> AsyncEngine:
    if _engine is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for SqlIssueStore. Raises until init_db() has run."""
    if _sessions is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _sessions
