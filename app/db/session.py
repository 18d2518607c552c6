from __future__ import annotations

"""
Reelkeeper — Database Engine & Session Dependencies

- Async engine/session for FastAPI, the ingestion pipeline and tests.
- `async_session_maker` is the session factory the reconciliation engine
  opens exactly one transactional session from per ingest / re-sync.
"""

from typing import Any, AsyncGenerator, Dict
import logging
from contextlib import asynccontextmanager

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)

from app.core.config import settings

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

ASYNC_DATABASE_URL: str = settings.ASYNC_DATABASE_URL

# Pool knobs (ignored for SQLite, which manages its own pool)
_POOL_PRE_PING = True
_POOL_RECYCLE = 1800
_POOL_TIMEOUT = 30
_POOL_SIZE = 10
_MAX_OVERFLOW = 20


def _engine_kwargs(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        return {"echo": False}
    return {
        "pool_pre_ping": _POOL_PRE_PING,
        "pool_recycle": _POOL_RECYCLE,
        "pool_size": _POOL_SIZE,
        "max_overflow": _MAX_OVERFLOW,
        "pool_timeout": _POOL_TIMEOUT,
        "echo": False,
    }


# ─────────────────────────────────────────────────────────────
# ⚡ ASYNC ENGINE
# ─────────────────────────────────────────────────────────────

def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """SQLite ignores `ON DELETE CASCADE` unless each connection opts in."""

    @event.listens_for(engine.sync_engine, "connect")
    def _fk_pragma(dbapi_conn, _record) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


async_engine: AsyncEngine = create_async_engine(ASYNC_DATABASE_URL, **_engine_kwargs(ASYNC_DATABASE_URL))
if ASYNC_DATABASE_URL.startswith("sqlite"):
    enable_sqlite_foreign_keys(async_engine)

async_session_maker = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async SQLAlchemy session."""
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker:
    """FastAPI dependency for code that scopes its own transaction."""
    return async_session_maker


@asynccontextmanager
async def transactional_async_session(
    factory: async_sessionmaker | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Open a session and a transaction; commit on success, roll back on error.

    The session (and its pooled connection) is released on every exit path.
    """
    async with (factory or async_session_maker)() as session:
        async with session.begin():
            yield session


async def db_healthcheck() -> bool:
    """Quick SELECT 1 to verify DB connectivity (used by /readyz)."""
    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("DB healthcheck failed")
        return False


__all__ = [
    "async_engine",
    "enable_sqlite_foreign_keys",
    "async_session_maker",
    "get_async_db",
    "get_session_factory",
    "transactional_async_session",
    "db_healthcheck",
]
