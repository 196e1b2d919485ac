# app/db/session.py
from __future__ import annotations

"""
MoviesNow CMS — Database Engine & Session Factory

- Async engine/session used by `SqlDocumentStore`.
- Created lazily (first use), so importing this module never opens a pool
  and the in-memory document store works without asyncpg installed.
"""

from typing import Optional
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)

from app.core.config import settings

logger = logging.getLogger(__name__)

# Pool knobs
_POOL_PRE_PING = True
_POOL_RECYCLE = 1800
_POOL_TIMEOUT = 30
_POOL_SIZE = 10
_MAX_OVERFLOW = 20

_async_engine: Optional[AsyncEngine] = None
_async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


# ─────────────────────────────────────────────────────────────
# ⚡ ASYNC ENGINE
# ─────────────────────────────────────────────────────────────
def get_async_engine(url: Optional[str] = None) -> AsyncEngine:
    """Create the async engine on first use (requires asyncpg for Postgres)."""
    global _async_engine
    if _async_engine is None:
        _async_engine = create_async_engine(
            url or settings.ASYNC_DATABASE_URL,
            pool_pre_ping=_POOL_PRE_PING,
            pool_recycle=_POOL_RECYCLE,
            pool_size=_POOL_SIZE,
            max_overflow=_MAX_OVERFLOW,
            pool_timeout=_POOL_TIMEOUT,
            echo=False,
            future=True,
        )
    return _async_engine


def get_async_session_maker() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the shared async engine."""
    global _async_session_maker
    if _async_session_maker is None:
        _async_session_maker = async_sessionmaker(
            bind=get_async_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _async_session_maker


async def db_healthcheck() -> bool:
    """Quick SELECT 1 to verify DB connectivity (used by /readyz)."""
    if _async_engine is None:
        return True
    try:
        async with _async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("DB healthcheck failed")
        return False


async def dispose_engine() -> None:
    global _async_engine, _async_session_maker
    if _async_engine is not None:
        await _async_engine.dispose()
        logger.info("🛑 Database engine disposed")
    _async_engine = None
    _async_session_maker = None


__all__ = [
    "get_async_engine",
    "get_async_session_maker",
    "db_healthcheck",
    "dispose_engine",
]
