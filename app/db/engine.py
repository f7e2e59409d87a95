"""Async SQLAlchemy engine and session factory.

When DATABASE_URL is configured, provides:
- async engine (asyncpg for PostgreSQL; aiosqlite works for local runs)
- async session factory for request-scoped sessions
- lifespan hook for startup/shutdown

When DATABASE_URL is None, engine and session factory are None and the
HTTP layer serves from the in-memory backend (app/services/registry.py).
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


def make_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    kwargs: dict[str, Any] = {"echo": echo}
    # SQLite uses a static/NullPool; pool sizing only applies to server DBs.
    if not url.startswith("sqlite"):
        kwargs.update(pool_size=5, max_overflow=10)
    return create_async_engine(url, **kwargs)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


# --- Engine and session factory (None when no DATABASE_URL) ---

if SETTINGS.database_url:
    engine: AsyncEngine | None = make_engine(
        SETTINGS.database_url, echo=SETTINGS.is_dev  # log SQL in dev only
    )
    async_session_factory: async_sessionmaker[AsyncSession] | None = (
        make_session_factory(engine)
    )
else:
    engine = None
    async_session_factory = None


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Open a request-scoped async session.

    Commits on success, rolls back on exception.
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def lifespan_db():
    """Startup/shutdown hook for the database engine."""
    if engine is None:
        logger.info("No DATABASE_URL configured; serving from in-memory stores")
        yield
        return

    logger.info("Database engine created: %s", engine.url.render_as_string())
    yield
    await engine.dispose()
    logger.info("Database engine disposed")
