"""Database engine and async session factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import asynccontextmanager
from functools import lru_cache

from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session

from medbook.config import get_settings
from medbook.core.models import Base

logger = logging.getLogger(__name__)

_AFTER_COMMIT = "medbook.after_commit"


def get_database_url() -> str:
    return get_settings().database_url


@lru_cache
def _get_engine() -> AsyncEngine:
    settings = get_settings()
    if settings.is_sqlite:
        return create_async_engine(get_database_url(), echo=settings.database_echo)
    return create_async_engine(
        get_database_url(),
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        echo=settings.database_echo,
    )


@lru_cache
def _get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(_get_engine(), class_=AsyncSession, expire_on_commit=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for callers outside a request (CLI, jobs)."""
    return _get_session_factory()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async session."""
    async with _get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create all tables (dev only; production uses migrations)."""
    engine = _get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema created at %s", engine.url.render_as_string(hide_password=True))


async def ping(session: AsyncSession) -> bool:
    """Return True when the database answers a trivial query."""
    result = await session.execute(text("SELECT 1"))
    return result.scalar_one() == 1


@asynccontextmanager
async def unit_of_work(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run a block atomically on *session*.

    A session with no open transaction gets its own, committed on success
    and rolled back on error. Inside a caller's transaction (e.g. the
    ``get_db`` request scope) the block joins it, and a failed flush rolls
    the whole transaction back so no partial state survives.
    """
    if not session.in_transaction():
        async with session.begin():
            yield session
        return
    try:
        yield session
    except SQLAlchemyError:
        await session.rollback()
        raise


def after_commit(session: AsyncSession, callback: Callable[[], None]) -> None:
    """Run *callback* once the work done on *session* is durable.

    With no open transaction the callback runs immediately. Otherwise it is
    queued until the outermost transaction commits, and dropped if that
    transaction rolls back.
    """
    sync_session = session.sync_session
    if not sync_session.in_transaction():
        callback()
        return
    sync_session.info.setdefault(_AFTER_COMMIT, []).append(callback)


@event.listens_for(Session, "after_commit")
def _run_after_commit(sync_session: Session) -> None:
    for callback in sync_session.info.pop(_AFTER_COMMIT, []):
        callback()


@event.listens_for(Session, "after_rollback")
def _drop_after_commit(sync_session: Session) -> None:
    pending = sync_session.info.pop(_AFTER_COMMIT, None)
    if pending:
        logger.debug("Dropped %d post-commit callbacks after rollback", len(pending))
