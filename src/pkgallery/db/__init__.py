"""pkgallery database module.

- SQLAlchemy 2.x ORM models
- Lazily built async engine and session factory (psycopg driver)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncEngine

    from pkgallery.core.config import DatabaseSettings

logger = logging.getLogger(__name__)

_ASYNC_SCHEMES = {
    "postgresql": "postgresql+psycopg",
    "postgres": "postgresql+psycopg",
}

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def to_async_url(url: str) -> str:
    """Point a plain PostgreSQL URL at the async psycopg driver.

    URLs that already name a driver are returned unchanged.
    """
    scheme, sep, rest = url.partition("://")
    if not sep or scheme not in _ASYNC_SCHEMES:
        return url
    return f"{_ASYNC_SCHEMES[scheme]}://{rest}"


def _session_factory_for(database: DatabaseSettings) -> async_sessionmaker[AsyncSession]:
    global _engine, _session_factory

    if _session_factory is None:
        _engine = create_async_engine(
            to_async_url(str(database.url)),
            pool_size=database.pool_size,
            max_overflow=database.max_overflow,
            pool_timeout=database.pool_timeout,
            echo=database.echo,
        )
        # Deleted accounts are read back after commit to build results
        _session_factory = async_sessionmaker(bind=_engine, expire_on_commit=False)
        logger.info("Database engine created (pool_size=%d)", database.pool_size)
    return _session_factory


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Open a session for one unit of work.

    Rolled back if the block raises, closed on every exit. Committing is
    up to the caller, usually through a SessionTransactionBoundary.

    Usage:
        async with get_async_session() as session:
            service = create_delete_account_service(session)
            await service.delete_account(user, admin, "signature")
    """
    from pkgallery.core.settings import get_settings

    factory = _session_factory_for(get_settings().database)
    session = factory()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def close_engine() -> None:
    """Dispose of the pooled connections and forget the session factory."""
    global _engine, _session_factory

    engine, _engine, _session_factory = _engine, None, None
    if engine is not None:
        await engine.dispose()
        logger.info("Database engine disposed")
