"""Session-backed transaction boundary.

Services commit through a shared ``SessionTransactionBoundary`` rather than
calling ``session.commit()`` themselves. While a ``begin()`` scope is open,
their commits are turned into flushes so the scope alone decides whether the
work is committed or rolled back.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class SessionTransactionBoundary:
    """Unit of work over one AsyncSession.

    Scopes nest: only the outermost scope commits or rolls back.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._depth = 0

    @property
    def in_scope(self) -> bool:
        """True while a ``begin()`` block is open."""
        return self._depth > 0

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[None]:
        """Open a transaction scope.

        Commits when the block completes; rolls back and re-raises when the
        block (or the commit itself) fails.
        """
        outermost = self._depth == 0
        self._depth += 1
        try:
            yield
            if outermost:
                await self._session.commit()
        except Exception:
            if outermost:
                logger.warning("Rolling back transaction scope")
                await self._session.rollback()
            raise
        finally:
            self._depth -= 1

    async def commit_changes(self) -> None:
        """Persist pending changes.

        Inside a scope this only flushes; the scope commits on exit.
        """
        if self._depth:
            await self._session.flush()
        else:
            await self._session.commit()
