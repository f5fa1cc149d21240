"""Persistence for account deletion audit records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from pkgallery.core.errors import require
from pkgallery.db.models import AccountDeletion

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from pkgallery.services.account_deletion import DeletionAuditRecord

logger = logging.getLogger(__name__)


class AccountDeletionLog:
    """Append-only log of deleted accounts.

    ``insert`` only flushes; committing is left to the caller's transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def insert(self, record: DeletionAuditRecord) -> AccountDeletion:
        require(record, "record")

        row = AccountDeletion(
            deleted_account_key=record.deleted_account_key,
            deleted_username=record.deleted_username,
            deleted_by_key=record.deleted_by_key,
            deleted_by_username=record.deleted_by_username,
            signature=record.signature,
            deleted_at=record.deleted_at,
            description=record.description,
        )
        self._session.add(row)
        await self._session.flush()

        logger.debug(
            "Recorded deletion of %s by %s",
            record.deleted_username,
            record.deleted_by_username,
        )
        return row

    async def list_for_account(self, account_key: int) -> Sequence[AccountDeletion]:
        """Deletion records for an account, oldest first."""
        result = await self._session.execute(
            select(AccountDeletion)
            .where(AccountDeletion.deleted_account_key == account_key)
            .order_by(AccountDeletion.deleted_at)
        )
        return list(result.scalars().all())
