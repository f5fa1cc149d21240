"""Reserved namespace ownership.

A reserved namespace is a package id prefix (or exact id) that only its
owners may publish under. Registrations owned by a namespace owner and
matching the prefix are attached to the namespace and marked verified.
A namespace that loses its last owner is released: its registrations are
detached and the row is removed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from pkgallery.core.errors import InvalidArgumentError, NotFoundError
from pkgallery.db.models import Account, PackageRegistration, ReservedNamespace
from pkgallery.services.transactions import SessionTransactionBoundary

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def _require_text(value: str | None, argument: str) -> str:
    if value is None or not value.strip():
        raise InvalidArgumentError(argument)
    return value.strip()


class ReservedNamespaceService:
    """Manage owners of reserved namespaces."""

    def __init__(
        self,
        session: AsyncSession,
        transactions: SessionTransactionBoundary | None = None,
    ) -> None:
        self._session = session
        self._transactions = transactions or SessionTransactionBoundary(session)

    async def find_by_prefix(self, prefix: str) -> ReservedNamespace | None:
        """Look up a namespace by value, ignoring case."""
        prefix = _require_text(prefix, "prefix")

        query = (
            select(ReservedNamespace)
            .where(func.lower(ReservedNamespace.value) == prefix.lower())
            .options(
                selectinload(ReservedNamespace.owners),
                selectinload(ReservedNamespace.package_registrations).selectinload(
                    PackageRegistration.owners
                ),
                selectinload(ReservedNamespace.package_registrations).selectinload(
                    PackageRegistration.reserved_namespaces
                ),
            )
        )
        result = await self._session.execute(query)
        return result.scalar_one_or_none()

    async def _get_namespace(self, prefix: str) -> ReservedNamespace:
        namespace = await self.find_by_prefix(prefix)
        if namespace is None:
            raise NotFoundError("Reserved namespace", prefix)
        return namespace

    async def add_owner_to_reserved_namespace(
        self,
        prefix: str,
        username: str,
        *,
        commit: bool = True,
    ) -> None:
        """Make ``username`` an owner of the namespace.

        Registrations the new owner already owns and that match the namespace
        are attached to it and marked verified.

        Raises:
            InvalidArgumentError: If prefix or username is empty.
            NotFoundError: If the namespace or the account does not exist.
        """
        prefix = _require_text(prefix, "prefix")
        username = _require_text(username, "username")

        namespace = await self._get_namespace(prefix)

        result = await self._session.execute(
            select(Account)
            .where(Account.username == username)
            .options(selectinload(Account.package_registrations))
        )
        account = result.scalar_one_or_none()
        if account is None:
            raise NotFoundError("Account", username)

        if account in namespace.owners:
            return

        namespace.owners.append(account)

        for registration in account.package_registrations:
            if namespace.matches(registration.package_id) and (
                registration not in namespace.package_registrations
            ):
                namespace.package_registrations.append(registration)
                registration.is_verified = True

        logger.info("Added %s as owner of namespace %s", username, namespace.value)

        if commit:
            await self._transactions.commit_changes()

    async def delete_owner_from_reserved_namespace(
        self,
        prefix: str,
        username: str,
        *,
        commit: bool = True,
    ) -> None:
        """Remove ``username`` from the owners of a namespace.

        Registrations that were attached only through this owner are
        detached. If no owners remain, the namespace is released.

        Raises:
            InvalidArgumentError: If an argument is empty or the user does not
                own the namespace.
            NotFoundError: If the namespace does not exist.
        """
        prefix = _require_text(prefix, "prefix")
        username = _require_text(username, "username")

        namespace = await self._get_namespace(prefix)

        owner = next(
            (o for o in namespace.owners if o.username.lower() == username.lower()),
            None,
        )
        if owner is None:
            raise InvalidArgumentError(
                "username",
                f"{username} is not an owner of namespace {namespace.value}",
            )

        namespace.owners.remove(owner)

        for registration in list(namespace.package_registrations):
            still_covered = any(o in namespace.owners for o in registration.owners)
            if namespace.owners and still_covered:
                continue
            if namespace.owners and owner not in registration.owners:
                continue
            namespace.package_registrations.remove(registration)
            registration.is_verified = bool(registration.reserved_namespaces)

        if not namespace.owners:
            logger.info("Releasing namespace %s, no owners left", namespace.value)
            await self._session.delete(namespace)

        logger.info("Removed %s from namespace %s", username, namespace.value)

        if commit:
            await self._transactions.commit_changes()
