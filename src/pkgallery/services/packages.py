"""Package listing and ownership services."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from pkgallery.core.errors import InvalidArgumentError, require
from pkgallery.db.models import Account, Package, PackageRegistration, ReservedNamespace
from pkgallery.services.transactions import SessionTransactionBoundary

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class PackageService:
    """Queries and listing changes for package registrations and versions."""

    def __init__(
        self,
        session: AsyncSession,
        transactions: SessionTransactionBoundary | None = None,
    ) -> None:
        self._session = session
        self._transactions = transactions or SessionTransactionBoundary(session)

    async def find_registrations_by_owner(self, account: Account) -> Sequence[PackageRegistration]:
        """Return every registration the account directly owns.

        Owners, versions (listed or not) and reserved namespaces are loaded
        eagerly so callers can inspect them without further queries.

        Raises:
            InvalidArgumentError: If account is None.
        """
        require(account, "account")

        query = (
            select(PackageRegistration)
            .join(PackageRegistration.owners)
            .where(Account.account_key == account.account_key)
            .options(
                selectinload(PackageRegistration.owners),
                selectinload(PackageRegistration.packages),
                selectinload(PackageRegistration.reserved_namespaces).selectinload(
                    ReservedNamespace.owners
                ),
            )
            .order_by(PackageRegistration.package_id)
        )
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def find_packages_by_owner(
        self,
        account: Account,
        *,
        include_unlisted: bool = False,
    ) -> Sequence[Package]:
        """Return package versions of registrations the account owns.

        Args:
            account: Owning account.
            include_unlisted: Include versions hidden from search.

        Returns:
            Versions ordered by package id then version.
        """
        require(account, "account")

        query = (
            select(Package)
            .join(Package.package_registration)
            .join(PackageRegistration.owners)
            .where(Account.account_key == account.account_key)
            .options(selectinload(Package.package_registration))
            .order_by(PackageRegistration.package_id, Package.normalized_version)
        )
        if not include_unlisted:
            query = query.where(Package.listed.is_(True))

        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def mark_package_unlisted(self, package: Package, *, commit: bool = True) -> None:
        """Hide a version from search. Already unlisted versions are left as is."""
        require(package, "package")

        if not package.listed:
            return

        package.listed = False
        package.last_edited_at = datetime.now(UTC)
        logger.debug("Unlisted %s %s", package.id, package.normalized_version)

        if commit:
            await self._transactions.commit_changes()

    async def mark_package_listed(self, package: Package, *, commit: bool = True) -> None:
        """Make a version visible in search again."""
        require(package, "package")

        if package.listed:
            return

        package.listed = True
        package.last_edited_at = datetime.now(UTC)
        logger.debug("Listed %s %s", package.id, package.normalized_version)

        if commit:
            await self._transactions.commit_changes()


class PackageOwnershipService:
    """Adds and removes owners of package registrations.

    Ownership also drives reserved namespace membership: a registration stays
    attached to a namespace only while one of its owners owns that namespace,
    and a registration is verified while it is attached to any namespace.
    """

    def __init__(
        self,
        session: AsyncSession,
        transactions: SessionTransactionBoundary | None = None,
    ) -> None:
        self._session = session
        self._transactions = transactions or SessionTransactionBoundary(session)

    async def add_package_owner(
        self,
        registration: PackageRegistration,
        new_owner: Account,
        *,
        commit: bool = True,
    ) -> None:
        """Add an owner, attaching the registration to the owner's matching namespaces."""
        require(registration, "registration")
        require(new_owner, "new_owner")

        if new_owner in registration.owners:
            return

        registration.owners.append(new_owner)

        for namespace in new_owner.reserved_namespaces:
            if namespace.matches(registration.package_id) and (
                namespace not in registration.reserved_namespaces
            ):
                registration.reserved_namespaces.append(namespace)
        registration.is_verified = bool(registration.reserved_namespaces)

        logger.info("Added %s as owner of %s", new_owner.username, registration.package_id)

        if commit:
            await self._transactions.commit_changes()

    async def remove_package_owner(
        self,
        registration: PackageRegistration,
        requesting_owner: Account,
        owner_to_remove: Account,
        *,
        commit: bool = True,
    ) -> None:
        """Remove an owner from a registration.

        Namespaces the removed owner brought to the registration are detached
        unless another remaining owner also owns them.

        Raises:
            InvalidArgumentError: If an argument is None or ``owner_to_remove``
                does not own the registration.
        """
        require(registration, "registration")
        require(requesting_owner, "requesting_owner")
        require(owner_to_remove, "owner_to_remove")

        if owner_to_remove not in registration.owners:
            raise InvalidArgumentError(
                "owner_to_remove",
                f"{owner_to_remove.username} is not an owner of {registration.package_id}",
            )

        registration.owners.remove(owner_to_remove)

        for namespace in list(registration.reserved_namespaces):
            if owner_to_remove not in namespace.owners:
                continue
            if any(owner in namespace.owners for owner in registration.owners):
                continue
            registration.reserved_namespaces.remove(namespace)
        registration.is_verified = bool(registration.reserved_namespaces)

        logger.info(
            "%s removed %s as owner of %s",
            requesting_owner.username,
            owner_to_remove.username,
            registration.package_id,
        )

        if commit:
            await self._transactions.commit_changes()
