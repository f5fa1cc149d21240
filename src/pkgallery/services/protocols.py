"""Capability interfaces consumed by the account deletion workflow.

Each protocol is as narrow as the workflow needs. The SQLAlchemy-backed
services in this package satisfy them structurally, and tests substitute
in-memory doubles.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence
    from contextlib import AbstractAsyncContextManager

    from pkgallery.db.models import Account, Credential, Package, PackageRegistration
    from pkgallery.services.account_deletion import DeletionAuditRecord


class PackageDirectory(Protocol):
    """Lookup of owned registrations and version listing."""

    async def find_registrations_by_owner(
        self, account: Account
    ) -> Sequence[PackageRegistration]: ...

    async def mark_package_unlisted(self, package: Package, *, commit: bool = True) -> None: ...


class OwnershipManager(Protocol):
    """Package ownership changes."""

    async def remove_package_owner(
        self,
        registration: PackageRegistration,
        requesting_owner: Account,
        owner_to_remove: Account,
        *,
        commit: bool = True,
    ) -> None: ...


class ReservedNamespaceRegistry(Protocol):
    """Reserved namespace ownership; releases namespaces left without owners."""

    async def delete_owner_from_reserved_namespace(
        self,
        prefix: str,
        username: str,
        *,
        commit: bool = True,
    ) -> None: ...


class PolicySubscriptions(Protocol):
    """Security policy subscriptions."""

    async def unsubscribe(self, account: Account, subscription_name: str) -> None: ...


class CredentialStore(Protocol):
    """Credential management for an account."""

    async def add_credential(self, account: Account, credential: Credential) -> None: ...

    async def remove_credential(self, account: Account, credential: Credential) -> None: ...


class DeletionAuditLog(Protocol):
    """Append-only store for deletion audit records."""

    async def insert(self, record: DeletionAuditRecord) -> None: ...


class TransactionBoundary(Protocol):
    """Unit of work over the underlying storage.

    ``begin()`` yields a scope that commits when the block completes and
    rolls back when it raises. ``commit_changes()`` persists pending changes
    outside of such a scope.
    """

    def begin(self) -> AbstractAsyncContextManager[None]: ...

    async def commit_changes(self) -> None: ...
