"""Account deletion workflow.

Deactivates a gallery account on behalf of an administrator:
- removes the account from every package registration it owns, unlisting
  versions of registrations left without owners
- detaches it from its reserved namespaces (orphaned namespaces are released)
- unsubscribes it from its security policies
- removes its credentials
- scrubs personal data and marks the account deleted
- writes one AccountDeletion audit record

Deleting an account that is already deleted is a recognized no-op, which is
what makes retrying a failed request safe. Individual steps are not
idempotent on their own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pkgallery.core.errors import InvalidArgumentError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from pkgallery.core.config import Settings
    from pkgallery.db.models import Account
    from pkgallery.services.protocols import (
        CredentialStore,
        DeletionAuditLog,
        OwnershipManager,
        PackageDirectory,
        PolicySubscriptions,
        ReservedNamespaceRegistry,
        TransactionBoundary,
    )
    from pkgallery.services.telemetry import TelemetryService

logger = logging.getLogger(__name__)

ALREADY_DELETED_DESCRIPTION = "The account:{username} was already deleted. No action was performed."
DELETED_DESCRIPTION = "The account:{username} was deleted successfully."


@dataclass(frozen=True, slots=True)
class DeletionAuditRecord:
    """Immutable record of one account deletion.

    Attributes:
        deleted_account_key: Key of the deleted account.
        deleted_username: Username of the deleted account.
        deleted_by_key: Key of the administrator who performed the deletion.
        deleted_by_username: Username of that administrator.
        signature: Justification entered by the administrator.
        deleted_at: When the deletion happened (UTC).
        description: Human-readable outcome.
    """

    deleted_account_key: int
    deleted_username: str
    deleted_by_key: int
    deleted_by_username: str
    signature: str
    deleted_at: datetime
    description: str


@dataclass(frozen=True, slots=True)
class DeletionResult:
    """Outcome of a deletion request.

    Attributes:
        account_name: Username the request targeted.
        description: Human-readable outcome.
        success: True for both a completed deletion and a no-op.
        audit_record: The record written, None on the no-op path.
    """

    account_name: str
    description: str
    success: bool
    audit_record: DeletionAuditRecord | None = None


class DeleteAccountService:
    """Orchestrates deletion of a single account across domain services.

    Example:
        service = create_delete_account_service(session)
        result = await service.delete_account(
            user,
            admin,
            "Requested by the account owner via support",
            unlist_orphan_packages=True,
            commit_as_transaction=True,
        )
    """

    def __init__(
        self,
        *,
        packages: PackageDirectory,
        ownership: OwnershipManager,
        namespaces: ReservedNamespaceRegistry,
        policies: PolicySubscriptions,
        credentials: CredentialStore,
        audit_log: DeletionAuditLog,
        transactions: TransactionBoundary,
        telemetry: TelemetryService | None = None,
        default_unlist_orphan_packages: bool = True,
        default_commit_as_transaction: bool = True,
    ) -> None:
        self._packages = packages
        self._ownership = ownership
        self._namespaces = namespaces
        self._policies = policies
        self._credentials = credentials
        self._audit_log = audit_log
        self._transactions = transactions
        self._telemetry = telemetry
        self._default_unlist_orphan_packages = default_unlist_orphan_packages
        self._default_commit_as_transaction = default_commit_as_transaction

    async def delete_account(
        self,
        user_to_delete: Account | None,
        acting_admin: Account | None,
        signature: str | None,
        *,
        unlist_orphan_packages: bool | None = None,
        commit_as_transaction: bool | None = None,
    ) -> DeletionResult:
        """Delete an account.

        With ``commit_as_transaction`` every mutation happens inside one
        transaction scope: a failure in any step rolls all of them back.
        Without it each collaborator commits its own change as it goes, so a
        failure part way leaves the earlier steps applied. Nothing is
        compensated in that case; the caller should retry the whole request.

        Telemetry is sent after the deletion is persisted. A telemetry
        failure is logged and does not change the result.

        Args:
            user_to_delete: Account to delete.
            acting_admin: Administrator performing the deletion.
            signature: Justification recorded in the audit trail.
            unlist_orphan_packages: Unlist versions of registrations left
                without owners. Defaults to the service configuration.
            commit_as_transaction: Run all steps atomically. Defaults to the
                service configuration.

        Returns:
            DeletionResult describing the outcome.

        Raises:
            InvalidArgumentError: If a required argument is None.
        """
        if user_to_delete is None:
            raise InvalidArgumentError("user_to_delete")
        if acting_admin is None:
            raise InvalidArgumentError("acting_admin")
        if signature is None:
            raise InvalidArgumentError("signature")

        if unlist_orphan_packages is None:
            unlist_orphan_packages = self._default_unlist_orphan_packages
        if commit_as_transaction is None:
            commit_as_transaction = self._default_commit_as_transaction

        username = user_to_delete.username

        if user_to_delete.is_deleted:
            logger.info("Account %s is already deleted, nothing to do", username)
            return DeletionResult(
                account_name=username,
                description=ALREADY_DELETED_DESCRIPTION.format(username=username),
                success=True,
            )

        logger.info(
            "Deleting account %s on behalf of %s (unlist_orphans=%s, transactional=%s)",
            username,
            acting_admin.username,
            unlist_orphan_packages,
            commit_as_transaction,
        )

        try:
            if commit_as_transaction:
                async with self._transactions.begin():
                    record = await self._delete(
                        user_to_delete,
                        acting_admin,
                        signature,
                        unlist_orphan_packages=unlist_orphan_packages,
                        commit=False,
                    )
            else:
                record = await self._delete(
                    user_to_delete,
                    acting_admin,
                    signature,
                    unlist_orphan_packages=unlist_orphan_packages,
                    commit=True,
                )
                await self._transactions.commit_changes()
        except Exception:
            logger.exception(
                "Failed to delete account %s (transactional=%s)",
                username,
                commit_as_transaction,
            )
            raise

        result = DeletionResult(
            account_name=username,
            description=record.description,
            success=True,
            audit_record=record,
        )

        logger.info("Deleted account %s", username)

        if self._telemetry is not None:
            # The deletion is already persisted at this point
            try:
                self._telemetry.track_account_deleted_event(result)
            except Exception:
                logger.exception("Failed to track deletion of account %s", username)

        return result

    async def _delete(
        self,
        user: Account,
        admin: Account,
        signature: str,
        *,
        unlist_orphan_packages: bool,
        commit: bool,
    ) -> DeletionAuditRecord:
        # Order matters: namespace release looks at owners left after ownership removal
        await self._remove_package_ownership(
            user,
            admin,
            unlist_orphan_packages=unlist_orphan_packages,
            commit=commit,
        )
        await self._remove_reserved_namespaces(user, commit=commit)
        await self._remove_security_policies(user)
        await self._remove_credentials(user)
        self._scrub_personal_data(user)

        record = DeletionAuditRecord(
            deleted_account_key=user.account_key,
            deleted_username=user.username,
            deleted_by_key=admin.account_key,
            deleted_by_username=admin.username,
            signature=signature,
            deleted_at=datetime.now(UTC),
            description=DELETED_DESCRIPTION.format(username=user.username),
        )
        await self._audit_log.insert(record)
        return record

    async def _remove_package_ownership(
        self,
        user: Account,
        admin: Account,
        *,
        unlist_orphan_packages: bool,
        commit: bool,
    ) -> None:
        registrations = list(await self._packages.find_registrations_by_owner(user))
        logger.debug("Account %s owns %d registrations", user.username, len(registrations))

        for registration in registrations:
            await self._ownership.remove_package_owner(registration, admin, user, commit=commit)

            if unlist_orphan_packages and not registration.owners:
                for package in list(registration.packages):
                    if package.listed:
                        await self._packages.mark_package_unlisted(package, commit=commit)
                logger.debug(
                    "Unlisted orphaned registration %s (%d versions)",
                    registration.package_id,
                    len(registration.packages),
                )

    async def _remove_reserved_namespaces(self, user: Account, *, commit: bool) -> None:
        for namespace in list(user.reserved_namespaces):
            await self._namespaces.delete_owner_from_reserved_namespace(
                namespace.value,
                user.username,
                commit=commit,
            )

    async def _remove_security_policies(self, user: Account) -> None:
        subscriptions = dict.fromkeys(policy.subscription for policy in user.security_policies)
        for subscription in subscriptions:
            await self._policies.unsubscribe(user, subscription)

    async def _remove_credentials(self, user: Account) -> None:
        for credential in list(user.credentials):
            await self._credentials.remove_credential(user, credential)

    @staticmethod
    def _scrub_personal_data(user: Account) -> None:
        user.email_address = None
        user.unconfirmed_email_address = None
        user.email_confirmation_token = None
        user.email_allowed = False
        user.notify_package_pushed = False
        user.password_reset_token = None
        user.password_reset_token_expires_at = None
        user.failed_login_count = 0
        user.last_failed_login_at = None
        user.roles.clear()
        user.organizations.clear()
        user.is_deleted = True


def create_delete_account_service(
    session: AsyncSession,
    settings: Settings | None = None,
    *,
    telemetry: TelemetryService | None = None,
) -> DeleteAccountService:
    """Build a DeleteAccountService wired to SQLAlchemy-backed collaborators.

    All collaborators share one transaction boundary so that their commits
    are deferred while a transactional deletion is in progress.

    Args:
        session: Database session used by every collaborator.
        settings: Settings providing the deletion defaults. Loaded from the
            environment when omitted.
        telemetry: Optional telemetry service notified of deletions.

    Returns:
        Configured DeleteAccountService.
    """
    from pkgallery.services.authentication import CredentialService
    from pkgallery.services.deletion_log import AccountDeletionLog
    from pkgallery.services.packages import PackageOwnershipService, PackageService
    from pkgallery.services.reserved_namespaces import ReservedNamespaceService
    from pkgallery.services.security_policies import SecurityPolicyService
    from pkgallery.services.transactions import SessionTransactionBoundary

    if settings is None:
        from pkgallery.core.settings import get_settings

        settings = get_settings()

    transactions = SessionTransactionBoundary(session)
    namespaces = ReservedNamespaceService(session, transactions)

    return DeleteAccountService(
        packages=PackageService(session, transactions),
        ownership=PackageOwnershipService(session, transactions),
        namespaces=namespaces,
        policies=SecurityPolicyService(session, transactions),
        credentials=CredentialService(session, transactions),
        audit_log=AccountDeletionLog(session),
        transactions=transactions,
        telemetry=telemetry,
        default_unlist_orphan_packages=settings.account_deletion.unlist_orphan_packages,
        default_commit_as_transaction=settings.account_deletion.commit_as_transaction,
    )
