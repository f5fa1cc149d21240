"""Account helpers: contact address, ownership and credential scope checks."""

from __future__ import annotations

from email.headerregistry import Address
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from pkgallery.core.errors import require
from pkgallery.db.models import ADMIN_ROLE_NAME, Account, Credential, Organization
from pkgallery.services.authentication import Claims, is_api_key

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from pkgallery.db.models import PackageRegistration
    from pkgallery.services.authentication import Identity


def to_mail_address(user: Account) -> Address:
    """Mail address for notifications.

    Uses the confirmed address when there is one, the unconfirmed address
    otherwise. The display name is the username.
    """
    require(user, "user")

    address = user.email_address if user.confirmed else user.unconfirmed_email_address
    if not address:
        return Address(display_name=user.username)
    return Address(display_name=user.username, addr_spec=address)


def get_current_api_key_credential(user: Account, identity: Identity) -> Credential | None:
    """API key credential the identity authenticated with, if any."""
    require(user, "user")
    require(identity, "identity")

    api_key = identity.find_first(Claims.API_KEY)
    if api_key is None:
        return None

    return next(
        (c for c in user.credentials if is_api_key(c.type) and c.value == api_key),
        None,
    )


def is_owner_or_member_of_organization_owner(
    user: Account,
    registration: PackageRegistration,
) -> bool:
    """True for direct owners and for members (admin or not) of an owning organization."""
    require(user, "user")
    require(registration, "registration")

    for owner in registration.owners:
        if owner is user:
            return True
        if isinstance(owner, Organization) and any(m.member is user for m in owner.members):
            return True
    return False


def matches_owner_scope(user: Account, credential: Credential) -> bool:
    """Whether a credential may act for ``user``.

    Credentials without scopes, or whose scopes carry no owner restriction,
    match any owner. Otherwise an owner scope must name the user or one of
    the organizations the user belongs to.
    """
    require(user, "user")
    require(credential, "credential")

    owner_keys = {s.owner_key for s in credential.scopes if s.owner_key is not None}
    if not owner_keys:
        return True

    if user.account_key in owner_keys:
        return True

    for membership in user.organizations:
        org_key = membership.organization_key
        if org_key is None and membership.organization is not None:
            org_key = membership.organization.account_key
        if org_key in owner_keys:
            return True
    return False


def is_administrator(user: Account) -> bool:
    require(user, "user")
    return any(role.name == ADMIN_ROLE_NAME for role in user.roles)


async def load_account(session: AsyncSession, username: str) -> Account | None:
    """Load an account with every collection the deletion workflow touches."""
    result = await session.execute(
        select(Account)
        .where(Account.username == username)
        .options(
            selectinload(Account.credentials).selectinload(Credential.scopes),
            selectinload(Account.security_policies),
            selectinload(Account.reserved_namespaces),
            selectinload(Account.roles),
            selectinload(Account.organizations),
        )
    )
    return result.scalar_one_or_none()
