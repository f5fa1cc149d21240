"""Credentials and authenticated identities.

Covers the credential type vocabulary, the claims carried by an
authenticated identity and the service that attaches or removes
credentials on an account.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pkgallery.core.errors import InvalidArgumentError, require
from pkgallery.services.transactions import SessionTransactionBoundary

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from pkgallery.db.models import Account, Credential

logger = logging.getLogger(__name__)


class CredentialTypes:
    """Dotted credential type names stored in ``Credential.type``."""

    API_KEY_PREFIX = "apikey."
    API_KEY_V1 = "apikey.v1"
    API_KEY_V2 = "apikey.v2"
    API_KEY_VERIFY_V1 = "apikey.verify.v1"
    PASSWORD_PBKDF2 = "password.pbkdf2"

    API_KEYS = (API_KEY_V1, API_KEY_V2, API_KEY_VERIFY_V1)


def is_api_key(credential_type: str | None) -> bool:
    """Whether a credential type is any flavour of API key."""
    return bool(credential_type) and credential_type.lower().startswith(
        CredentialTypes.API_KEY_PREFIX
    )


class AuthenticationTypes:
    """How an identity was authenticated."""

    API_KEY = "ApiKey"
    LOCAL_USER = "LocalUser"
    EXTERNAL = "External"


class Claims:
    """Claim types understood by the gallery."""

    API_KEY = "ApiKey"
    SCOPE = "Scope"
    CLIENT_VERSION = "ClientVersion"
    PROTOCOL_VERSION = "ProtocolVersion"
    CLIENT_INFORMATION = "ClientInformation"


@dataclass(frozen=True)
class Claim:
    """Single typed claim value."""

    type: str
    value: str


@dataclass(frozen=True)
class Identity:
    """Authenticated principal.

    Attributes:
        name: Username the identity was issued for.
        authentication_type: One of AuthenticationTypes.
        claims: Claims attached at sign-in.
    """

    name: str
    authentication_type: str
    claims: tuple[Claim, ...] = field(default_factory=tuple)

    def find_first(self, claim_type: str) -> str | None:
        """Value of the first claim of ``claim_type``, or None."""
        for claim in self.claims:
            if claim.type == claim_type:
                return claim.value
        return None

    def has_claim(self, claim_type: str) -> bool:
        return self.find_first(claim_type) is not None


def create_identity(user: Account, authentication_type: str, *claims: Claim) -> Identity:
    """Build an Identity for ``user`` carrying ``claims``."""
    require(user, "user")
    return Identity(
        name=user.username,
        authentication_type=authentication_type,
        claims=tuple(claims),
    )


class CredentialService:
    """Attach and remove credentials. Both operations commit."""

    def __init__(
        self,
        session: AsyncSession,
        transactions: SessionTransactionBoundary | None = None,
    ) -> None:
        self._session = session
        self._transactions = transactions or SessionTransactionBoundary(session)

    async def add_credential(self, account: Account, credential: Credential) -> None:
        require(account, "account")
        require(credential, "credential")

        account.credentials.append(credential)
        logger.info("Added %s credential to %s", credential.type, account.username)
        await self._transactions.commit_changes()

    async def remove_credential(self, account: Account, credential: Credential) -> None:
        """Detach and delete a credential.

        Raises:
            InvalidArgumentError: If the credential does not belong to the account.
        """
        require(account, "account")
        require(credential, "credential")

        if credential not in account.credentials:
            raise InvalidArgumentError(
                "credential",
                f"Credential does not belong to {account.username}",
            )

        account.credentials.remove(credential)
        logger.info("Removed %s credential from %s", credential.type, account.username)
        await self._transactions.commit_changes()
