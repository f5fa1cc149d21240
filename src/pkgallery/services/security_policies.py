"""Security policy subscriptions for accounts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pkgallery.core.errors import InvalidArgumentError, require
from pkgallery.db.models import UserSecurityPolicy
from pkgallery.services.transactions import SessionTransactionBoundary

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from pkgallery.db.models import Account

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicyDefinition:
    """One policy enforced by a subscription.

    Attributes:
        name: Policy handler name.
        value: Optional handler configuration (serialized).
    """

    name: str
    value: str | None = None


class SecurityPolicyService:
    """Subscribe accounts to groups of security policies."""

    def __init__(
        self,
        session: AsyncSession,
        transactions: SessionTransactionBoundary | None = None,
    ) -> None:
        self._session = session
        self._transactions = transactions or SessionTransactionBoundary(session)

    @staticmethod
    def is_subscribed(account: Account, subscription_name: str) -> bool:
        """Whether the account holds any policy of the subscription."""
        require(account, "account")
        return any(p.subscription == subscription_name for p in account.security_policies)

    async def subscribe(
        self,
        account: Account,
        subscription_name: str,
        policies: Iterable[PolicyDefinition],
    ) -> bool:
        """Add every policy of a subscription to the account.

        Returns:
            False if the account was already subscribed, True otherwise.
        """
        require(account, "account")
        if not subscription_name:
            raise InvalidArgumentError("subscription_name")

        if self.is_subscribed(account, subscription_name):
            logger.debug("%s already subscribed to %s", account.username, subscription_name)
            return False

        for policy in policies:
            account.security_policies.append(
                UserSecurityPolicy(
                    name=policy.name,
                    subscription=subscription_name,
                    value=policy.value,
                )
            )

        logger.info("Subscribed %s to %s", account.username, subscription_name)
        await self._transactions.commit_changes()
        return True

    async def unsubscribe(self, account: Account, subscription_name: str) -> None:
        """Remove every policy of a subscription. Unknown subscriptions are ignored."""
        require(account, "account")
        if not subscription_name:
            raise InvalidArgumentError("subscription_name")

        matching = [p for p in account.security_policies if p.subscription == subscription_name]
        if not matching:
            logger.debug("%s is not subscribed to %s", account.username, subscription_name)
            return

        for policy in matching:
            account.security_policies.remove(policy)

        logger.info("Unsubscribed %s from %s", account.username, subscription_name)
        await self._transactions.commit_changes()
