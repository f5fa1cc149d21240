"""Account models: users, organizations, credentials, policies, roles.

Users and organizations share the ``accounts`` table (single-table
inheritance on ``account_type``) so that package ownership and credential
scopes can point at either kind through one key.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Column, Enum, ForeignKey, Index, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pkgallery.db.models.base import (
    AccountType,
    Base,
    IntPrimaryKey,
    OptionalTimestampTZ,
    TimestampTZ,
)

if TYPE_CHECKING:
    from pkgallery.db.models.packages import PackageRegistration, ReservedNamespace

# Role name granting gallery administration rights
ADMIN_ROLE_NAME = "Admins"

account_roles = Table(
    "account_roles",
    Base.metadata,
    Column("account_key", ForeignKey("accounts.account_key", ondelete="CASCADE"), primary_key=True),
    Column("role_key", ForeignKey("roles.role_key", ondelete="CASCADE"), primary_key=True),
)


class Account(Base):
    """Account identity shared by users and organizations.

    Once ``is_deleted`` is set the account keeps its username (so package
    history still resolves) but carries no email address and no credentials.
    """

    __tablename__ = "accounts"

    account_key: Mapped[IntPrimaryKey]
    created_at: Mapped[TimestampTZ]

    account_type: Mapped[AccountType] = mapped_column(
        Enum(AccountType, name="account_type", create_constraint=True),
        nullable=False,
    )

    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    # Contact details
    email_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    unconfirmed_email_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email_confirmation_token: Mapped[str | None] = mapped_column(String(64), nullable=True)
    email_allowed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    notify_package_pushed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Password reset
    password_reset_token: Mapped[str | None] = mapped_column(String(64), nullable=True)
    password_reset_token_expires_at: Mapped[OptionalTimestampTZ]

    # Login throttling
    failed_login_count: Mapped[int] = mapped_column(default=0, nullable=False)
    last_failed_login_at: Mapped[OptionalTimestampTZ]

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    credentials: Mapped[list[Credential]] = relationship(
        "Credential",
        back_populates="account",
        cascade="all, delete-orphan",
    )
    security_policies: Mapped[list[UserSecurityPolicy]] = relationship(
        "UserSecurityPolicy",
        back_populates="account",
        cascade="all, delete-orphan",
    )
    reserved_namespaces: Mapped[list[ReservedNamespace]] = relationship(
        "ReservedNamespace",
        secondary="reserved_namespace_owners",
        back_populates="owners",
    )
    package_registrations: Mapped[list[PackageRegistration]] = relationship(
        "PackageRegistration",
        secondary="package_registration_owners",
        back_populates="owners",
    )
    roles: Mapped[list[Role]] = relationship(
        "Role",
        secondary=account_roles,
        back_populates="accounts",
    )
    # Memberships where this account is the member
    organizations: Mapped[list[Membership]] = relationship(
        "Membership",
        foreign_keys="Membership.member_key",
        back_populates="member",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {
        "polymorphic_on": "account_type",
    }

    __table_args__ = (Index("ix_accounts_email_address", "email_address"),)

    def __init__(self, username: str | None = None, **kwargs) -> None:
        # Python-side defaults so unsaved accounts behave like loaded ones
        kwargs.setdefault("email_allowed", True)
        kwargs.setdefault("notify_package_pushed", True)
        kwargs.setdefault("failed_login_count", 0)
        kwargs.setdefault("is_deleted", False)
        super().__init__(username=username, **kwargs)

    @property
    def confirmed(self) -> bool:
        """An account is confirmed once it has a (confirmed) email address."""
        return bool(self.email_address)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.username!r} key={self.account_key}>"


class User(Account):
    """Individual user account."""

    __mapper_args__ = {
        "polymorphic_identity": AccountType.USER,
    }


class Organization(Account):
    """Organization account; members act on its packages."""

    # Memberships where this account is the organization
    members: Mapped[list[Membership]] = relationship(
        "Membership",
        foreign_keys="Membership.organization_key",
        back_populates="organization",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {
        "polymorphic_identity": AccountType.ORGANIZATION,
    }


class Membership(Base):
    """Membership of a user in an organization."""

    __tablename__ = "memberships"

    organization_key: Mapped[int] = mapped_column(
        ForeignKey("accounts.account_key", ondelete="CASCADE"),
        primary_key=True,
    )
    member_key: Mapped[int] = mapped_column(
        ForeignKey("accounts.account_key", ondelete="CASCADE"),
        primary_key=True,
    )
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    organization: Mapped[Organization] = relationship(
        "Organization",
        foreign_keys=[organization_key],
        back_populates="members",
    )
    member: Mapped[Account] = relationship(
        "Account",
        foreign_keys=[member_key],
        back_populates="organizations",
    )


class Role(Base):
    """Named role granting site-wide rights (e.g. ``Admins``)."""

    __tablename__ = "roles"

    role_key: Mapped[IntPrimaryKey]
    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    accounts: Mapped[list[Account]] = relationship(
        "Account",
        secondary=account_roles,
        back_populates="roles",
    )


class Credential(Base):
    """Credential attached to an account (password hash, API key, ...).

    ``type`` uses the gallery's dotted naming, e.g. ``apikey.v2`` or
    ``password.pbkdf2``; ``value`` holds the hashed or raw secret depending
    on the type.
    """

    __tablename__ = "credentials"

    credential_key: Mapped[IntPrimaryKey]
    created_at: Mapped[TimestampTZ]

    account_key: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.account_key", ondelete="CASCADE"),
        nullable=True,
    )
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    expires_at: Mapped[OptionalTimestampTZ]
    last_used_at: Mapped[OptionalTimestampTZ]

    # Relationships
    account: Mapped[Account | None] = relationship("Account", back_populates="credentials")
    scopes: Mapped[list[Scope]] = relationship(
        "Scope",
        back_populates="credential",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("ix_credentials_type_value", "type", "value"),)

    def __init__(self, type: str | None = None, value: str | None = None, **kwargs) -> None:  # noqa: A002
        super().__init__(type=type, value=value, **kwargs)

    def __repr__(self) -> str:
        return f"<Credential {self.type!r} key={self.credential_key}>"


class Scope(Base):
    """Restriction attached to a credential.

    ``owner_key`` limits the credential to acting for one account (a user or
    one of its organizations); NULL means no owner restriction. ``subject``
    is a package id glob and ``allowed_action`` the permitted action.
    """

    __tablename__ = "scopes"

    scope_key: Mapped[IntPrimaryKey]

    credential_key: Mapped[int | None] = mapped_column(
        ForeignKey("credentials.credential_key", ondelete="CASCADE"),
        nullable=True,
    )
    owner_key: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.account_key", ondelete="CASCADE"),
        nullable=True,
    )
    subject: Mapped[str | None] = mapped_column(String(256), nullable=True)
    allowed_action: Mapped[str] = mapped_column(String(64), nullable=False)

    credential: Mapped[Credential | None] = relationship("Credential", back_populates="scopes")

    def __init__(
        self,
        owner_key: int | None = None,
        subject: str | None = None,
        allowed_action: str | None = None,
        **kwargs,
    ) -> None:
        super().__init__(
            owner_key=owner_key,
            subject=subject,
            allowed_action=allowed_action,
            **kwargs,
        )


class UserSecurityPolicy(Base):
    """Security policy an account is subscribed to.

    Policies are grouped by ``subscription``: subscribing adds every policy
    of the subscription, unsubscribing removes them all.
    """

    __tablename__ = "user_security_policies"

    policy_key: Mapped[IntPrimaryKey]

    account_key: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.account_key", ondelete="CASCADE"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    subscription: Mapped[str] = mapped_column(String(256), nullable=False)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)

    account: Mapped[Account | None] = relationship("Account", back_populates="security_policies")

    __table_args__ = (Index("ix_user_security_policies_subscription", "account_key", "subscription"),)

    def __init__(
        self,
        name: str | None = None,
        subscription: str | None = None,
        value: str | None = None,
        **kwargs,
    ) -> None:
        super().__init__(name=name, subscription=subscription, value=value, **kwargs)
