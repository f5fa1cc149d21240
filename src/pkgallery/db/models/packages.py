"""Package models: registrations, versions, and reserved namespaces."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Column, Enum, ForeignKey, Index, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pkgallery.db.models.base import (
    Base,
    IntPrimaryKey,
    OptionalTimestampTZ,
    PackageStatus,
    TimestampTZ,
)

if TYPE_CHECKING:
    from pkgallery.db.models.accounts import Account

package_registration_owners = Table(
    "package_registration_owners",
    Base.metadata,
    Column(
        "registration_key",
        ForeignKey("package_registrations.registration_key", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("account_key", ForeignKey("accounts.account_key", ondelete="CASCADE"), primary_key=True),
)

reserved_namespace_owners = Table(
    "reserved_namespace_owners",
    Base.metadata,
    Column(
        "namespace_key",
        ForeignKey("reserved_namespaces.namespace_key", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("account_key", ForeignKey("accounts.account_key", ondelete="CASCADE"), primary_key=True),
)

reserved_namespace_registrations = Table(
    "reserved_namespace_registrations",
    Base.metadata,
    Column(
        "namespace_key",
        ForeignKey("reserved_namespaces.namespace_key", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "registration_key",
        ForeignKey("package_registrations.registration_key", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class PackageRegistration(Base):
    """A package id and the accounts that own it.

    Versions hang off the registration; deleting an owner never deletes
    versions, it only unlists them once nobody owns the registration.
    """

    __tablename__ = "package_registrations"

    registration_key: Mapped[IntPrimaryKey]
    package_id: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    download_count: Mapped[int] = mapped_column(default=0, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    owners: Mapped[list[Account]] = relationship(
        "Account",
        secondary=package_registration_owners,
        back_populates="package_registrations",
    )
    packages: Mapped[list[Package]] = relationship(
        "Package",
        back_populates="package_registration",
        cascade="all, delete-orphan",
    )
    reserved_namespaces: Mapped[list[ReservedNamespace]] = relationship(
        "ReservedNamespace",
        secondary=reserved_namespace_registrations,
        back_populates="package_registrations",
    )

    def __repr__(self) -> str:
        return f"<PackageRegistration {self.package_id!r} key={self.registration_key}>"


class Package(Base):
    """A single version of a package."""

    __tablename__ = "packages"

    package_key: Mapped[IntPrimaryKey]
    created_at: Mapped[TimestampTZ]

    registration_key: Mapped[int | None] = mapped_column(
        ForeignKey("package_registrations.registration_key", ondelete="CASCADE"),
        nullable=True,
    )
    version: Mapped[str] = mapped_column(String(64), nullable=False)
    normalized_version: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    listed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    status: Mapped[PackageStatus] = mapped_column(
        Enum(PackageStatus, name="package_status", create_constraint=True),
        nullable=False,
        default=PackageStatus.AVAILABLE,
    )

    published_at: Mapped[OptionalTimestampTZ]
    last_edited_at: Mapped[OptionalTimestampTZ]

    package_registration: Mapped[PackageRegistration | None] = relationship(
        "PackageRegistration",
        back_populates="packages",
    )

    __table_args__ = (
        Index("ix_packages_registration_version", "registration_key", "normalized_version"),
    )

    def __init__(self, **kwargs) -> None:
        kwargs.setdefault("listed", True)
        kwargs.setdefault("status", PackageStatus.AVAILABLE)
        if "normalized_version" not in kwargs and "version" in kwargs:
            kwargs["normalized_version"] = kwargs["version"]
        super().__init__(**kwargs)

    @property
    def id(self) -> str | None:
        """Package id of the owning registration."""
        return self.package_registration.package_id if self.package_registration else None

    def __repr__(self) -> str:
        return f"<Package {self.id!r} {self.normalized_version!r} key={self.package_key}>"


class ReservedNamespace(Base):
    """Package id prefix reserved for its owners.

    Only owners may push new package ids under the prefix unless it is
    shared. A namespace with no owners left is released.
    """

    __tablename__ = "reserved_namespaces"

    namespace_key: Mapped[IntPrimaryKey]
    value: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    is_shared_namespace: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_prefix: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    owners: Mapped[list[Account]] = relationship(
        "Account",
        secondary=reserved_namespace_owners,
        back_populates="reserved_namespaces",
    )
    package_registrations: Mapped[list[PackageRegistration]] = relationship(
        "PackageRegistration",
        secondary=reserved_namespace_registrations,
        back_populates="reserved_namespaces",
    )

    def __init__(
        self,
        value: str | None = None,
        is_shared_namespace: bool = False,
        is_prefix: bool = True,
        **kwargs,
    ) -> None:
        super().__init__(
            value=value,
            is_shared_namespace=is_shared_namespace,
            is_prefix=is_prefix,
            **kwargs,
        )

    def matches(self, package_id: str) -> bool:
        """Whether ``package_id`` falls under this namespace (case-insensitive)."""
        candidate = package_id.lower()
        value = self.value.lower()
        return candidate.startswith(value) if self.is_prefix else candidate == value

    def __repr__(self) -> str:
        return f"<ReservedNamespace {self.value!r}>"
