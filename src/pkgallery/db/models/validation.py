"""Asynchronous package validation tracking."""

from __future__ import annotations

import uuid  # noqa: TC003 - required at runtime for SQLAlchemy type resolution

from sqlalchemy import BigInteger, Enum, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pkgallery.db.models.base import (
    Base,
    BigIntPrimaryKey,
    OptionalTimestampTZ,
    TimestampTZ,
    UUIDPrimaryKey,
    ValidationStatus,
)


class PackageValidationSet(Base):
    """All validations run for one pushed package version.

    ``validation_tracking_id`` is the id the orchestrator hands out in
    messages; ``validation_set_key`` is the database key admins see.
    """

    __tablename__ = "package_validation_sets"

    validation_set_key: Mapped[BigIntPrimaryKey]
    created_at: Mapped[TimestampTZ]
    updated_at: Mapped[TimestampTZ]

    validation_tracking_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        unique=True,
        nullable=False,
    )
    package_key: Mapped[int] = mapped_column(nullable=False)
    package_id: Mapped[str] = mapped_column(String(128), nullable=False)
    package_normalized_version: Mapped[str] = mapped_column(String(64), nullable=False)

    validations: Mapped[list[PackageValidation]] = relationship(
        "PackageValidation",
        back_populates="package_validation_set",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index(
            "ix_package_validation_sets_package",
            "package_id",
            "package_normalized_version",
        ),
    )


class PackageValidation(Base):
    """A single validator's run within a validation set."""

    __tablename__ = "package_validations"

    validation_key: Mapped[UUIDPrimaryKey]

    validation_set_key: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("package_validation_sets.validation_set_key", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[ValidationStatus] = mapped_column(
        Enum(ValidationStatus, name="validation_status", create_constraint=True),
        nullable=False,
        default=ValidationStatus.NOT_STARTED,
    )
    started_at: Mapped[OptionalTimestampTZ]
    status_updated_at: Mapped[OptionalTimestampTZ]

    package_validation_set: Mapped[PackageValidationSet] = relationship(
        "PackageValidationSet",
        back_populates="validations",
    )
