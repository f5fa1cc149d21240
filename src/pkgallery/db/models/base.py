"""Base model definitions, mixins, and common types.

This module provides:
- SQLAlchemy declarative base with naming conventions
- Reusable column type annotations
- Enum types used across multiple models
"""

import enum
import uuid
from datetime import datetime
from typing import Annotated

from sqlalchemy import BigInteger, DateTime, MetaData, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, mapped_column, registry

# Naming convention for constraints ensures consistent DDL generation.
# See: https://alembic.sqlalchemy.org/en/latest/naming.html
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Shared metadata with naming convention
metadata = MetaData(naming_convention=NAMING_CONVENTION)

# Custom type registry for reusable type annotations
type_registry = registry()

# Integer surrogate keys, matching the gallery's historical "Key" columns
IntPrimaryKey = Annotated[int, mapped_column(primary_key=True, autoincrement=True)]

BigIntPrimaryKey = Annotated[
    int,
    mapped_column(BigInteger, primary_key=True, autoincrement=True),
]

# UUID primary key, generated client-side so transient rows already carry it
UUIDPrimaryKey = Annotated[
    uuid.UUID,
    mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    ),
]

# Timestamp with timezone, defaults to now
TimestampTZ = Annotated[
    datetime,
    mapped_column(DateTime(timezone=True), server_default=text("now()")),
]

# Optional timestamp with timezone
OptionalTimestampTZ = Annotated[
    datetime | None,
    mapped_column(DateTime(timezone=True), nullable=True),
]

# Standard string lengths for common fields
ShortString = Annotated[str, mapped_column(String(100))]
MediumString = Annotated[str, mapped_column(String(255))]


class Base(DeclarativeBase):
    """Declarative base for all pkgallery models."""

    metadata = metadata
    registry = type_registry


# =============================================================================
# Common Enums
# =============================================================================


class AccountType(enum.Enum):
    """Discriminator for the accounts table.

    Values:
        USER: Individual user account
        ORGANIZATION: Organization account owning packages on behalf of members
    """

    USER = "user"
    ORGANIZATION = "organization"


class PackageStatus(enum.Enum):
    """Lifecycle status of a package version.

    Values:
        AVAILABLE: Published and downloadable
        DELETED: Soft deleted by an administrator
        VALIDATING: Pushed, awaiting asynchronous validation
        FAILED_VALIDATION: Rejected by validation
    """

    AVAILABLE = "available"
    DELETED = "deleted"
    VALIDATING = "validating"
    FAILED_VALIDATION = "failed_validation"


class ValidationStatus(enum.Enum):
    """Status of a single package validation step.

    Values:
        NOT_STARTED: Queued but not yet picked up by its validator
        INCOMPLETE: Validator is running
        SUCCEEDED: Validation passed
        FAILED: Validation failed
    """

    NOT_STARTED = "not_started"
    INCOMPLETE = "incomplete"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
