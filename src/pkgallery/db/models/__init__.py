"""SQLAlchemy ORM models for pkgallery.

This package contains all database models organized by domain:
- base: Common metadata, type annotations, and enums
- accounts: Users, organizations, memberships, credentials, policies, roles
- packages: Package registrations, versions, and reserved namespaces
- audit: Account deletion audit records
- validation: Package validation sets and validations
"""

from pkgallery.db.models.accounts import (
    ADMIN_ROLE_NAME,
    Account,
    Credential,
    Membership,
    Organization,
    Role,
    Scope,
    User,
    UserSecurityPolicy,
)
from pkgallery.db.models.audit import AccountDeletion
from pkgallery.db.models.base import (
    AccountType,
    Base,
    PackageStatus,
    ValidationStatus,
    metadata,
)
from pkgallery.db.models.packages import Package, PackageRegistration, ReservedNamespace
from pkgallery.db.models.validation import PackageValidation, PackageValidationSet

__all__ = [
    "ADMIN_ROLE_NAME",
    "Account",
    "AccountDeletion",
    "AccountType",
    "Base",
    "Credential",
    "Membership",
    "Organization",
    "Package",
    "PackageRegistration",
    "PackageStatus",
    "PackageValidation",
    "PackageValidationSet",
    "ReservedNamespace",
    "Role",
    "Scope",
    "User",
    "UserSecurityPolicy",
    "ValidationStatus",
    "metadata",
]
