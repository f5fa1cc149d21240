"""pkgallery service layer.

- DeleteAccountService: account deletion orchestration
- PackageService / PackageOwnershipService: package listing and ownership
- ReservedNamespaceService: reserved namespace ownership
- SecurityPolicyService: security policy subscriptions
- CredentialService: account credentials
- AccountDeletionLog: deletion audit records
- ValidationAdminService: validation set admin search
- TelemetryService: product telemetry events
- ObjectStoreClient / PackageUploadFileService: pending package uploads
"""

from pkgallery.services.account_deletion import (
    DeleteAccountService,
    DeletionAuditRecord,
    DeletionResult,
    create_delete_account_service,
)
from pkgallery.services.authentication import CredentialService
from pkgallery.services.deletion_log import AccountDeletionLog
from pkgallery.services.packages import PackageOwnershipService, PackageService
from pkgallery.services.reserved_namespaces import ReservedNamespaceService
from pkgallery.services.security_policies import SecurityPolicyService
from pkgallery.services.storage import ObjectStoreClient, StorageError
from pkgallery.services.telemetry import TelemetryService, create_telemetry_service
from pkgallery.services.transactions import SessionTransactionBoundary
from pkgallery.services.upload_files import PackageUploadFileService
from pkgallery.services.validation_admin import (
    ValidationAdminService,
    create_validation_admin_service,
)

__all__ = [
    "AccountDeletionLog",
    "CredentialService",
    "DeleteAccountService",
    "DeletionAuditRecord",
    "DeletionResult",
    "ObjectStoreClient",
    "PackageOwnershipService",
    "PackageService",
    "PackageUploadFileService",
    "ReservedNamespaceService",
    "SecurityPolicyService",
    "SessionTransactionBoundary",
    "StorageError",
    "TelemetryService",
    "ValidationAdminService",
    "create_delete_account_service",
    "create_telemetry_service",
    "create_validation_admin_service",
]
