"""pkgallery core module.

Shared components used across all services:
- Configuration management
- Logging setup
- Common exception types
"""

from pkgallery.core.config import (
    AccountDeletionSettings,
    ConfigValidationError,
    DatabaseSettings,
    Environment,
    S3Settings,
    Settings,
    TelemetrySettings,
    ValidationAdminSettings,
)
from pkgallery.core.errors import GalleryError, InvalidArgumentError, NotFoundError
from pkgallery.core.logging_config import configure_logging
from pkgallery.core.settings import (
    clear_settings_cache,
    get_settings,
    get_settings_safe,
    require_production,
)

__all__ = [
    "AccountDeletionSettings",
    "ConfigValidationError",
    "DatabaseSettings",
    "Environment",
    "GalleryError",
    "InvalidArgumentError",
    "NotFoundError",
    "S3Settings",
    "Settings",
    "TelemetrySettings",
    "ValidationAdminSettings",
    "clear_settings_cache",
    "configure_logging",
    "get_settings",
    "get_settings_safe",
    "require_production",
]
