"""pkgallery - package gallery back-office service layer.

Service layer behind a public package registry: account deletion
orchestration, validation-set admin search, telemetry event tracking,
and user/credential authorization helpers.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
