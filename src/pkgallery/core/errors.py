"""Exception hierarchy shared by pkgallery services.

Services raise these for caller mistakes and missing rows. Storage and
database faults are not wrapped: they propagate to the caller unchanged.
"""

from __future__ import annotations


class GalleryError(Exception):
    """Base exception for service-layer errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidArgumentError(GalleryError, ValueError):
    """Raised when a required argument is missing or empty.

    Attributes:
        argument: Name of the offending parameter.
    """

    def __init__(self, argument: str, message: str | None = None) -> None:
        self.argument = argument
        super().__init__(message or f"Argument '{argument}' is required")


class NotFoundError(GalleryError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, resource: str, identifier: str) -> None:
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


def require(value: object, argument: str) -> None:
    """Raise InvalidArgumentError when ``value`` is None.

    Args:
        value: The argument value to check.
        argument: Parameter name reported in the error.

    Raises:
        InvalidArgumentError: If value is None.
    """
    if value is None:
        raise InvalidArgumentError(argument)
