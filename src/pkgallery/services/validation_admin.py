"""Administrative lookup of package validation sets.

Admins paste a list of identifiers, one per line, and get back every
validation set any of them refers to. A line may be a validation tracking
id, a validation id, a validation set key, ``"<package id> <version>"`` or a
bare package id; every interpretation that parses is tried.
"""

from __future__ import annotations

import logging
import re
import uuid
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from pkgallery.core.errors import require
from pkgallery.db.models import Package, PackageStatus, PackageValidation, PackageValidationSet

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from pkgallery.core.config import ValidationAdminSettings

logger = logging.getLogger(__name__)

DEFAULT_MAX_QUERY_LINES = 100

# Horizontal whitespace only; line breaks separate identifiers
_HORIZONTAL_WHITESPACE = re.compile(r"[^\S\r\n]+")

# Validation set keys are signed 64-bit integers written in ASCII digits
_SET_KEY_PATTERN = re.compile(r"[+-]?[0-9]+")
_MAX_SET_KEY = 2**63 - 1

_VERSION_PATTERN = re.compile(
    r"""
    ^(?P<major>\d+)
    (?:\.(?P<minor>\d+))?
    (?:\.(?P<patch>\d+))?
    (?:\.(?P<revision>\d+))?
    (?:-(?P<release>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
    (?:\+(?P<metadata>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$
    """,
    re.VERBOSE,
)


class PackageDeletedStatus(str, Enum):
    """Deletion state of a package as far as the database can tell.

    A hard-deleted package is indistinguishable from one that never existed,
    hence UNKNOWN.
    """

    UNKNOWN = "unknown"
    SOFT_DELETED = "soft_deleted"
    NOT_DELETED = "not_deleted"


def normalize_version(text: str | None) -> str | None:
    """Normalize a package version string.

    ``1.0`` becomes ``1.0.0``, leading zeros are dropped, a zero fourth
    component is omitted, build metadata is discarded and prerelease labels
    are kept as written.

    Returns:
        The normalized version, or None when ``text`` is not a version.
    """
    if not text:
        return None

    match = _VERSION_PATTERN.match(text.strip())
    if match is None:
        return None

    parts = [int(match.group(name) or 0) for name in ("major", "minor", "patch", "revision")]
    normalized = ".".join(str(p) for p in parts[:3])
    if parts[3]:
        normalized += f".{parts[3]}"
    if match.group("release"):
        normalized += f"-{match.group('release')}"
    return normalized


class ValidationAdminService:
    """Search validation sets and inspect package deletion state."""

    def __init__(self, session: AsyncSession, max_query_lines: int = DEFAULT_MAX_QUERY_LINES) -> None:
        self._session = session
        self._max_query_lines = max_query_lines

    @staticmethod
    def parse_query_to_lines(query: str, max_lines: int | None = None) -> list[str]:
        """Split a query into distinct, trimmed, non-empty lines.

        Runs of spaces and tabs collapse to one space. Duplicates are
        detected case-insensitively; the first spelling wins.
        """
        require(query, "query")

        normalized = _HORIZONTAL_WHITESPACE.sub(" ", query)

        lines: list[str] = []
        seen: set[str] = set()
        for raw in normalized.splitlines():
            line = raw.strip()
            if not line or line.casefold() in seen:
                continue
            seen.add(line.casefold())
            lines.append(line)

        if max_lines is not None and len(lines) > max_lines:
            logger.warning("Query has %d lines, only the first %d are used", len(lines), max_lines)
            lines = lines[:max_lines]
        return lines

    async def search(self, query: str) -> list[PackageValidationSet]:
        """Validation sets matching any line of ``query``, in discovery order."""
        lines = self.parse_query_to_lines(query, self._max_query_lines)

        found: dict[int, PackageValidationSet] = {}
        for line in lines:
            await self._search_by_tracking_id(found, line)
            await self._search_by_validation_id(found, line)
            await self._search_by_set_key(found, line)
            await self._search_by_package_id_and_version(found, line)
            await self._search_by_package_id(found, line)

        logger.debug("Validation search over %d lines found %d sets", len(lines), len(found))
        return list(found.values())

    async def get_package_deleted_status(self, package_key: int) -> PackageDeletedStatus:
        result = await self._session.execute(
            select(Package.status).where(Package.package_key == package_key)
        )
        status = result.scalar_one_or_none()

        if status is None:
            return PackageDeletedStatus.UNKNOWN
        if status == PackageStatus.DELETED:
            return PackageDeletedStatus.SOFT_DELETED
        return PackageDeletedStatus.NOT_DELETED

    @staticmethod
    def _sets_query():
        return select(PackageValidationSet).options(
            selectinload(PackageValidationSet.validations)
        )

    @staticmethod
    def _parse_uuid(line: str) -> uuid.UUID | None:
        try:
            return uuid.UUID(line)
        except ValueError:
            return None

    async def _collect(self, found: dict[int, PackageValidationSet], query) -> None:
        result = await self._session.execute(query)
        for validation_set in result.scalars().all():
            found.setdefault(validation_set.validation_set_key, validation_set)

    async def _search_by_tracking_id(self, found: dict[int, PackageValidationSet], line: str) -> None:
        tracking_id = self._parse_uuid(line)
        if tracking_id is None:
            return
        await self._collect(
            found,
            self._sets_query().where(PackageValidationSet.validation_tracking_id == tracking_id),
        )

    async def _search_by_validation_id(
        self, found: dict[int, PackageValidationSet], line: str
    ) -> None:
        validation_id = self._parse_uuid(line)
        if validation_id is None:
            return
        await self._collect(
            found,
            self._sets_query()
            .join(PackageValidationSet.validations)
            .where(PackageValidation.validation_key == validation_id),
        )

    async def _search_by_set_key(self, found: dict[int, PackageValidationSet], line: str) -> None:
        if not _SET_KEY_PATTERN.fullmatch(line):
            return
        key = int(line)
        if not -_MAX_SET_KEY - 1 <= key <= _MAX_SET_KEY:
            return
        await self._collect(
            found,
            self._sets_query().where(PackageValidationSet.validation_set_key == key),
        )

    async def _search_by_package_id_and_version(
        self, found: dict[int, PackageValidationSet], line: str
    ) -> None:
        if " " not in line:
            return
        package_id, version = line.split(" ")[:2]
        normalized = normalize_version(version)
        if normalized is None:
            return
        await self._collect(
            found,
            self._sets_query().where(
                PackageValidationSet.package_id == package_id,
                PackageValidationSet.package_normalized_version == normalized,
            ),
        )

    async def _search_by_package_id(self, found: dict[int, PackageValidationSet], line: str) -> None:
        await self._collect(
            found,
            self._sets_query().where(PackageValidationSet.package_id == line),
        )


def create_validation_admin_service(
    session: AsyncSession,
    settings: ValidationAdminSettings,
) -> ValidationAdminService:
    """ValidationAdminService capped at the configured number of query lines."""
    return ValidationAdminService(session, max_query_lines=settings.max_query_lines)
