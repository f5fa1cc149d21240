"""Pending package uploads.

A user has at most one package upload awaiting confirmation. It lives in the
object store under ``uploads/{user_key}.nupkg`` until the user publishes or
cancels it.
"""

from __future__ import annotations

import io
import logging
import zipfile
from typing import TYPE_CHECKING

from pkgallery.core.errors import InvalidArgumentError, require
from pkgallery.services.storage import ObjectNotFoundError

if TYPE_CHECKING:
    from pkgallery.db.models import Account
    from pkgallery.services.storage import ObjectStoreClient, StoredObject

logger = logging.getLogger(__name__)

UPLOADS_PREFIX = "uploads"
PACKAGE_FILE_EXTENSION = ".nupkg"
PACKAGE_CONTENT_TYPE = "application/zip"


def build_upload_key(user_key: int) -> str:
    return f"{UPLOADS_PREFIX}/{user_key}{PACKAGE_FILE_EXTENSION}"


class PackageUploadFileService:
    """Save, fetch and discard a user's pending upload."""

    def __init__(self, object_store: ObjectStoreClient, bucket: str) -> None:
        self._store = object_store
        self._bucket = bucket

    def save_uploaded_file(
        self,
        user_key: int,
        package_id: str,
        package_version: str,
        data: bytes,
    ) -> StoredObject:
        """Store the upload, replacing any previous pending upload."""
        require(user_key, "user_key")
        if not package_id:
            raise InvalidArgumentError("package_id")
        if not package_version:
            raise InvalidArgumentError("package_version")
        require(data, "data")

        stored = self._store.upload(
            self._bucket,
            build_upload_key(user_key),
            data,
            content_type=PACKAGE_CONTENT_TYPE,
            metadata={"package-id": package_id, "package-version": package_version},
        )
        logger.info("Saved pending upload %s %s for user %s", package_id, package_version, user_key)
        return stored

    def get_uploaded_file(self, user: Account) -> zipfile.ZipFile | None:
        """Open the pending upload as a zip archive, or None if there is none.

        Raises:
            zipfile.BadZipFile: If the stored file is not a package archive.
        """
        require(user, "user")

        try:
            data, _ = self._store.download(self._bucket, build_upload_key(user.account_key))
        except ObjectNotFoundError:
            return None
        return zipfile.ZipFile(io.BytesIO(data))

    def delete_uploaded_file(self, user: Account) -> None:
        require(user, "user")
        self._store.delete(self._bucket, build_upload_key(user.account_key))
        logger.debug("Discarded pending upload for user %s", user.account_key)
