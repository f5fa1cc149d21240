"""S3-compatible object store used for pending package uploads.

Objects are written with their SHA-256 digest in user metadata, and the
digest is checked again when they are read back.

Example:
    from pkgallery.core.settings import get_settings
    from pkgallery.services.storage import ObjectStoreClient

    settings = get_settings()
    store = ObjectStoreClient.from_settings(settings.s3)
    store.ensure_bucket(settings.s3.bucket)
    stored = store.upload(settings.s3.bucket, "uploads/42.nupkg", data)
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

if TYPE_CHECKING:
    from pkgallery.core.config import S3Settings

logger = logging.getLogger(__name__)

# User metadata key (boto3 adds the x-amz-meta- prefix on the wire)
DIGEST_METADATA_KEY = "sha256-digest"


@dataclass(frozen=True)
class StoredObject:
    """Object as written to or read from the store.

    Attributes:
        bucket: Bucket name.
        key: Object key.
        sha256_digest: Hex digest of the content.
        size_bytes: Content length.
        metadata: User metadata stored with the object.
    """

    bucket: str
    key: str
    sha256_digest: str | None
    size_bytes: int
    metadata: dict[str, str]


class StorageError(Exception):
    """Object store failure.

    Attributes:
        message: Human-readable error description.
        bucket: Bucket involved, if any.
        key: Object key involved, if any.
        operation: Store operation that failed.
    """

    def __init__(
        self,
        message: str,
        *,
        bucket: str | None = None,
        key: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.message = message
        self.bucket = bucket
        self.key = key
        self.operation = operation
        super().__init__(message)


class ObjectNotFoundError(StorageError):
    """Raised when an object does not exist."""


class BucketNotFoundError(StorageError):
    """Raised when a bucket does not exist."""


class IntegrityError(StorageError):
    """Raised when downloaded content does not match its recorded digest."""


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class ObjectStoreClient:
    """Thin boto3 wrapper with digest bookkeeping.

    boto3 is synchronous; calls block the running thread.
    """

    def __init__(
        self,
        endpoint_url: str | None,
        access_key: str,
        secret_key: str,
        region: str = "us-east-1",
        *,
        connect_timeout: float = 5.0,
        read_timeout: float = 30.0,
        max_retries: int = 3,
    ) -> None:
        self._region = region
        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=Config(
                connect_timeout=connect_timeout,
                read_timeout=read_timeout,
                retries={"max_attempts": max_retries, "mode": "standard"},
                signature_version="s3v4",
            ),
        )
        logger.debug("Object store client for endpoint=%s region=%s", endpoint_url, region)

    @classmethod
    def from_settings(cls, settings: S3Settings) -> ObjectStoreClient:
        return cls(
            endpoint_url=settings.endpoint or None,
            access_key=settings.access_key.get_secret_value(),
            secret_key=settings.secret_key.get_secret_value(),
            region=settings.region,
        )

    def ensure_bucket(self, bucket: str) -> bool:
        """Create ``bucket`` if missing.

        Returns:
            True if the bucket was created, False if it already existed.

        Raises:
            StorageError: If the bucket cannot be checked or created.
        """
        try:
            self._client.head_bucket(Bucket=bucket)
            return False
        except ClientError as e:
            if _error_code(e) not in ("404", "NoSuchBucket"):
                raise StorageError(
                    f"Failed to check bucket: {e}", bucket=bucket, operation="head_bucket"
                ) from e

        try:
            # us-east-1 rejects an explicit LocationConstraint
            if self._region == "us-east-1":
                self._client.create_bucket(Bucket=bucket)
            else:
                self._client.create_bucket(
                    Bucket=bucket,
                    CreateBucketConfiguration={"LocationConstraint": self._region},
                )
        except ClientError as e:
            raise StorageError(
                f"Failed to create bucket: {e}", bucket=bucket, operation="create_bucket"
            ) from e

        logger.info("Created bucket %s", bucket)
        return True

    def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str = "application/octet-stream",
        metadata: dict[str, str] | None = None,
    ) -> StoredObject:
        """Write an object, recording its SHA-256 digest in metadata.

        Raises:
            BucketNotFoundError: If the bucket does not exist.
            StorageError: On any other failure.
        """
        digest = sha256_hex(data)
        object_metadata = {**(metadata or {}), DIGEST_METADATA_KEY: digest}

        try:
            self._client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                Metadata=object_metadata,
            )
        except ClientError as e:
            if _error_code(e) == "NoSuchBucket":
                raise BucketNotFoundError(
                    f"Bucket does not exist: {bucket}", bucket=bucket, key=key, operation="upload"
                ) from e
            raise StorageError(
                f"Upload failed: {e}", bucket=bucket, key=key, operation="upload"
            ) from e

        logger.debug("Uploaded %s/%s (%d bytes)", bucket, key, len(data))
        return StoredObject(
            bucket=bucket,
            key=key,
            sha256_digest=digest,
            size_bytes=len(data),
            metadata=object_metadata,
        )

    def download(
        self,
        bucket: str,
        key: str,
        *,
        verify_integrity: bool = True,
    ) -> tuple[bytes, StoredObject]:
        """Read an object back.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            IntegrityError: If the content does not match the stored digest.
            StorageError: On any other failure.
        """
        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
        except ClientError as e:
            code = _error_code(e)
            if code in ("NoSuchKey", "404"):
                raise ObjectNotFoundError(
                    f"Object does not exist: {bucket}/{key}",
                    bucket=bucket,
                    key=key,
                    operation="download",
                ) from e
            if code == "NoSuchBucket":
                raise BucketNotFoundError(
                    f"Bucket does not exist: {bucket}", bucket=bucket, key=key, operation="download"
                ) from e
            raise StorageError(
                f"Download failed: {e}", bucket=bucket, key=key, operation="download"
            ) from e

        data = response["Body"].read()
        metadata = dict(response.get("Metadata", {}))
        stored_digest = metadata.get(DIGEST_METADATA_KEY)

        if verify_integrity and stored_digest and sha256_hex(data) != stored_digest:
            raise IntegrityError(
                f"Digest mismatch for {bucket}/{key}",
                bucket=bucket,
                key=key,
                operation="download",
            )

        return data, StoredObject(
            bucket=bucket,
            key=key,
            sha256_digest=stored_digest,
            size_bytes=len(data),
            metadata=metadata,
        )

    def delete(self, bucket: str, key: str) -> None:
        """Delete an object. Deleting a missing object succeeds."""
        try:
            self._client.delete_object(Bucket=bucket, Key=key)
        except ClientError as e:
            raise StorageError(
                f"Delete failed: {e}", bucket=bucket, key=key, operation="delete"
            ) from e
        logger.debug("Deleted %s/%s", bucket, key)

    def exists(self, bucket: str, key: str) -> bool:
        try:
            self._client.head_object(Bucket=bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in ("404", "NoSuchKey"):
                return False
            raise StorageError(
                f"Existence check failed: {e}", bucket=bucket, key=key, operation="exists"
            ) from e
        return True
