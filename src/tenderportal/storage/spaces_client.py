"""DigitalOcean Spaces (S3-compatible) storage client for tender documents."""

import io
import re
import time
import unicodedata
from typing import List, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import settings
from ..logging import get_logger
from ..schemas import UploadResult
from ..exceptions import ValidationError

logger = get_logger(__name__)

DOCUMENT_FOLDERS = {
    "document": "tender-documents",
    "report": "tender-reports",
}


class StorageError(Exception):
    """The object store rejected or failed an operation."""


class FileValidationError(ValidationError):
    """Upload refused before reaching the object store."""


def sanitize_s3_metadata(value: str) -> str:
    """Sanitize string for S3 metadata (ASCII only).

    S3 metadata can only contain ASCII characters.
    This function removes accents and converts to ASCII.
    """
    if not value:
        return value

    nfd = unicodedata.normalize('NFD', value)
    return nfd.encode('ascii', 'ignore').decode('ascii')


def sanitize_filename(filename: str) -> str:
    """Replace anything outside [A-Za-z0-9.-] with underscores."""
    return re.sub(r'[^a-zA-Z0-9.-]', '_', filename or "file")


def build_object_key(folder: str, filename: str, timestamp_ms: Optional[int] = None) -> str:
    """``{folder}/{epoch millis}-{sanitized name}`` keeps keys unique per upload."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{folder}/{timestamp_ms}-{sanitize_filename(filename)}"


def validate_file(size: int,
                  content_type: Optional[str],
                  allowed_types: Optional[List[str]] = None,
                  max_size_mb: Optional[int] = None) -> None:
    """Check size and MIME type. Raises FileValidationError when refused."""

    allowed_types = allowed_types or settings.upload.allowed_content_types
    max_size_mb = max_size_mb or settings.upload.max_file_size_mb

    if size > max_size_mb * 1024 * 1024:
        raise FileValidationError(f"File size must be less than {max_size_mb}MB")

    if content_type not in allowed_types:
        raise FileValidationError(
            f"File type not allowed. Allowed types: {', '.join(allowed_types)}"
        )


class SpacesClient:
    """S3-compatible client for DigitalOcean Spaces."""

    def __init__(self,
                 endpoint: str = None,
                 access_key: str = None,
                 secret_key: str = None,
                 bucket_name: str = None,
                 cdn_url: str = None,
                 region: str = None,
                 client=None):
        """Initialize the client from arguments or settings.

        ``client`` replaces the boto3 client, mainly for tests.
        """

        self.endpoint = endpoint or settings.spaces.endpoint
        self.access_key = access_key or settings.spaces.access_key
        self.secret_key = secret_key or settings.spaces.secret_key.get_secret_value()
        self.bucket_name = bucket_name or settings.spaces.bucket
        self.cdn_url = (cdn_url or settings.spaces.cdn_url).rstrip("/")
        self.region = region or settings.spaces.region

        if client is None and not (self.access_key and self.secret_key):
            logger.warning("Spaces credentials are not configured", endpoint=self.endpoint)

        self.client = client or boto3.client(
            's3',
            endpoint_url=self.endpoint,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            region_name=self.region,
            config=Config(
                signature_version='s3v4',
                s3={
                    'addressing_style': 'virtual'
                },
                connect_timeout=30,
                read_timeout=60,
                retries={
                    'max_attempts': 3,
                    'mode': 'adaptive'
                }
            )
        )

        logger.info(
            "Spaces client initialized",
            endpoint=self.endpoint,
            bucket=self.bucket_name,
        )

    def public_url(self, key: str) -> str:
        """CDN URL for a stored object."""
        return f"{self.cdn_url}/{key}"

    def upload_file(self,
                    data: bytes,
                    folder: str,
                    filename: str,
                    content_type: str = "application/octet-stream") -> UploadResult:
        """Upload a publicly readable object and return its key and CDN URL."""

        key = build_object_key(folder, filename)

        try:
            self.client.upload_fileobj(
                io.BytesIO(data),
                self.bucket_name,
                key,
                ExtraArgs={
                    'ContentType': content_type,
                    'ACL': 'public-read',
                    'Metadata': {'original-filename': sanitize_s3_metadata(filename or "")},
                }
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Failed to upload object",
                key=key,
                bucket=self.bucket_name,
                error=str(e),
                exc_info=True
            )
            raise StorageError(f"Failed to upload file: {e}") from e

        logger.info(
            "Object uploaded successfully",
            key=key,
            bucket=self.bucket_name,
            size_bytes=len(data),
            content_type=content_type
        )
        return UploadResult(storage_key=key, public_url=self.public_url(key))

    def delete_file(self, key: str) -> None:
        """Delete an object."""

        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Failed to delete object",
                key=key,
                bucket=self.bucket_name,
                error=str(e),
                exc_info=True
            )
            raise StorageError(f"Failed to delete file: {e}") from e

        logger.info("Object deleted successfully", key=key, bucket=self.bucket_name)

    def get_presigned_upload_url(self,
                                 key: str,
                                 content_type: str,
                                 expires_in: int = 3600) -> str:
        """Generate a presigned PUT URL for direct client uploads."""

        try:
            url = self.client.generate_presigned_url(
                ClientMethod='put_object',
                Params={
                    'Bucket': self.bucket_name,
                    'Key': key,
                    'ContentType': content_type,
                    'ACL': 'public-read',
                },
                ExpiresIn=expires_in
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Failed to generate presigned URL",
                key=key,
                bucket=self.bucket_name,
                error=str(e),
                exc_info=True
            )
            raise StorageError(f"Failed to generate presigned URL: {e}") from e

        logger.debug("Presigned URL generated", key=key, expiration=expires_in)
        return url

    def health_check(self) -> bool:
        """Check the bucket is reachable with the configured credentials."""

        try:
            self.client.head_bucket(Bucket=self.bucket_name)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error("Spaces health check failed", bucket=self.bucket_name, error=str(e))
            return False


# Global storage client instance
_storage_client: Optional[SpacesClient] = None


def get_storage_client() -> SpacesClient:
    """Get or create the global storage client instance."""
    global _storage_client

    if _storage_client is None:
        _storage_client = SpacesClient()

    return _storage_client
