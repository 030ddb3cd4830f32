"""Object storage backends and storage key derivation.

Supports: local filesystem (thumbnails / development), S3, MinIO, and other
S3-compatible storage.
"""

import logging
import secrets
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from vidvault.core.config import Settings
from vidvault.core.metrics import STORAGE_OPERATIONS_TOTAL

logger = logging.getLogger(__name__)

# 32 random bytes -> 43 URL-safe base64 characters, no padding
KEY_TOKEN_BYTES = 32


def generate_object_key(prefix: str = "", extension: str = ".mp4") -> str:
    """Derive a fresh storage key.

    The name is drawn from a CSPRNG and never from user input, which rules
    out both collisions and path traversal.

    Args:
        prefix: Path prefix such as "landscape/" (may be empty)
        extension: File extension including the dot

    Returns:
        Key of the form "<prefix><token><extension>"
    """
    token = secrets.token_urlsafe(KEY_TOKEN_BYTES)
    return f"{prefix}{token}{extension}"


@dataclass
class StorageResult:
    """Result of a storage operation."""
    success: bool
    key: str
    url: str
    file_size: int = 0
    etag: Optional[str] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class StorageConfig:
    """Storage configuration."""
    backend: str  # local, s3, minio
    bucket: str = ""
    region: str = ""
    access_key: str = ""
    secret_key: str = ""
    endpoint_url: Optional[str] = None
    use_ssl: bool = True
    local_path: str = "./storage"
    public_base_url: Optional[str] = None
    cdn_domain: Optional[str] = None
    cdn_enabled: bool = False

    @classmethod
    def s3_from_settings(cls, settings: Settings) -> "StorageConfig":
        return cls(
            backend="s3",
            bucket=settings.STORAGE_BUCKET,
            region=settings.STORAGE_REGION,
            access_key=settings.STORAGE_ACCESS_KEY,
            secret_key=settings.STORAGE_SECRET_KEY,
            endpoint_url=settings.STORAGE_ENDPOINT_URL,
            use_ssl=settings.STORAGE_USE_SSL,
            cdn_domain=settings.CDN_DOMAIN,
            cdn_enabled=settings.CDN_ENABLED,
        )

    @classmethod
    def assets_from_settings(cls, settings: Settings) -> "StorageConfig":
        return cls(
            backend="local",
            local_path=settings.ASSETS_ROOT,
            public_base_url=f"http://localhost:{settings.PORT}/assets",
        )


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod
    def upload_fileobj(
        self,
        fileobj: BinaryIO,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Stream a file object to storage under key."""

    @abstractmethod
    def get_url(self, key: str) -> str:
        """Public URL for a stored key."""


class LocalStorage(StorageBackend):
    """Local filesystem storage backend."""

    def __init__(self, config: StorageConfig):
        self.base_path = Path(config.local_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = (config.public_base_url or "").rstrip("/")

    def _get_full_path(self, key: str) -> Path:
        full_path = (self.base_path / key).resolve()
        if not full_path.is_relative_to(self.base_path.resolve()):
            raise ValueError(f"Key escapes storage root: {key}")
        return full_path

    def upload_fileobj(
        self,
        fileobj: BinaryIO,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        try:
            dest_path = self._get_full_path(key)
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            try:
                with open(dest_path, "wb") as f:
                    shutil.copyfileobj(fileobj, f)
            except BaseException:
                # Never leave a truncated asset behind
                dest_path.unlink(missing_ok=True)
                raise
            file_size = dest_path.stat().st_size
        except (OSError, ValueError) as e:
            STORAGE_OPERATIONS_TOTAL.labels(backend="local", operation="put", status="error").inc()
            logger.error(f"Failed to write {key} to {self.base_path}: {e}")
            return StorageResult(success=False, key=key, url="", error_message=str(e))

        STORAGE_OPERATIONS_TOTAL.labels(backend="local", operation="put", status="ok").inc()
        return StorageResult(
            success=True,
            key=key,
            url=self.get_url(key),
            file_size=file_size,
        )

    def get_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return f"file://{(self.base_path / key).absolute()}"


class S3Storage(StorageBackend):
    """S3/MinIO compatible storage backend."""

    def __init__(self, config: StorageConfig, client=None):
        self.config = config
        self._client = client

    def _get_client(self):
        """Get or create the S3 client."""
        if self._client is None:
            client_kwargs = {
                "service_name": "s3",
                "region_name": self.config.region or "us-east-1",
            }
            # Fall back to the default credential chain when no keys are set
            if self.config.access_key and self.config.secret_key:
                client_kwargs["aws_access_key_id"] = self.config.access_key
                client_kwargs["aws_secret_access_key"] = self.config.secret_key

            # MinIO and other S3-compatible endpoints
            if self.config.endpoint_url:
                client_kwargs["endpoint_url"] = self.config.endpoint_url
                client_kwargs["config"] = BotoConfig(
                    signature_version="s3v4",
                    s3={"addressing_style": "path"},
                )
                if not self.config.use_ssl:
                    client_kwargs["use_ssl"] = False

            self._client = boto3.client(**client_kwargs)

        return self._client

    def upload_fileobj(
        self,
        fileobj: BinaryIO,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Put a file object to the bucket, tagged with content_type."""
        try:
            fileobj.seek(0, 2)
            file_size = fileobj.tell()
            fileobj.seek(0)

            response = self._get_client().put_object(
                Bucket=self.config.bucket,
                Key=key,
                Body=fileobj,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError, OSError) as e:
            STORAGE_OPERATIONS_TOTAL.labels(backend="s3", operation="put", status="error").inc()
            logger.error(f"Failed to upload to s3://{self.config.bucket}/{key}: {e}")
            return StorageResult(success=False, key=key, url="", error_message=str(e))

        STORAGE_OPERATIONS_TOTAL.labels(backend="s3", operation="put", status="ok").inc()
        logger.info(f"Uploaded {file_size} bytes -> s3://{self.config.bucket}/{key}")
        return StorageResult(
            success=True,
            key=key,
            url=self.get_url(key),
            file_size=file_size,
            etag=response.get("ETag", "").strip('"'),
        )

    def get_url(self, key: str) -> str:
        """Deterministic public URL for a key."""
        if self.config.cdn_enabled and self.config.cdn_domain:
            return f"https://{self.config.cdn_domain}/{key}"
        if self.config.endpoint_url:
            return f"{self.config.endpoint_url.rstrip('/')}/{self.config.bucket}/{key}"
        return f"https://{self.config.bucket}.s3.{self.config.region}.amazonaws.com/{key}"


def create_storage(config: StorageConfig) -> StorageBackend:
    """Create the storage backend named by config.backend."""
    backend_type = config.backend.lower()

    if backend_type == "local":
        return LocalStorage(config)
    elif backend_type in ("s3", "minio", "aws"):
        return S3Storage(config)
    else:
        raise ValueError(f"Unsupported storage backend: {backend_type}")
