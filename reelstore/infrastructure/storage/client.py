"""
Object storage client for published videos.

Talks to S3 or any S3-compatible store (R2, MinIO) through boto3. Uploads
stream from disk with boto3's managed transfer, switching to multipart
above a threshold, so a 1 GiB video is never held in memory.

Mock mode keeps objects in memory, enabling API testing without
provisioning a bucket.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...core.pipeline.errors import StorageError
from ...core.pipeline.models import RemoteObject

logger = logging.getLogger(__name__)

MB = 1024 * 1024


@dataclass
class StorageConfig:
    """Configuration for S3-compatible storage."""
    bucket_name: str
    region: str = "us-east-1"
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    endpoint_url: Optional[str] = None  # only for non-AWS stores
    max_attempts: int = 3
    connect_timeout_seconds: float = 10.0
    read_timeout_seconds: float = 60.0
    multipart_threshold_mb: int = 64
    multipart_chunksize_mb: int = 16


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Tests provide in-memory implementations; production uses S3.
    """

    async def upload(self, path: Path, key: str, content_type: str) -> RemoteObject:
        """Stream a local file to ``key`` and return the stored object."""
        ...


class S3StorageClient:
    """
    S3 object storage client.

    boto3 is synchronous, so transfers run in a worker thread. Retries
    use botocore's "standard" mode; re-sending the same bytes to the same
    key is an overwrite, so a retried upload is safe.
    """

    def __init__(self, config: StorageConfig, s3_client: Any = None) -> None:
        self._config = config

        self._transfer_config = TransferConfig(
            multipart_threshold=config.multipart_threshold_mb * MB,
            multipart_chunksize=config.multipart_chunksize_mb * MB,
        )

        if s3_client is None:
            boto_config = Config(
                signature_version="s3v4",
                connect_timeout=config.connect_timeout_seconds,
                read_timeout=config.read_timeout_seconds,
                retries={"max_attempts": config.max_attempts, "mode": "standard"},
            )

            s3_client = boto3.client(
                "s3",
                endpoint_url=config.endpoint_url,
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                region_name=config.region,
                config=boto_config,
            )

        self._s3_client = s3_client

        logger.info(
            "Initialized S3 storage client",
            extra={
                "bucket": config.bucket_name,
                "region": config.region,
                "endpoint": config.endpoint_url,
            }
        )

    async def upload(self, path: Path, key: str, content_type: str) -> RemoteObject:
        """
        Upload a local file to S3.

        Returns only after boto3 reports the transfer complete, which
        is the confirmation the pipeline waits for before cataloging.
        """
        try:
            size = path.stat().st_size
            with open(path, "rb") as body:
                await asyncio.to_thread(
                    self._s3_client.upload_fileobj,
                    body,
                    self._config.bucket_name,
                    key,
                    ExtraArgs={"ContentType": content_type},
                    Config=self._transfer_config,
                )
        except (BotoCoreError, ClientError, S3UploadFailedError, OSError) as e:
            logger.error(
                "Failed to upload object",
                extra={"key": key, "bucket": self._config.bucket_name, "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}")

        logger.info(
            "Uploaded object",
            extra={"key": key, "size_bytes": size, "content_type": content_type}
        )

        return RemoteObject(key=key, content_type=content_type, size_bytes=size)


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development.

    Objects are kept in a dictionary keyed by object key. Not suitable
    for production.
    """

    def __init__(self) -> None:
        # {key: (data, content_type)}
        self.objects: dict[str, tuple[bytes, str]] = {}
        logger.info("Initialized mock storage client (in-memory)")

    async def upload(self, path: Path, key: str, content_type: str) -> RemoteObject:
        try:
            data = path.read_bytes()
        except OSError as e:
            raise StorageError(f"Upload failed: {e}")

        self.objects[key] = (data, content_type)

        logger.debug(
            "Stored object in mock storage",
            extra={"key": key, "size_bytes": len(data)}
        )

        return RemoteObject(key=key, content_type=content_type, size_bytes=len(data))


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        StorageClient implementation (S3 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3StorageClient(config)
