"""
Unit tests for the object storage client.

A fake boto3 client is injected into S3StorageClient, so no bucket or
credentials are needed.
"""

import pytest
from botocore.exceptions import ClientError

from reelstore.core.pipeline import StorageError
from reelstore.infrastructure.storage import (
    MockStorageClient,
    S3StorageClient,
    StorageConfig,
    create_storage_client,
)


class FakeS3:
    """Records upload_fileobj calls the way boto3 receives them."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.uploads: list[dict] = []

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None, Config=None):
        if self.error is not None:
            raise self.error
        self.uploads.append({
            "body": fileobj.read(),
            "bucket": bucket,
            "key": key,
            "extra_args": ExtraArgs,
            "config": Config,
        })


@pytest.fixture
def video_file(tmp_path):
    path = tmp_path / "abc.mp4.processed"
    path.write_bytes(b"fast-start-mp4")
    return path


class TestS3StorageClient:
    """Tests for uploads through boto3."""

    async def test_upload_sets_content_type_and_key(self, video_file):
        fake = FakeS3()
        client = S3StorageClient(StorageConfig(bucket_name="reels"), s3_client=fake)

        remote = await client.upload(video_file, "landscape/abc.mp4", "video/mp4")

        assert remote.key == "landscape/abc.mp4"
        assert remote.content_type == "video/mp4"
        assert remote.size_bytes == len(b"fast-start-mp4")

        (upload,) = fake.uploads
        assert upload["bucket"] == "reels"
        assert upload["key"] == "landscape/abc.mp4"
        assert upload["body"] == b"fast-start-mp4"
        assert upload["extra_args"] == {"ContentType": "video/mp4"}

    async def test_upload_uses_multipart_threshold(self, video_file):
        fake = FakeS3()
        client = S3StorageClient(
            StorageConfig(bucket_name="reels", multipart_threshold_mb=8),
            s3_client=fake,
        )

        await client.upload(video_file, "abc.mp4", "video/mp4")

        assert fake.uploads[0]["config"].multipart_threshold == 8 * 1024 * 1024

    async def test_client_error_becomes_storage_error(self, video_file):
        error = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}},
            "PutObject",
        )
        client = S3StorageClient(StorageConfig(bucket_name="reels"), s3_client=FakeS3(error))

        with pytest.raises(StorageError, match="Upload failed"):
            await client.upload(video_file, "abc.mp4", "video/mp4")

    async def test_missing_file_becomes_storage_error(self, tmp_path):
        client = S3StorageClient(StorageConfig(bucket_name="reels"), s3_client=FakeS3())

        with pytest.raises(StorageError):
            await client.upload(tmp_path / "missing.mp4", "abc.mp4", "video/mp4")


class TestMockStorageClient:
    """Tests for the in-memory stand-in."""

    async def test_stores_bytes_and_content_type(self, video_file):
        client = MockStorageClient()

        remote = await client.upload(video_file, "portrait/abc.mp4", "video/mp4")

        assert client.objects["portrait/abc.mp4"] == (b"fast-start-mp4", "video/mp4")
        assert remote.size_bytes == len(b"fast-start-mp4")

    def test_factory_mock_mode(self):
        assert isinstance(create_storage_client(mock_mode=True), MockStorageClient)

    def test_factory_requires_config(self):
        with pytest.raises(ValueError, match="config is required"):
            create_storage_client()
