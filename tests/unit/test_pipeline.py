"""
Unit tests for the upload pipeline orchestrator.

The pipeline runs against a real StagingStore in tmp_path and in-memory
fakes for ffprobe, ffmpeg, S3 and Snowflake. The tests check the
ordering guarantees: nothing is staged before validation passes, the
scratch directory is clean after every outcome, and the catalog is only
written once the upload is confirmed.
"""

import io
from uuid import uuid4

import pytest

from reelstore.core.pipeline import (
    Classification,
    Forbidden,
    NotFound,
    PayloadTooLarge,
    PipelineConfig,
    PipelineStage,
    PipelineTopology,
    ProbeError,
    StorageError,
    TranscodeError,
    UnsupportedMediaType,
    UploadPipeline,
    UploadRequest,
    VideoRecord,
)
from reelstore.infrastructure.media import MockMediaInspector, MockMediaNormalizer
from reelstore.infrastructure.snowflake import MockSnowflakeConnection, VideoRepository
from reelstore.infrastructure.staging import StagingStore
from reelstore.infrastructure.storage import MockStorageClient

CDN_HOST = "d111111abcdef8.cloudfront.net"


class BytesStream:
    def __init__(self, data: bytes) -> None:
        self._buffer = io.BytesIO(data)

    async def read(self, size: int = -1) -> bytes:
        return self._buffer.read(size)


class FailingInspector:
    def __init__(self) -> None:
        self.calls = []

    async def classify(self, path):
        self.calls.append(path)
        raise ProbeError("ffprobe failed", detail="moov atom not found")


class FailingNormalizer:
    async def normalize(self, path):
        raise TranscodeError("ffmpeg failed", detail="Invalid data found")


class FailingStorage:
    async def upload(self, path, key, content_type):
        raise StorageError("Upload failed: AccessDenied")


class OrderCheckingCatalog:
    """Catalog wrapper asserting the object exists before the row changes."""

    def __init__(self, repository, storage) -> None:
        self._repository = repository
        self._storage = storage
        self.keys_present_at_update: list[list[str]] = []

    def get(self, video_id):
        return self._repository.get(video_id)

    def update(self, video):
        self.keys_present_at_update.append(list(self._storage.objects))
        self._repository.update(video)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def owner_id():
    return uuid4()


@pytest.fixture
def connection():
    return MockSnowflakeConnection()


@pytest.fixture
def repository(connection):
    return VideoRepository(connection)


@pytest.fixture
def video(repository, owner_id):
    record = VideoRecord(id=uuid4(), user_id=owner_id, title="Race day")
    repository.create(record)
    return record


@pytest.fixture
def scratch(tmp_path):
    return tmp_path / "scratch"


@pytest.fixture
def staging(scratch):
    return StagingStore(scratch)


@pytest.fixture
def inspector():
    return MockMediaInspector(Classification.LANDSCAPE)


@pytest.fixture
def normalizer():
    return MockMediaNormalizer()


@pytest.fixture
def storage():
    return MockStorageClient()


@pytest.fixture
def classify_config():
    return PipelineConfig(
        topology=PipelineTopology.CLASSIFY_THEN_RELOCATE,
        max_upload_bytes=1024,
        distribution_host=CDN_HOST,
    )


@pytest.fixture
def make_pipeline(staging, inspector, normalizer, storage, repository, classify_config):
    def _make(**overrides):
        parts = {
            "config": classify_config,
            "staging": staging,
            "inspector": inspector,
            "normalizer": normalizer,
            "relocator": storage,
            "catalog": repository,
        }
        parts.update(overrides)
        return UploadPipeline(**parts)
    return _make


def make_request(video, owner_id, data=b"mp4-bytes", media_type="video/mp4", declared_size=None):
    return UploadRequest(
        owner_id=owner_id,
        video_id=video.id,
        media_type=media_type,
        stream=BytesStream(data),
        declared_size=len(data) if declared_size is None else declared_size,
    )


def scratch_files(scratch):
    if not scratch.exists():
        return []
    return list(scratch.iterdir())


# ---------------------------------------------------------------------------
# Success Path Tests
# ---------------------------------------------------------------------------

class TestSuccessfulUpload:
    """Tests for uploads that go all the way through."""

    async def test_landscape_upload_is_published_and_cataloged(
        self, make_pipeline, video, owner_id, storage, connection, scratch
    ):
        result = await make_pipeline().run(make_request(video, owner_id))

        (key,) = storage.objects
        assert key.startswith("landscape/")
        assert key.endswith(".mp4")
        assert storage.objects[key] == (b"mp4-bytes", "video/mp4")

        assert result.stage is PipelineStage.CATALOGED
        assert result.classification is Classification.LANDSCAPE
        assert result.public_url == f"https://{CDN_HOST}/{key}"

        assert connection._get_video_row(video.id)["video_url"] == result.public_url
        assert connection._update_count == 1
        assert scratch_files(scratch) == []

    async def test_portrait_key_prefix(self, make_pipeline, video, owner_id, storage):
        pipeline = make_pipeline(inspector=MockMediaInspector(Classification.PORTRAIT))

        await pipeline.run(make_request(video, owner_id))

        (key,) = storage.objects
        assert key.startswith("portrait/")

    async def test_relocate_only_skips_probe_and_uses_bucket_url(
        self, make_pipeline, video, owner_id, storage, inspector
    ):
        config = PipelineConfig(
            topology=PipelineTopology.RELOCATE_ONLY,
            max_upload_bytes=1024,
            bucket="reels",
            region="us-west-2",
        )

        result = await make_pipeline(config=config).run(make_request(video, owner_id))

        (key,) = storage.objects
        assert "/" not in key
        assert result.classification is None
        assert result.public_url == f"https://reels.s3.us-west-2.amazonaws.com/{key}"
        assert inspector.calls == []

    async def test_classification_runs_on_staged_input(
        self, make_pipeline, video, owner_id, inspector, normalizer
    ):
        await make_pipeline().run(make_request(video, owner_id))

        assert inspector.calls == normalizer.calls
        assert inspector.calls[0].suffix == ".mp4"

    async def test_each_run_gets_a_fresh_key(self, make_pipeline, video, owner_id, storage):
        pipeline = make_pipeline()

        first = await pipeline.run(make_request(video, owner_id))
        second = await pipeline.run(make_request(video, owner_id))

        assert len(storage.objects) == 2
        assert first.remote_object.key != second.remote_object.key

    async def test_catalog_written_after_upload_confirmed(
        self, make_pipeline, video, owner_id, storage, repository
    ):
        catalog = OrderCheckingCatalog(repository, storage)

        result = await make_pipeline(catalog=catalog).run(make_request(video, owner_id))

        assert catalog.keys_present_at_update == [[result.remote_object.key]]


# ---------------------------------------------------------------------------
# Validation Tests
# ---------------------------------------------------------------------------

class TestValidation:
    """Rejections that must happen before anything is staged."""

    async def test_wrong_media_type(
        self, make_pipeline, video, owner_id, scratch, storage, inspector, connection
    ):
        with pytest.raises(UnsupportedMediaType):
            await make_pipeline().run(make_request(video, owner_id, media_type="video/quicktime"))

        assert scratch_files(scratch) == []
        assert inspector.calls == []
        assert storage.objects == {}
        assert connection._update_count == 0

    async def test_declared_size_over_limit(self, make_pipeline, video, owner_id, scratch, storage):
        with pytest.raises(PayloadTooLarge):
            await make_pipeline().run(make_request(video, owner_id, declared_size=4096))

        assert scratch_files(scratch) == []
        assert storage.objects == {}

    async def test_observed_size_over_limit(self, make_pipeline, video, owner_id, scratch, storage):
        """A body bigger than declared is cut off during staging."""
        request = make_request(video, owner_id, data=b"x" * 2048, declared_size=10)

        with pytest.raises(PayloadTooLarge):
            await make_pipeline().run(request)

        assert scratch_files(scratch) == []
        assert storage.objects == {}

    async def test_non_owner_is_forbidden(
        self, make_pipeline, video, scratch, storage, inspector, connection
    ):
        with pytest.raises(Forbidden):
            await make_pipeline().run(make_request(video, uuid4()))

        assert scratch_files(scratch) == []
        assert inspector.calls == []
        assert storage.objects == {}
        assert connection._get_video_row(video.id)["video_url"] is None

    async def test_unknown_video(self, make_pipeline, owner_id, scratch):
        missing = VideoRecord(id=uuid4(), user_id=owner_id)

        with pytest.raises(NotFound):
            await make_pipeline().run(make_request(missing, owner_id))

        assert scratch_files(scratch) == []


# ---------------------------------------------------------------------------
# Failure Cleanup Tests
# ---------------------------------------------------------------------------

class TestFailureCleanup:
    """Every mid-pipeline failure leaves scratch clean and the catalog as it was."""

    async def test_probe_failure(self, make_pipeline, video, owner_id, scratch, storage, connection):
        with pytest.raises(ProbeError) as exc_info:
            await make_pipeline(inspector=FailingInspector()).run(make_request(video, owner_id))

        assert exc_info.value.detail == "moov atom not found"
        assert scratch_files(scratch) == []
        assert storage.objects == {}
        assert connection._update_count == 0

    async def test_transcode_failure(self, make_pipeline, video, owner_id, scratch, storage, connection):
        with pytest.raises(TranscodeError):
            await make_pipeline(normalizer=FailingNormalizer()).run(make_request(video, owner_id))

        assert scratch_files(scratch) == []
        assert storage.objects == {}
        assert connection._update_count == 0

    async def test_storage_failure(self, make_pipeline, video, owner_id, scratch, connection):
        with pytest.raises(StorageError):
            await make_pipeline(relocator=FailingStorage()).run(make_request(video, owner_id))

        assert scratch_files(scratch) == []
        assert connection._update_count == 0
        assert connection._get_video_row(video.id)["video_url"] is None
