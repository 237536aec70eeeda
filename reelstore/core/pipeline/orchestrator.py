"""
Upload-transcode-relocate pipeline.

The orchestrator takes one inbound video upload through:

1. validation (media type, declared size, ownership)
2. staging the bytes to local scratch storage
3. optional aspect-ratio classification (ffprobe)
4. fast-start remux (ffmpeg)
5. upload to the object store
6. rewriting the catalog entry's public URL

Every local file is wrapped in the staging area's ``hold`` scope, so the
scratch directory is left clean on success and on every failure path.
The catalog is written last, only once the upload has been confirmed.

Collaborators are Protocols so the same sequencing runs against ffmpeg
and S3 in production and against in-memory fakes in tests.
"""

import logging
import secrets
from contextlib import AbstractContextManager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol
from uuid import UUID

from .errors import Forbidden, NotFound, PayloadTooLarge, UnsupportedMediaType
from .models import (
    ByteStream,
    Classification,
    PipelineStage,
    PipelineTopology,
    RemoteObject,
    StagedFile,
    UploadRequest,
    UploadResult,
    VideoRecord,
    utc_now,
)

logger = logging.getLogger(__name__)

VIDEO_MEDIA_TYPE = "video/mp4"
VIDEO_EXTENSION = "mp4"
DEFAULT_MAX_UPLOAD_BYTES = 1 << 30  # 1 GiB


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class StagingArea(Protocol):
    """Local scratch storage for in-flight files."""

    async def stage(
        self,
        stream: ByteStream,
        size_limit: int,
        declared_size: Optional[int] = None,
        name: Optional[str] = None,
    ) -> StagedFile:
        """Write the stream to a new local file."""
        ...

    def hold(self, staged: StagedFile) -> AbstractContextManager[StagedFile]:
        """Scope that releases ``staged`` on exit, whatever happened."""
        ...


class MediaInspector(Protocol):
    async def classify(self, path: Path) -> Classification:
        """Probe the first video stream and classify its aspect ratio."""
        ...


class MediaNormalizer(Protocol):
    async def normalize(self, path: Path) -> StagedFile:
        """Remux to a fast-start sibling file without re-encoding."""
        ...


class ObjectRelocator(Protocol):
    async def upload(self, path: Path, key: str, content_type: str) -> RemoteObject:
        """Stream a local file to the object store under ``key``."""
        ...


class VideoCatalog(Protocol):
    def get(self, video_id: UUID) -> Optional[VideoRecord]:
        ...

    def update(self, video: VideoRecord) -> None:
        ...


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PipelineConfig:
    """
    Everything the pipeline needs to know about its deployment.

    Built once at startup from Settings and handed to the pipeline.
    """
    topology: PipelineTopology = PipelineTopology.CLASSIFY_THEN_RELOCATE
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    accepted_media_type: str = VIDEO_MEDIA_TYPE
    distribution_host: str = ""
    bucket: str = ""
    region: str = ""

    @property
    def classifies(self) -> bool:
        return self.topology is PipelineTopology.CLASSIFY_THEN_RELOCATE

    def public_url(self, key: str) -> str:
        """
        Public URL of an uploaded object.

        Existing links depend on these exact templates.
        """
        if self.topology is PipelineTopology.CLASSIFY_THEN_RELOCATE:
            return f"https://{self.distribution_host}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


def new_upload_id() -> str:
    """32 random bytes, base64url encoded. Never derived from user input."""
    return secrets.token_urlsafe(32)


def build_object_key(upload_id: str, classification: Optional[Classification]) -> str:
    """``landscape/<id>.mp4`` when classified, ``<id>.mp4`` otherwise."""
    filename = f"{upload_id}.{VIDEO_EXTENSION}"
    if classification is None:
        return filename
    return f"{classification.value}/{filename}"


def authorize(catalog: VideoCatalog, video_id: UUID, user_id: UUID) -> VideoRecord:
    """Load a catalog entry and check that ``user_id`` owns it."""
    video = catalog.get(video_id)
    if video is None:
        raise NotFound(f"Couldn't find video {video_id}")

    if not video.is_owned_by(user_id):
        logger.warning(
            "Rejected upload from non-owner",
            extra={"video_id": str(video_id), "user_id": str(user_id)}
        )
        raise Forbidden("User is forbidden from accessing the video")

    return video


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class UploadPipeline:
    """
    Runs uploads one request at a time per call; concurrent calls share
    nothing but the external catalog and object store.
    """

    def __init__(
        self,
        config: PipelineConfig,
        staging: StagingArea,
        inspector: MediaInspector,
        normalizer: MediaNormalizer,
        relocator: ObjectRelocator,
        catalog: VideoCatalog,
    ) -> None:
        self._config = config
        self._staging = staging
        self._inspector = inspector
        self._normalizer = normalizer
        self._relocator = relocator
        self._catalog = catalog

    @property
    def config(self) -> PipelineConfig:
        return self._config

    def validate(self, request: UploadRequest) -> VideoRecord:
        """
        Checks that must pass before any byte touches the disk.

        Raises UnsupportedMediaType, PayloadTooLarge, NotFound or Forbidden.
        """
        if request.media_type != self._config.accepted_media_type:
            raise UnsupportedMediaType(
                f"File must be {self._config.accepted_media_type}, got {request.media_type or 'unknown'}"
            )

        if request.declared_size is not None and request.declared_size > self._config.max_upload_bytes:
            raise PayloadTooLarge(
                f"File is too big ({request.declared_size} bytes, limit {self._config.max_upload_bytes})"
            )

        return authorize(self._catalog, request.video_id, request.owner_id)

    async def run(self, request: UploadRequest) -> UploadResult:
        """Take one upload from inbound stream to cataloged public URL."""
        video = self.validate(request)

        upload_id = new_upload_id()
        stage = PipelineStage.RECEIVED
        log_extra = {"upload_id": upload_id, "video_id": str(request.video_id)}

        logger.info("Upload received", extra=log_extra)

        try:
            staged = await self._staging.stage(
                request.stream,
                self._config.max_upload_bytes,
                declared_size=request.declared_size,
                name=f"{upload_id}.{VIDEO_EXTENSION}",
            )
            stage = self._advance(PipelineStage.STAGED, log_extra, size_bytes=staged.size_bytes)

            classification: Optional[Classification] = None

            # leaving this block deletes the pre-normalization file
            with self._staging.hold(staged):
                if self._config.classifies:
                    classification = await self._inspector.classify(staged.path)
                    stage = self._advance(
                        PipelineStage.CLASSIFIED, log_extra, classification=classification.value
                    )

                processed = await self._normalizer.normalize(staged.path)
                stage = self._advance(PipelineStage.NORMALIZED, log_extra)

            key = build_object_key(upload_id, classification)

            with self._staging.hold(processed):
                remote_object = await self._relocator.upload(
                    processed.path, key, self._config.accepted_media_type
                )
                stage = self._advance(PipelineStage.UPLOADED, log_extra, key=key)

            video.video_url = self._config.public_url(remote_object.key)
            video.updated_at = utc_now()
            self._catalog.update(video)
            stage = self._advance(PipelineStage.CATALOGED, log_extra, url=video.video_url)

        except Exception as e:
            logger.error(
                "Upload failed",
                extra={
                    **log_extra,
                    "stage": PipelineStage.FAILED.value,
                    "failed_after": stage.value,
                    "error": str(e),
                }
            )
            raise

        return UploadResult(
            video=video,
            remote_object=remote_object,
            classification=classification,
            stage=stage,
        )

    def _advance(self, stage: PipelineStage, log_extra: dict, **details) -> PipelineStage:
        logger.info(f"Upload {stage.value}", extra={**log_extra, **details})
        return stage
