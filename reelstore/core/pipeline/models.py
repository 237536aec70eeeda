"""
Domain models for the upload pipeline.

Nothing here knows about HTTP, Snowflake or S3. The models describe
what moves through a pipeline run and what the catalog holds.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol
from uuid import UUID


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Classification(Enum):
    """Aspect-ratio bucket of a video; doubles as the storage key prefix."""
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


class PipelineStage(Enum):
    """
    Progress of one upload run.

    RECEIVED -> STAGED -> [CLASSIFIED] -> NORMALIZED -> UPLOADED -> CATALOGED,
    with FAILED reachable from any of them.
    """
    RECEIVED = "received"
    STAGED = "staged"
    CLASSIFIED = "classified"
    NORMALIZED = "normalized"
    UPLOADED = "uploaded"
    CATALOGED = "cataloged"
    FAILED = "failed"


class PipelineTopology(Enum):
    """
    Deployment variant of the pipeline.

    CLASSIFY_THEN_RELOCATE probes the video, prefixes the key with its
    classification and publishes through the CDN distribution.
    RELOCATE_ONLY skips the probe and publishes the bucket URL directly.
    """
    CLASSIFY_THEN_RELOCATE = "classify_then_relocate"
    RELOCATE_ONLY = "relocate_only"


class ByteStream(Protocol):
    """Anything with an async ``read`` (Starlette's UploadFile fits)."""

    async def read(self, size: int = -1) -> bytes:
        ...


@dataclass(frozen=True)
class StagedFile:
    """A local file owned by exactly one pipeline run."""
    path: Path
    size_bytes: int


@dataclass(frozen=True)
class RemoteObject:
    """An object confirmed written to the object store."""
    key: str
    content_type: str
    size_bytes: int = 0


@dataclass
class UploadRequest:
    """
    One inbound upload.

    ``owner_id`` comes from the already-validated bearer token and
    ``video_id`` from the route; neither is trusted beyond that.
    """
    owner_id: UUID
    video_id: UUID
    media_type: str
    stream: ByteStream
    declared_size: Optional[int] = None


@dataclass
class VideoRecord:
    """
    Catalog entry for a video.

    The pipeline only ever rewrites ``video_url`` (and ``thumbnail_url``
    for thumbnail uploads); it never creates or deletes records.
    """
    id: UUID
    user_id: UUID
    title: str = ""
    description: str = ""
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.user_id == user_id


@dataclass
class UploadResult:
    """Outcome of a successful run."""
    video: VideoRecord
    remote_object: RemoteObject
    classification: Optional[Classification]
    stage: PipelineStage = PipelineStage.CATALOGED

    @property
    def public_url(self) -> Optional[str]:
        return self.video.video_url
