"""
Video upload API endpoints.

The upload endpoint hands the multipart file straight to the upload
pipeline. Validation, ownership checks, remuxing, publishing and
cleanup all happen there; pipeline errors carry their own HTTP status
and are rendered by the application's PipelineError handler.
"""

import logging
from datetime import datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, File, UploadFile, status
from pydantic import BaseModel, Field

from ...core.pipeline.errors import NotFound
from ...core.pipeline.models import UploadRequest, VideoRecord
from ..dependencies import CurrentUser, UploadPipelineDep, VideoCatalogDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class VideoResponse(BaseModel):
    """A catalog entry as returned to clients."""
    id: UUID = Field(description="Video identifier")
    user_id: UUID = Field(description="Owner")
    title: str = Field(description="Video title")
    description: str = Field(description="Video description")
    thumbnail_url: Optional[str] = Field(None, description="Public thumbnail URL")
    video_url: Optional[str] = Field(None, description="Public fast-start MP4 URL")
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, video: VideoRecord) -> "VideoResponse":
        return cls(
            id=video.id,
            user_id=video.user_id,
            title=video.title,
            description=video.description,
            thumbnail_url=video.thumbnail_url,
            video_url=video.video_url,
            created_at=video.created_at,
            updated_at=video.updated_at,
        )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/{video_id}",
    response_model=VideoResponse,
    status_code=status.HTTP_200_OK,
    summary="Get video",
)
async def get_video(
    video_id: UUID,
    user_id: CurrentUser,
    catalog: VideoCatalogDep,
) -> VideoResponse:
    video = catalog.get(video_id)
    if video is None:
        raise NotFound(f"Couldn't find video {video_id}")
    return VideoResponse.from_record(video)


@router.post(
    "/{video_id}/video",
    response_model=VideoResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload video file",
    description="Upload an MP4, remux it for streaming and publish it as the video's URL",
)
async def upload_video(
    video_id: UUID,
    video: Annotated[UploadFile, File(description="MP4 video file")],
    user_id: CurrentUser,
    pipeline: UploadPipelineDep,
) -> VideoResponse:
    """
    Publish a new video file for an existing catalog entry.

    Only the owner of the entry may upload. The response is the updated
    entry with its new ``video_url``.
    """
    logger.info(
        "Video upload started",
        extra={
            "video_id": str(video_id),
            "user_id": str(user_id),
            "content_type": video.content_type,
            "size_bytes": video.size,
        }
    )

    result = await pipeline.run(UploadRequest(
        owner_id=user_id,
        video_id=video_id,
        media_type=video.content_type or "",
        stream=video,
        declared_size=video.size,
    ))

    return VideoResponse.from_record(result.video)
