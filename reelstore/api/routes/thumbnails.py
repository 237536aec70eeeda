"""
Thumbnail upload endpoint.

Thumbnails are small, so they skip the media pipeline. The image is
staged under a temporary name in the assets directory, and only after
the catalog accepts the new URL is it moved over ``{video_id}.{ext}``,
which the app serves under ``/assets``. A failed update leaves the
previously published thumbnail untouched.
"""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, File, UploadFile, status

from ...core.pipeline.errors import UnsupportedMediaType
from ...core.pipeline.models import utc_now
from ...core.pipeline.orchestrator import authorize
from ..dependencies import AssetStoreDep, CurrentUser, SettingsDep, VideoCatalogDep
from .videos import VideoResponse

logger = logging.getLogger(__name__)

router = APIRouter()

THUMBNAIL_EXTENSIONS = {
    "image/jpeg": "jpeg",
    "image/png": "png",
}


@router.post(
    "/{video_id}/thumbnail",
    response_model=VideoResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload thumbnail",
)
async def upload_thumbnail(
    video_id: UUID,
    thumbnail: Annotated[UploadFile, File(description="JPEG or PNG image")],
    user_id: CurrentUser,
    catalog: VideoCatalogDep,
    assets: AssetStoreDep,
    settings: SettingsDep,
) -> VideoResponse:
    logger.info(
        "Uploading thumbnail",
        extra={"video_id": str(video_id), "user_id": str(user_id)}
    )

    video = authorize(catalog, video_id, user_id)

    extension = THUMBNAIL_EXTENSIONS.get(thumbnail.content_type or "")
    if extension is None:
        raise UnsupportedMediaType(
            f"Thumbnail must be one of {', '.join(THUMBNAIL_EXTENSIONS)}"
        )

    filename = f"{video.id}.{extension}"
    staged = await assets.stage(
        thumbnail,
        settings.max_thumbnail_upload_bytes,
        declared_size=thumbnail.size,
        suffix=f".{extension}",
    )

    video.thumbnail_url = f"http://localhost:{settings.port}/assets/{filename}"
    video.updated_at = utc_now()

    # the temp file is gone once promoted, so this only cleans up failures
    with assets.hold(staged):
        catalog.update(video)
        assets.promote(staged, filename)

    for other in THUMBNAIL_EXTENSIONS.values():
        if other != extension:
            assets.discard(assets.root / f"{video.id}.{other}")

    logger.info(
        "Thumbnail published",
        extra={"video_id": str(video.id), "url": video.thumbnail_url}
    )

    return VideoResponse.from_record(video)
