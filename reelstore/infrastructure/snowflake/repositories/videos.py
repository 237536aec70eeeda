"""
Snowflake repository for the video catalog.

The repository translates between VideoRecord and rows of the ``videos``
table and keeps every SQL statement in one place. The upload pipeline
only needs ``get`` and ``update``; ``create`` exists for seeding and for
the part of the product that creates draft videos.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol
from uuid import UUID

from ....core.pipeline.models import VideoRecord

logger = logging.getLogger(__name__)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Tests provide a mock without importing snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "REELSTORE"
    schema: str = "CATALOG"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


VIDEO_COLUMNS = (
    "video_id, user_id, title, description, thumbnail_url, video_url, "
    "created_at, updated_at"
)


class VideoRepository:
    """Catalog access for video records."""

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def get(self, video_id: UUID) -> Optional[VideoRecord]:
        """Load a video by ID, or None if it does not exist."""
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                f"SELECT {VIDEO_COLUMNS} FROM videos WHERE video_id = %s",
                (str(video_id),),
            )
            row = cursor.fetchone()
            if not row:
                return None
            return self._build_video_from_row(row)
        finally:
            cursor.close()

    def update(self, video: VideoRecord) -> None:
        """Persist the mutable fields of an existing video."""
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                UPDATE videos SET
                    title = %s,
                    description = %s,
                    thumbnail_url = %s,
                    video_url = %s,
                    updated_at = %s
                WHERE video_id = %s
            """, (
                video.title,
                video.description,
                video.thumbnail_url,
                video.video_url,
                video.updated_at,
                str(video.id),
            ))
            self._conn.commit()

            logger.debug(
                "Updated video",
                extra={"video_id": str(video.id), "video_url": video.video_url}
            )

        except Exception as e:
            logger.error(
                "Failed to update video",
                extra={"video_id": str(video.id), "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def create(self, video: VideoRecord) -> None:
        """Insert a new video record."""
        cursor = self._conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO videos ({VIDEO_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """, (
                str(video.id),
                str(video.user_id),
                video.title,
                video.description,
                video.thumbnail_url,
                video.video_url,
                video.created_at,
                video.updated_at,
            ))
            self._conn.commit()
        finally:
            cursor.close()

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _build_video_from_row(self, row: tuple) -> VideoRecord:
        (video_id, user_id, title, description, thumbnail_url,
         video_url, created_at, updated_at) = row

        video = VideoRecord(
            id=UUID(str(video_id)),
            user_id=UUID(str(user_id)),
            title=title or "",
            description=description or "",
            thumbnail_url=thumbnail_url,
            video_url=video_url,
        )
        if isinstance(created_at, datetime):
            video.created_at = created_at
        if isinstance(updated_at, datetime):
            video.updated_at = updated_at
        return video
