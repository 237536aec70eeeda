"""
Fast-start remux using FFmpeg.

MP4 files straight off a phone usually carry their index (the moov atom)
at the end, so a player has to fetch the whole file before it can start.
The normalizer rewrites the container with the index up front. Streams
are copied as-is: no re-encode, no quality change, metadata preserved.
"""

import asyncio
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from ...core.pipeline.errors import TranscodeError
from ...core.pipeline.models import StagedFile
from .runner import check_tool, run_tool

logger = logging.getLogger(__name__)

PROCESSED_SUFFIX = ".processed"
DEFAULT_TRANSCODE_TIMEOUT = 600.0


def processed_path(path: Path) -> Path:
    """Sibling output path: the input path plus a fixed suffix."""
    return path.with_name(path.name + PROCESSED_SUFFIX)


class FFmpegNormalizer:
    """Remuxes local MP4 files for streaming with ffmpeg."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        timeout_seconds: float = DEFAULT_TRANSCODE_TIMEOUT,
        limiter: Optional[asyncio.Semaphore] = None,
    ) -> None:
        self._ffmpeg = ffmpeg_path
        self._timeout = timeout_seconds
        self._limiter = limiter

        check_tool(self._ffmpeg)
        logger.info("FFmpeg media normalizer initialized")

    def build_command(self, source: Path, target: Path) -> list[str]:
        return [
            self._ffmpeg,
            "-y",
            "-i", str(source),
            "-movflags", "faststart",
            "-map_metadata", "0",
            "-codec", "copy",
            "-f", "mp4",
            str(target),
        ]

    async def normalize(self, path: Path) -> StagedFile:
        """
        Write a fast-start copy of ``path`` next to it.

        Raises:
            TranscodeError: ffmpeg failed, timed out or wrote nothing.
                Any partial output is removed first.
        """
        target = processed_path(path)

        try:
            result = await run_tool(
                self.build_command(path, target),
                self._timeout,
                self._limiter,
                on_abandon=lambda: target.unlink(missing_ok=True),
            )
        except subprocess.TimeoutExpired:
            target.unlink(missing_ok=True)
            raise TranscodeError(f"ffmpeg timed out after {self._timeout:.0f}s")
        except OSError as e:
            target.unlink(missing_ok=True)
            raise TranscodeError(f"ffmpeg could not be started: {e}")

        if result.returncode != 0:
            target.unlink(missing_ok=True)
            logger.error(
                "ffmpeg failed",
                extra={"path": str(path), "returncode": result.returncode, "stderr": result.stderr}
            )
            raise TranscodeError("ffmpeg failed", detail=result.stderr.strip())

        if not target.exists():
            raise TranscodeError("ffmpeg produced no output file")

        size = target.stat().st_size
        logger.info(
            "Video remuxed for fast start",
            extra={"path": str(target), "size_bytes": size}
        )

        return StagedFile(path=target, size_bytes=size)


class MockMediaNormalizer:
    """
    Normalizer for local development without FFmpeg.

    Copies the input byte-for-byte to the output path.
    """

    def __init__(self) -> None:
        self.calls: list[Path] = []
        logger.info("Initialized mock media normalizer")

    async def normalize(self, path: Path) -> StagedFile:
        self.calls.append(path)
        target = processed_path(path)
        shutil.copyfile(path, target)
        return StagedFile(path=target, size_bytes=target.stat().st_size)


def create_media_normalizer(
    mock_mode: bool = False,
    ffmpeg_path: str = "ffmpeg",
    timeout_seconds: float = DEFAULT_TRANSCODE_TIMEOUT,
    limiter: Optional[asyncio.Semaphore] = None,
):
    """
    Factory function for the media normalizer.

    Args:
        mock_mode: If True, return a mock normalizer (no FFmpeg required)
    """
    if mock_mode:
        return MockMediaNormalizer()

    return FFmpegNormalizer(ffmpeg_path, timeout_seconds, limiter)
