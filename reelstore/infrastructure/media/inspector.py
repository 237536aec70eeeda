"""
Media inspection using FFprobe.

Asks ffprobe for the width and height of the first video stream as JSON
and buckets the video by aspect ratio. Anything that goes wrong (tool
exit status, unparseable output, no video stream, timeout) is a
ProbeError; a file ffprobe cannot read will not get better on retry.
"""

import asyncio
import json
import logging
import subprocess
from pathlib import Path
from typing import Optional

from ...core.pipeline.classification import classify_dimensions
from ...core.pipeline.errors import ProbeError
from ...core.pipeline.models import Classification
from .runner import check_tool, run_tool

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 30.0


class FFprobeInspector:
    """Classifies local video files by running ffprobe."""

    def __init__(
        self,
        ffprobe_path: str = "ffprobe",
        timeout_seconds: float = DEFAULT_PROBE_TIMEOUT,
        limiter: Optional[asyncio.Semaphore] = None,
    ) -> None:
        self._ffprobe = ffprobe_path
        self._timeout = timeout_seconds
        self._limiter = limiter

        check_tool(self._ffprobe)
        logger.info("FFprobe media inspector initialized")

    def build_command(self, path: Path) -> list[str]:
        return [
            self._ffprobe,
            "-v", "error",
            "-select_streams", "v:0",
            "-show_entries", "stream=width,height",
            "-of", "json",
            str(path),
        ]

    async def probe_dimensions(self, path: Path) -> tuple[int, int]:
        """Width and height of the first video stream."""
        try:
            result = await run_tool(self.build_command(path), self._timeout, self._limiter)
        except subprocess.TimeoutExpired:
            raise ProbeError(f"ffprobe timed out after {self._timeout:.0f}s")
        except OSError as e:
            raise ProbeError(f"ffprobe could not be started: {e}")

        if result.returncode != 0:
            logger.error(
                "ffprobe failed",
                extra={"path": str(path), "returncode": result.returncode, "stderr": result.stderr}
            )
            raise ProbeError("ffprobe failed", detail=result.stderr.strip())

        return parse_dimensions(result.stdout)

    async def classify(self, path: Path) -> Classification:
        width, height = await self.probe_dimensions(path)
        classification = classify_dimensions(width, height)

        logger.info(
            "Video classified",
            extra={
                "path": str(path),
                "resolution": f"{width}x{height}",
                "classification": classification.value,
            }
        )

        return classification


def parse_dimensions(output: str) -> tuple[int, int]:
    """
    Pull width/height out of ffprobe's JSON output.

    Raises:
        ProbeError: output is not JSON, has no video stream, or the
            dimensions are missing or not positive
    """
    try:
        info = json.loads(output)
    except json.JSONDecodeError as e:
        raise ProbeError("Could not parse ffprobe output", detail=str(e))

    streams = info.get("streams") if isinstance(info, dict) else None
    if not isinstance(streams, list) or not streams:
        raise ProbeError("No video stream found")

    stream = streams[0]
    try:
        width = int(stream["width"])
        height = int(stream["height"])
    except (KeyError, TypeError, ValueError):
        raise ProbeError("Video stream has no usable dimensions", detail=json.dumps(stream))

    if width <= 0 or height <= 0:
        raise ProbeError(f"Invalid video dimensions {width}x{height}")

    return width, height


class MockMediaInspector:
    """
    Inspector for local development without FFmpeg.

    Returns a fixed classification and counts calls, which lets tests
    assert that no probe happened.
    """

    def __init__(self, classification: Classification = Classification.LANDSCAPE) -> None:
        self.classification = classification
        self.calls: list[Path] = []
        logger.info("Initialized mock media inspector")

    async def classify(self, path: Path) -> Classification:
        self.calls.append(path)
        return self.classification


def create_media_inspector(
    mock_mode: bool = False,
    ffprobe_path: str = "ffprobe",
    timeout_seconds: float = DEFAULT_PROBE_TIMEOUT,
    limiter: Optional[asyncio.Semaphore] = None,
):
    """
    Factory function for the media inspector.

    Args:
        mock_mode: If True, return a mock inspector (no FFmpeg required)
    """
    if mock_mode:
        return MockMediaInspector()

    return FFprobeInspector(ffprobe_path, timeout_seconds, limiter)
