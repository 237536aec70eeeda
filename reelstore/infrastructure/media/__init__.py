"""
Media tooling infrastructure.

Wraps the FFmpeg command-line tools:
- ffprobe: aspect-ratio classification of uploaded videos
- ffmpeg: stream-copy remux with the index moved to the front
"""

from .inspector import (
    FFprobeInspector,
    MockMediaInspector,
    create_media_inspector,
    parse_dimensions,
)
from .normalizer import (
    FFmpegNormalizer,
    MockMediaNormalizer,
    create_media_normalizer,
    processed_path,
)

__all__ = [
    "FFprobeInspector",
    "MockMediaInspector",
    "create_media_inspector",
    "parse_dimensions",
    "FFmpegNormalizer",
    "MockMediaNormalizer",
    "create_media_normalizer",
    "processed_path",
]
