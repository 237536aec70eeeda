"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- media: ffprobe/ffmpeg subprocesses
- snowflake: Video catalog persistence
- staging: Local scratch disk
- storage: Object storage (S3-compatible)

These wrappers translate between external formats and our domain models.
"""
