"""
Error taxonomy for the upload pipeline.

Every failure the pipeline can surface is a PipelineError subclass. Each
class carries the HTTP status the API layer reports it with, so route
handlers never translate errors one by one.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    status_code: int = 500

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


# ---------------------------------------------------------------------------
# Client errors
# ---------------------------------------------------------------------------

class InvalidRequest(PipelineError):
    """The request is malformed or violates an upload constraint."""
    status_code = 400


class UnsupportedMediaType(InvalidRequest):
    """Declared media type is not the accepted container type."""
    pass


class PayloadTooLarge(InvalidRequest):
    """Declared or observed size exceeds the caller's limit."""
    pass


class AuthenticationError(PipelineError):
    """Missing, malformed, expired or forged bearer token."""
    status_code = 401


class Forbidden(PipelineError):
    """Caller does not own the target video."""
    status_code = 403


class NotFound(PipelineError):
    """Referenced catalog entry does not exist."""
    status_code = 404


# ---------------------------------------------------------------------------
# Server errors
# ---------------------------------------------------------------------------

class MediaToolError(PipelineError):
    """
    An external media tool (ffprobe/ffmpeg) failed.

    ``detail`` holds the tool's diagnostic output when there is any.
    These are never retried: a file the tool cannot read will not
    become readable on a second attempt.
    """
    status_code = 500


class ProbeError(MediaToolError):
    """ffprobe failed or returned output we could not interpret."""
    pass


class TranscodeError(MediaToolError):
    """ffmpeg failed to produce the fast-start file."""
    pass


class StorageError(PipelineError):
    """Upload to the object store failed."""
    status_code = 502
