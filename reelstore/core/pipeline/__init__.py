"""
Upload-transcode-relocate pipeline.

Contains the domain models, the error taxonomy, aspect-ratio
classification and the orchestrator that sequences a run.
"""

from .classification import classify_dimensions
from .errors import (
    AuthenticationError,
    Forbidden,
    InvalidRequest,
    MediaToolError,
    NotFound,
    PayloadTooLarge,
    PipelineError,
    ProbeError,
    StorageError,
    TranscodeError,
    UnsupportedMediaType,
)
from .models import (
    Classification,
    PipelineStage,
    PipelineTopology,
    RemoteObject,
    StagedFile,
    UploadRequest,
    UploadResult,
    VideoRecord,
)
from .orchestrator import (
    PipelineConfig,
    UploadPipeline,
    authorize,
    build_object_key,
    new_upload_id,
)

__all__ = [
    "classify_dimensions",
    "AuthenticationError",
    "Forbidden",
    "InvalidRequest",
    "MediaToolError",
    "NotFound",
    "PayloadTooLarge",
    "PipelineError",
    "ProbeError",
    "StorageError",
    "TranscodeError",
    "UnsupportedMediaType",
    "Classification",
    "PipelineStage",
    "PipelineTopology",
    "RemoteObject",
    "StagedFile",
    "UploadRequest",
    "UploadResult",
    "VideoRecord",
    "PipelineConfig",
    "UploadPipeline",
    "authorize",
    "build_object_key",
    "new_upload_id",
]
