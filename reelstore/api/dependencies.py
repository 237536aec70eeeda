"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Each one can be replaced in tests through
``app.dependency_overrides``.

Mock clients are created once per process and shared across requests so
that data written by one request is visible to the next while developing
locally.
"""

import asyncio
import logging
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Generator, Optional
from uuid import UUID

from fastapi import Depends, Header

from ..config.settings import Settings, get_settings
from ..core.pipeline.orchestrator import (
    MediaInspector,
    MediaNormalizer,
    PipelineConfig,
    UploadPipeline,
    VideoCatalog,
)
from ..infrastructure.media import create_media_inspector, create_media_normalizer
from ..infrastructure.snowflake.client import (
    MockSnowflakeConnection,
    create_snowflake_connection,
)
from ..infrastructure.snowflake.repositories.videos import SnowflakeConfig, VideoRepository
from ..infrastructure.staging import StagingStore
from ..infrastructure.storage import StorageClient, StorageConfig, create_storage_client
from .auth import get_bearer_token, validate_jwt

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared instances
# ---------------------------------------------------------------------------

@lru_cache()
def _shared_mock_connection() -> MockSnowflakeConnection:
    logger.info("Created shared mock Snowflake connection")
    return MockSnowflakeConnection()


@lru_cache()
def _shared_mock_storage() -> StorageClient:
    logger.info("Created shared mock storage client")
    return create_storage_client(mock_mode=True)


@lru_cache()
def _media_limiter(max_jobs: int) -> asyncio.Semaphore:
    return asyncio.Semaphore(max_jobs)


# Real inspectors and normalizers check their binary on construction,
# so one instance per configuration is kept for the process.
@lru_cache()
def _inspector(mock_mode: bool, ffprobe_path: str, timeout: float, max_jobs: int) -> MediaInspector:
    return create_media_inspector(
        mock_mode=mock_mode,
        ffprobe_path=ffprobe_path,
        timeout_seconds=timeout,
        limiter=_media_limiter(max_jobs),
    )


@lru_cache()
def _normalizer(mock_mode: bool, ffmpeg_path: str, timeout: float, max_jobs: int) -> MediaNormalizer:
    return create_media_normalizer(
        mock_mode=mock_mode,
        ffmpeg_path=ffmpeg_path,
        timeout_seconds=timeout,
        limiter=_media_limiter(max_jobs),
    )


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def get_current_user(
    settings: Annotated[Settings, Depends(get_settings)],
    authorization: Annotated[Optional[str], Header()] = None,
) -> UUID:
    """Resolve the bearer token to a user ID (401 otherwise)."""
    token = get_bearer_token(authorization)
    return validate_jwt(
        token,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        issuer=settings.jwt_issuer,
    )


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_video_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[VideoCatalog, None, None]:
    """
    Provide the video catalog with a database connection.

    A generator so the connection is closed once the request is done.
    In mock mode the same in-memory connection serves every request.
    """
    if settings.snowflake_mock_mode:
        yield VideoRepository(_shared_mock_connection())
        return

    config = SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        private_key_base64=settings.snowflake_private_key_base64,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )

    with create_snowflake_connection(config=config) as conn:
        logger.debug("Created VideoRepository with Snowflake connection")
        yield VideoRepository(conn)


def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StorageClient:
    """Provide the S3 client, or the shared in-memory one in mock mode."""
    if settings.s3_mock_mode:
        return _shared_mock_storage()

    config = StorageConfig(
        bucket_name=settings.s3_bucket,
        region=settings.s3_region,
        access_key_id=settings.s3_access_key_id,
        secret_access_key=settings.s3_secret_access_key,
        endpoint_url=settings.s3_endpoint_url,
        max_attempts=settings.s3_max_attempts,
        connect_timeout_seconds=settings.s3_connect_timeout_seconds,
        read_timeout_seconds=settings.s3_read_timeout_seconds,
        multipart_threshold_mb=settings.s3_multipart_threshold_mb,
    )
    return create_storage_client(config=config)


def get_media_inspector(
    settings: Annotated[Settings, Depends(get_settings)],
) -> MediaInspector:
    return _inspector(
        settings.media_mock_mode,
        settings.ffprobe_path,
        settings.probe_timeout_seconds,
        settings.max_concurrent_media_jobs,
    )


def get_media_normalizer(
    settings: Annotated[Settings, Depends(get_settings)],
) -> MediaNormalizer:
    return _normalizer(
        settings.media_mock_mode,
        settings.ffmpeg_path,
        settings.transcode_timeout_seconds,
        settings.max_concurrent_media_jobs,
    )


def get_scratch_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StagingStore:
    return StagingStore(Path(settings.scratch_dir))


def get_asset_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StagingStore:
    return StagingStore(Path(settings.assets_dir))


def get_pipeline_config(
    settings: Annotated[Settings, Depends(get_settings)],
) -> PipelineConfig:
    return settings.pipeline_config()


def get_upload_pipeline(
    config: Annotated[PipelineConfig, Depends(get_pipeline_config)],
    staging: Annotated[StagingStore, Depends(get_scratch_store)],
    inspector: Annotated[MediaInspector, Depends(get_media_inspector)],
    normalizer: Annotated[MediaNormalizer, Depends(get_media_normalizer)],
    storage: Annotated[StorageClient, Depends(get_storage_client)],
    catalog: Annotated[VideoCatalog, Depends(get_video_repository)],
) -> UploadPipeline:
    return UploadPipeline(
        config=config,
        staging=staging,
        inspector=inspector,
        normalizer=normalizer,
        relocator=storage,
        catalog=catalog,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

CurrentUser = Annotated[UUID, Depends(get_current_user)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
VideoCatalogDep = Annotated[VideoCatalog, Depends(get_video_repository)]
AssetStoreDep = Annotated[StagingStore, Depends(get_asset_store)]
UploadPipelineDep = Annotated[UploadPipeline, Depends(get_upload_pipeline)]
