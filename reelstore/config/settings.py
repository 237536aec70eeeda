"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (and ``.env``) with
defaults suited to local development. Type validation happens at
startup, so a malformed value fails before the first request.

Mock modes enable local development without S3, Snowflake or FFmpeg.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.pipeline.models import PipelineTopology
from ..core.pipeline.orchestrator import PipelineConfig

MB = 1024 * 1024


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "reelstore API"
    api_version: str = "v1"
    port: int = Field(
        default=8091,
        description="Port the API listens on. Thumbnail URLs point back at it."
    )

    # Authentication
    jwt_secret: str = Field(
        default="",
        description="HMAC secret used to sign and verify bearer tokens."
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_issuer: str = Field(default="reelstore")

    # Local Storage
    scratch_dir: str = Field(
        default="./scratch",
        description="Directory for staged and remuxed uploads. Emptied as each upload finishes."
    )
    assets_dir: str = Field(
        default="./assets",
        description="Directory for thumbnails, served under /assets."
    )

    # Upload Limits
    max_video_upload_bytes: int = Field(
        default=1024 * MB,
        description="Largest accepted video upload."
    )
    max_thumbnail_upload_bytes: int = Field(
        default=10 * MB,
        description="Largest accepted thumbnail upload."
    )

    # Pipeline
    pipeline_topology: Literal["classify_then_relocate", "relocate_only"] = Field(
        default="classify_then_relocate",
        description=(
            "classify_then_relocate probes aspect ratio, prefixes keys with it and "
            "publishes through the CDN; relocate_only publishes the bucket URL."
        )
    )

    # S3 Storage Configuration
    s3_bucket: str = Field(default="", description="Bucket for published videos")
    s3_region: str = Field(default="us-east-1", description="Bucket region")
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="Endpoint for S3-compatible stores (R2, MinIO). Leave unset for AWS."
    )
    s3_access_key_id: Optional[str] = Field(
        default=None,
        description="Access key. Falls back to the default AWS credential chain when unset."
    )
    s3_secret_access_key: Optional[str] = Field(default=None)
    s3_cf_distribution: str = Field(
        default="",
        description="CloudFront distribution host serving the bucket"
    )
    s3_max_attempts: int = Field(default=3, description="Attempts per S3 call, retries included")
    s3_connect_timeout_seconds: float = Field(default=10.0)
    s3_read_timeout_seconds: float = Field(default=60.0)
    s3_multipart_threshold_mb: int = Field(default=64)
    s3_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real S3. Enables local dev without object storage."
    )

    # Media Tools
    ffmpeg_path: str = Field(default="ffmpeg")
    ffprobe_path: str = Field(default="ffprobe")
    probe_timeout_seconds: float = Field(default=30.0)
    transcode_timeout_seconds: float = Field(default=600.0)
    max_concurrent_media_jobs: int = Field(
        default=4,
        ge=1,
        description="Upper bound on ffprobe/ffmpeg processes running at once"
    )
    media_mock_mode: bool = Field(
        default=False,
        description="Skip ffprobe/ffmpeg. The mock classifies everything as landscape and copies files."
    )

    # Snowflake Configuration
    snowflake_account: str = Field(default="", description="Snowflake account identifier")
    snowflake_user: str = Field(default="", description="Snowflake service account username")
    snowflake_password: str = Field(default="", description="Snowflake service account password")
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="Path to RSA private key file for key-pair authentication"
    )
    snowflake_private_key_base64: Optional[str] = Field(
        default=None,
        description="Base64-encoded private key (for deployment, alternative to file path)"
    )
    snowflake_database: str = Field(default="REELSTORE")
    snowflake_schema: str = Field(default="CATALOG")
    snowflake_warehouse: str = Field(default="COMPUTE_WH")
    snowflake_role: Optional[str] = Field(default=None)
    snowflake_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real Snowflake connection. Enables local dev without DB."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def classifies(self) -> bool:
        return self.pipeline_topology == "classify_then_relocate"

    def pipeline_config(self) -> PipelineConfig:
        """The slice of settings the upload pipeline runs with."""
        return PipelineConfig(
            topology=PipelineTopology(self.pipeline_topology),
            max_upload_bytes=self.max_video_upload_bytes,
            distribution_host=self.s3_cf_distribution,
            bucket=self.s3_bucket,
            region=self.s3_region,
        )

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields. Requirements depend on
        the mock flags and the pipeline topology, so this sits outside
        Pydantic's per-field validation.
        """
        missing = []

        if not self.jwt_secret:
            missing.append("JWT_SECRET")

        if not self.s3_mock_mode:
            if not self.s3_bucket:
                missing.append("S3_BUCKET")
            if not self.s3_region:
                missing.append("S3_REGION")

        if self.classifies and not self.s3_cf_distribution:
            missing.append("S3_CF_DISTRIBUTION")

        if not self.snowflake_mock_mode:
            if not self.snowflake_account:
                missing.append("SNOWFLAKE_ACCOUNT")
            if not self.snowflake_user:
                missing.append("SNOWFLAKE_USER")
            if not (
                self.snowflake_password
                or self.snowflake_private_key_path
                or self.snowflake_private_key_base64
            ):
                missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process. For tests, call
    get_settings.cache_clear() or override the dependency.
    """
    return Settings()
