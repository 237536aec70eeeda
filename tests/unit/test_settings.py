"""
Unit tests for application settings.
"""

from reelstore.config.settings import Settings
from reelstore.core.pipeline import PipelineTopology


class TestPipelineConfig:
    """Settings -> PipelineConfig."""

    def test_classify_topology(self):
        settings = Settings(
            s3_cf_distribution="cdn.example.com",
            max_video_upload_bytes=2048,
        )

        config = settings.pipeline_config()

        assert config.topology is PipelineTopology.CLASSIFY_THEN_RELOCATE
        assert config.max_upload_bytes == 2048
        assert config.public_url("portrait/a.mp4") == "https://cdn.example.com/portrait/a.mp4"

    def test_relocate_only_topology(self):
        settings = Settings(
            pipeline_topology="relocate_only",
            s3_bucket="reels",
            s3_region="ap-southeast-2",
        )

        config = settings.pipeline_config()

        assert not config.classifies
        assert config.public_url("a.mp4") == "https://reels.s3.ap-southeast-2.amazonaws.com/a.mp4"


class TestValidateRequiredFields:
    """Missing configuration depends on the mock flags and topology."""

    def test_all_mocks_need_only_secret_and_distribution(self):
        settings = Settings(
            jwt_secret="",
            s3_cf_distribution="",
            s3_mock_mode=True,
            snowflake_mock_mode=True,
        )

        assert settings.validate_required_fields() == ["JWT_SECRET", "S3_CF_DISTRIBUTION"]

    def test_relocate_only_does_not_need_distribution(self):
        settings = Settings(
            jwt_secret="secret",
            pipeline_topology="relocate_only",
            s3_mock_mode=True,
            snowflake_mock_mode=True,
        )

        assert settings.validate_required_fields() == []

    def test_real_backends_need_credentials(self):
        settings = Settings(
            jwt_secret="secret",
            s3_bucket="",
            s3_cf_distribution="cdn.example.com",
            snowflake_account="",
            snowflake_user="",
            snowflake_password="",
        )

        missing = settings.validate_required_fields()

        assert "S3_BUCKET" in missing
        assert "SNOWFLAKE_ACCOUNT" in missing
        assert "SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH" in missing

    def test_cors_origins_list(self):
        settings = Settings(cors_origins="http://a.test, http://b.test")

        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]
