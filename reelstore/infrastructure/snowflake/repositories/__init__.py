"""Snowflake repositories."""

from .videos import SnowflakeConfig, VideoRepository

__all__ = ["SnowflakeConfig", "VideoRepository"]
