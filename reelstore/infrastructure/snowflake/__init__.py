"""
Snowflake persistence for the video catalog.

Includes an in-memory mock connection for local development.
"""

from .client import (
    MockSnowflakeConnection,
    SnowflakeConnectionError,
    create_snowflake_connection,
)
from .repositories.videos import SnowflakeConfig, VideoRepository

__all__ = [
    "MockSnowflakeConnection",
    "SnowflakeConnectionError",
    "create_snowflake_connection",
    "SnowflakeConfig",
    "VideoRepository",
]
