"""
Connections to the Snowflake database that holds the video catalog.

Real connections authenticate with a key pair or a password; mock mode
swaps in an in-memory `videos` table.

Most code never touches this module directly; it goes through
VideoRepository, which handles the translation between domain models
and database rows.
"""

import base64
import logging
from contextlib import contextmanager
from typing import Generator, Optional
from uuid import UUID

import snowflake.connector
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization

from .repositories.videos import SnowflakeConfig, SnowflakeConnection

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """The catalog database could not be reached or authenticated against."""
    pass


def _load_private_key(config: SnowflakeConfig) -> bytes:
    """
    Load the PEM private key for key-pair authentication.

    Snowflake wants the key as DER-encoded PKCS8 bytes. The PEM comes from
    a file path or, for deployments without a writable filesystem, a
    base64 string.
    """
    if config.private_key_path:
        with open(config.private_key_path, "rb") as key_file:
            pem = key_file.read()
    else:
        pem = base64.b64decode(config.private_key_base64)

    private_key = serialization.load_pem_private_key(
        pem,
        password=None,
        backend=default_backend(),
    )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Open a catalog connection and close it when the block exits.

    A configured private key (file or base64) wins over a password;
    with neither, the connection is refused before any network call.

    Usage:
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            # do work
            conn.commit()
    """
    connect_params = {
        "account": config.account,
        "user": config.user,
        "database": config.database,
        "schema": config.schema,
        "warehouse": config.warehouse,
        "role": config.role,
        "client_session_keep_alive": True,
    }

    if config.private_key_path or config.private_key_base64:
        logger.info("Authenticating to catalog with key pair")
        connect_params["private_key"] = _load_private_key(config)
    elif config.password:
        logger.info("Authenticating to catalog with password")
        connect_params["password"] = config.password
    else:
        raise SnowflakeConnectionError(
            "Either password or a private key must be provided"
        )

    try:
        conn = snowflake.connector.connect(**connect_params)
    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Catalog database connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Could not connect to catalog database: {e}")

    logger.debug(
        "Connected to catalog database",
        extra={
            "account": config.account,
            "database": config.database,
            "schema": config.schema,
        }
    )

    try:
        yield conn
    finally:
        try:
            conn.close()
            logger.debug("Catalog connection closed")
        except Exception as e:
            logger.warning(
                "Catalog connection did not close cleanly",
                extra={"error": str(e)}
            )


# ---------------------------------------------------------------------------
# Mock Connection for Local Development
# ---------------------------------------------------------------------------

class MockSnowflakeCursor:
    """
    In-memory stand-in for a Snowflake cursor.

    Implements just enough of the cursor interface to back
    VideoRepository: the SELECT, UPDATE and INSERT statements it issues
    are recognised by pattern and applied to an in-memory table.
    """

    def __init__(self, storage: dict) -> None:
        self._storage = storage
        self._results: list = []
        self._rowcount: int = 0

    def execute(self, query: str, params: Optional[tuple] = None) -> "MockSnowflakeCursor":
        logger.debug(
            "Mock catalog query",
            extra={"query": query[:100], "params": params}
        )

        query_upper = query.upper().strip()
        self._results = []
        self._rowcount = 0

        if query_upper.startswith("SELECT") and "FROM VIDEOS" in query_upper:
            self._handle_select(params)
        elif query_upper.startswith("UPDATE VIDEOS"):
            self._handle_update(params)
        elif query_upper.startswith("INSERT INTO VIDEOS"):
            self._handle_insert(params)

        return self

    def _handle_select(self, params: Optional[tuple]) -> None:
        if not params:
            return
        row = self._storage["videos"].get(str(params[0]))
        if row:
            self._results = [(
                row["video_id"],
                row["user_id"],
                row["title"],
                row["description"],
                row["thumbnail_url"],
                row["video_url"],
                row["created_at"],
                row["updated_at"],
            )]

    def _handle_update(self, params: Optional[tuple]) -> None:
        if not params:
            return
        title, description, thumbnail_url, video_url, updated_at, video_id = params
        row = self._storage["videos"].get(str(video_id))
        if row is None:
            return
        row.update({
            "title": title,
            "description": description,
            "thumbnail_url": thumbnail_url,
            "video_url": video_url,
            "updated_at": updated_at,
        })
        self._storage["update_count"] += 1
        self._rowcount = 1

    def _handle_insert(self, params: Optional[tuple]) -> None:
        if not params:
            return
        (video_id, user_id, title, description, thumbnail_url,
         video_url, created_at, updated_at) = params
        self._storage["videos"][str(video_id)] = {
            "video_id": str(video_id),
            "user_id": str(user_id),
            "title": title,
            "description": description,
            "thumbnail_url": thumbnail_url,
            "video_url": video_url,
            "created_at": created_at,
            "updated_at": updated_at,
        }
        self._rowcount = 1

    def fetchone(self):
        if not self._results:
            return None
        return self._results[0]

    def fetchall(self) -> list:
        return self._results

    def close(self) -> None:
        pass

    @property
    def rowcount(self) -> int:
        return self._rowcount


class MockSnowflakeConnection:
    """
    In-memory stand-in for a catalog connection.

    Stores rows in memory. Not suitable for production, but enough for
    local development, unit tests and CI.
    """

    def __init__(self) -> None:
        self._storage: dict = {
            "videos": {},
            "update_count": 0,
        }
        logger.info("Using in-memory video catalog")

    def cursor(self) -> MockSnowflakeCursor:
        return MockSnowflakeCursor(self._storage)

    def commit(self) -> None:
        logger.debug("Mock catalog commit")

    def rollback(self) -> None:
        logger.debug("Mock catalog rollback")

    def close(self) -> None:
        logger.debug("Mock catalog close")

    # Test assertions
    def _get_video_row(self, video_id: UUID) -> Optional[dict]:
        """Raw stored row (for test assertions)."""
        return self._storage["videos"].get(str(video_id))

    @property
    def _update_count(self) -> int:
        """Number of UPDATE statements applied (for test assertions)."""
        return self._storage["update_count"]

    def _clear(self) -> None:
        self._storage["videos"].clear()
        self._storage["update_count"] = 0


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

@contextmanager
def create_snowflake_connection(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
) -> Generator[SnowflakeConnection, None, None]:
    """
    Open a catalog connection, real or in-memory.

    Args:
        config: Snowflake configuration (required if not mock_mode)
        mock_mode: If True, yield a fresh in-memory connection

    Yields:
        A live Snowflake connection, or a fresh MockSnowflakeConnection
    """
    if mock_mode:
        conn = MockSnowflakeConnection()
        try:
            yield conn
        finally:
            conn.close()
        return

    if config is None:
        raise ValueError("config is required when not in mock mode")

    with get_snowflake_connection(config) as conn:
        yield conn
