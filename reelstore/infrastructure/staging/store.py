"""
Local scratch storage for in-flight uploads.

Staged files live in a single directory and are named from random
identifiers, never from anything the client sent. The store enforces a
per-call size ceiling while streaming, so an oversized upload is cut off
without ever being buffered in full.
"""

import logging
import secrets
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from ...core.pipeline.errors import PayloadTooLarge
from ...core.pipeline.models import ByteStream, StagedFile

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024 * 1024


class StagingStore:
    """
    Writes inbound byte streams to local files and deletes them again.

    ``release`` is idempotent: deleting a file that is already gone is a
    no-op, so cleanup can run from several exit paths of the same run.
    """

    def __init__(self, root: Union[str, Path], chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._root = Path(root)
        self._chunk_size = chunk_size

    @property
    def root(self) -> Path:
        return self._root

    async def stage(
        self,
        stream: ByteStream,
        size_limit: int,
        declared_size: Optional[int] = None,
        name: Optional[str] = None,
        suffix: str = ".mp4",
    ) -> StagedFile:
        """
        Copy ``stream`` into a new file under the staging root.

        Args:
            stream: Source with an async ``read(size)``
            size_limit: Maximum bytes accepted for this upload
            declared_size: Size the client announced, if any
            name: File name to use; a random one is generated otherwise
            suffix: Extension for generated names

        Raises:
            PayloadTooLarge: declared or observed size exceeds ``size_limit``.
                Nothing is left on disk in either case.
        """
        if declared_size is not None and declared_size > size_limit:
            raise PayloadTooLarge(
                f"File is too big ({declared_size} bytes, limit {size_limit})"
            )

        self._root.mkdir(parents=True, exist_ok=True)
        path = self._root / (name or f"{secrets.token_urlsafe(32)}{suffix}")

        written = 0
        try:
            with open(path, "wb") as out:
                while True:
                    chunk = await stream.read(self._chunk_size)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > size_limit:
                        raise PayloadTooLarge(
                            f"File is too big (more than {size_limit} bytes)"
                        )
                    out.write(chunk)
        except BaseException:
            self.discard(path)
            raise

        logger.debug(
            "Staged upload",
            extra={"path": str(path), "size_bytes": written}
        )

        return StagedFile(path=path, size_bytes=written)

    def release(self, staged: Union[StagedFile, Path]) -> None:
        """Delete the backing file. Missing files are ignored."""
        path = staged.path if isinstance(staged, StagedFile) else staged
        path.unlink(missing_ok=True)

    def promote(self, staged: StagedFile, name: str) -> StagedFile:
        """
        Atomically move a staged file to ``name`` under the root.

        Whatever was published under ``name`` before is replaced in one
        step; readers see either the old file or the new one.
        """
        target = self._root / name
        staged.path.replace(target)

        logger.debug(
            "Promoted staged file",
            extra={"path": str(target), "size_bytes": staged.size_bytes}
        )

        return StagedFile(path=target, size_bytes=staged.size_bytes)

    @contextmanager
    def hold(self, staged: StagedFile) -> Iterator[StagedFile]:
        """
        Scope ``staged`` to a block; the file is released when it exits.

        A failed delete is logged and swallowed so it never replaces the
        exception that is already propagating out of the block.
        """
        try:
            yield staged
        finally:
            self.discard(staged.path)

    def discard(self, path: Path) -> None:
        """Release ``path``, logging rather than raising if the delete fails."""
        try:
            self.release(path)
        except OSError as e:
            logger.warning(
                "Failed to clean up staged file",
                extra={"path": str(path), "error": str(e)}
            )
