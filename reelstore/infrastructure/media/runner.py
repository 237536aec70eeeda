"""
Subprocess plumbing shared by the ffprobe and ffmpeg adapters.

Tools run in a worker thread via ``asyncio.to_thread`` so the event loop
keeps serving other requests while a child process works. An optional
semaphore caps how many children run at once across all uploads.

A thread cannot be cancelled. When the awaiting task is cancelled the
child keeps running, so callers whose tool writes files pass an
``on_abandon`` callback that runs once the child has exited.
"""

import asyncio
import logging
import subprocess
import threading
from typing import Callable, Optional, Sequence

logger = logging.getLogger(__name__)


def check_tool(binary: str) -> None:
    """
    Fail fast if ``binary`` is missing or broken.

    Raises:
        RuntimeError: the tool is not installed or ``-version`` fails
    """
    try:
        result = subprocess.run(
            [binary, "-version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except FileNotFoundError:
        raise RuntimeError(
            f"{binary} not found. Install with: apt-get install ffmpeg"
        )

    if result.returncode != 0:
        raise RuntimeError(f"{binary} not working properly")


class _Abandonment:
    """
    Runs ``on_abandon`` exactly once if the caller gave up on the tool,
    but only after the tool has exited, whichever of the two happens last.
    """

    def __init__(self, on_abandon: Optional[Callable[[], None]]) -> None:
        self._on_abandon = on_abandon
        self._lock = threading.Lock()
        self._finished = False
        self._abandoned = False

    def finished(self) -> None:
        with self._lock:
            self._finished = True
            run_cleanup = self._abandoned
        if run_cleanup:
            self._cleanup()

    def abandon(self) -> None:
        with self._lock:
            self._abandoned = True
            run_cleanup = self._finished
        if run_cleanup:
            self._cleanup()

    def _cleanup(self) -> None:
        if self._on_abandon is None:
            return
        try:
            self._on_abandon()
        except OSError as e:
            logger.warning("Cleanup after abandoned media tool failed", extra={"error": str(e)})


async def run_tool(
    cmd: Sequence[str],
    timeout: float,
    limiter: Optional[asyncio.Semaphore] = None,
    on_abandon: Optional[Callable[[], None]] = None,
) -> subprocess.CompletedProcess:
    """
    Run a media tool to completion and capture its output as text.

    Raises whatever ``subprocess.run`` raises (``TimeoutExpired``,
    ``OSError``); callers translate those into their own error types.
    If the calling task is cancelled, ``on_abandon`` runs after the
    child exits and the cancellation propagates.
    """
    if limiter is None:
        return await _run(cmd, timeout, on_abandon)

    async with limiter:
        return await _run(cmd, timeout, on_abandon)


async def _run(
    cmd: Sequence[str],
    timeout: float,
    on_abandon: Optional[Callable[[], None]],
) -> subprocess.CompletedProcess:
    logger.debug("Running media tool", extra={"cmd": list(cmd)})

    abandonment = _Abandonment(on_abandon)
    try:
        return await asyncio.to_thread(_run_blocking, list(cmd), timeout, abandonment)
    except asyncio.CancelledError:
        logger.warning("Media tool abandoned by cancelled caller", extra={"cmd": list(cmd)})
        abandonment.abandon()
        raise


def _run_blocking(
    cmd: list[str],
    timeout: float,
    abandonment: _Abandonment,
) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    finally:
        abandonment.finished()
