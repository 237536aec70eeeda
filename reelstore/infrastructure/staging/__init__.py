"""Local scratch storage for staged and normalized upload files."""

from .store import StagingStore

__all__ = ["StagingStore"]
