"""
reelstore - upload, fast-start and publish user videos.

This package contains the complete application:
- core: Framework-agnostic upload pipeline
- infrastructure: ffmpeg, object storage, catalog and scratch-disk adapters
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
