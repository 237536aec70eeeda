"""
ASGI entry point for the reelstore API.

Creates and configures the FastAPI application through an application
factory (create_app), so tests can build apps with their own settings.

For local development:
    uvicorn reelstore.main:app --reload

For production:
    gunicorn reelstore.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import __version__
from .api.routes import health, thumbnails, videos
from .config.settings import Settings, get_settings
from .core.pipeline.errors import PipelineError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: log configuration, create local directories. Shutdown: log."""
    settings: Settings = app.state.settings

    logger.info(
        "reelstore API starting",
        extra={
            "version": __version__,
            "topology": settings.pipeline_topology,
            "mock_mode": {
                "snowflake": settings.snowflake_mock_mode,
                "s3": settings.s3_mock_mode,
                "media": settings.media_mock_mode,
            }
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    Path(settings.scratch_dir).mkdir(parents=True, exist_ok=True)
    Path(settings.assets_dir).mkdir(parents=True, exist_ok=True)

    yield

    logger.info("reelstore API shutting down")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to build the app with; defaults to the cached
            environment settings
    """
    settings = settings or get_settings()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.log_level.upper(),
    )

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Upload videos, remux them for streaming and publish them to object storage.

        ## Authentication

        All video endpoints require a bearer JWT in the `Authorization` header.

        ## Workflow

        1. **Upload video**: `POST /api/videos/{video_id}/video`
           - Multipart field `video`, MP4 only
           - Returns the video with its new public `video_url`

        2. **Upload thumbnail**: `POST /api/videos/{video_id}/thumbnail`
           - Multipart field `thumbnail`, JPEG or PNG
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        videos.router,
        prefix="/api/videos",
        tags=["Videos"],
    )

    app.include_router(
        thumbnails.router,
        prefix="/api/videos",
        tags=["Thumbnails"],
    )

    app.mount(
        "/assets",
        StaticFiles(directory=settings.assets_dir, check_dir=False),
        name="assets",
    )

    @app.exception_handler(PipelineError)
    async def pipeline_exception_handler(request: Request, exc: PipelineError):
        """Render pipeline errors with the status their class declares."""
        if exc.status_code >= 500:
            logger.error(
                "Upload pipeline error",
                extra={
                    "path": request.url.path,
                    "error": exc.message,
                    "detail": exc.detail,
                },
            )

        content = {"error": exc.message}
        if exc.detail:
            content["detail"] = exc.detail

        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Last-resort handler for anything that is not a PipelineError.

        Logs the full error server-side and returns a generic message so
        stack traces never reach clients.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error. Please contact support if this persists."}
        )

    logger.info(
        "reelstore app ready",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Module-level app for uvicorn/gunicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "reelstore.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
