"""
Liveness and readiness probes for the upload service.

- /health: the process is up
- /health/ready: an upload could succeed right now

Readiness covers configuration, the media tools and the scratch
directory; an upload cannot succeed without any of them.
"""

import logging
import shutil
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ..dependencies import SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    """Outcome of one readiness probe."""
    name: str
    status: str  # "ok" or "error"
    error: str | None = None


class ReadinessResponse(BaseModel):
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
    description="Always 200 while the process is serving. Touches no dependency.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        details={
            "topology": settings.pipeline_topology,
            "mock_mode": {
                "snowflake": settings.snowflake_mock_mode,
                "s3": settings.s3_mock_mode,
                "media": settings.media_mock_mode,
            }
        }
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="Returns 200 if the service can handle uploads, 503 otherwise.",
    responses={503: {"model": ReadinessResponse}},
)
async def readiness_check(settings: SettingsDep, response: Response) -> ReadinessResponse:
    checks: list[ReadinessCheck] = []

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        checks.append(ReadinessCheck(
            name="configuration",
            status="error",
            error=f"Missing required fields: {', '.join(missing_fields)}"
        ))
    else:
        checks.append(ReadinessCheck(name="configuration", status="ok"))

    if settings.media_mock_mode:
        checks.append(ReadinessCheck(name="media_tools", status="ok", error="mock mode"))
    else:
        absent = [
            tool for tool in (settings.ffmpeg_path, settings.ffprobe_path)
            if shutil.which(tool) is None
        ]
        if absent:
            checks.append(ReadinessCheck(
                name="media_tools",
                status="error",
                error=f"Not found: {', '.join(absent)}"
            ))
        else:
            checks.append(ReadinessCheck(name="media_tools", status="ok"))

    try:
        Path(settings.scratch_dir).mkdir(parents=True, exist_ok=True)
        checks.append(ReadinessCheck(name="scratch_dir", status="ok"))
    except OSError as e:
        checks.append(ReadinessCheck(name="scratch_dir", status="error", error=str(e)))

    all_ok = all(check.status == "ok" for check in checks)
    if not all_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Not ready to accept uploads",
            extra={
                "checks": [
                    {"name": c.name, "status": c.status, "error": c.error}
                    for c in checks
                ]
            }
        )

    return ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        version=__version__,
        checks=checks,
    )
