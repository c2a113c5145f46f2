"""
Health check endpoints.

Health checks let load balancers and orchestrators know whether the
proxy is alive and able to serve traffic.

We provide two endpoints, mounted under Settings.health_path:
- {health_path}: Basic liveness check (is the process running?)
- {health_path}/ready: Readiness check (is the configuration usable and
  the storage client initialised?)

They are registered ahead of the catch-all object route, so these exact
paths never reach storage.
"""

import logging

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel

from ..dependencies import SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """
    Health check response.

    Standardized format makes it easy for monitoring tools to parse.
    """
    status: str
    version: str
    bucket: str | None = None
    mock_mode: bool = False


class ReadinessCheck(BaseModel):
    """Individual readiness check result."""
    name: str
    status: str  # "ok" or "error"
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response with details."""
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """
    Liveness check - is the process alive?

    Does not touch storage. If this fails, the process is not running.
    """
    return HealthResponse(
        status="ok",
        version=settings.api_version,
        bucket=settings.bucket,
        mock_mode=settings.mock_mode,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    responses={
        503: {
            "description": "Service not ready",
            "model": ReadinessResponse,
        }
    },
)
async def readiness_check(
    request: Request,
    response: Response,
    settings: SettingsDep,
) -> ReadinessResponse:
    """
    Readiness check - can we serve traffic?

    Returns 503 if any check fails, which tells load balancers not
    to route traffic here. Storage itself is not called: a bucket-level
    request would need permissions the proxy doesn't otherwise require.
    """
    checks: list[ReadinessCheck] = []

    problems = settings.validate_required_fields()
    if problems:
        checks.append(ReadinessCheck(
            name="configuration",
            status="error",
            error=f"Invalid configuration: {', '.join(problems)}"
        ))
    else:
        checks.append(ReadinessCheck(name="configuration", status="ok"))

    if getattr(request.app.state, "backend", None) is None:
        checks.append(ReadinessCheck(
            name="storage",
            status="error",
            error="storage client not initialised"
        ))
    else:
        checks.append(ReadinessCheck(name="storage", status="ok"))

    all_ok = all(check.status == "ok" for check in checks)
    if not all_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Readiness check failed",
            extra={
                "checks": [
                    {"name": c.name, "status": c.status, "error": c.error}
                    for c in checks
                ]
            }
        )

    return ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        version=settings.api_version,
        checks=checks,
    )
