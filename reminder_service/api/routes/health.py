"""
Health Endpoints

Liveness and readiness checks for the reminder service. Readiness
depends on the database only; delivery channels are reported so an
operator can see which ones a run would actually use.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from reminder_service.config import Settings, settings
from reminder_service.infra.database import check_db_health
from reminder_service.infra.email import SmtpConfig
from reminder_service.infra.push import VapidConfig
from reminder_service.infra.sms import TwilioConfig

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])

_started_at: Optional[datetime] = None


def set_start_time() -> None:
    """Record process start. Called from the app lifespan."""
    global _started_at
    _started_at = datetime.now(timezone.utc)


def channel_status(config: Settings) -> dict[str, str]:
    """Report which delivery channels are configured."""
    sms_reason = TwilioConfig.from_settings(config).missing_reason()
    return {
        "email": "configured" if SmtpConfig.from_settings(config) else "not_configured",
        "push": "configured" if VapidConfig.from_settings(config).is_configured else "not_configured",
        "sms": "configured" if sms_reason is None else "disabled",
    }


class LivenessResponse(BaseModel):
    status: str
    environment: str
    uptime_seconds: Optional[float] = None


class ReadinessResponse(BaseModel):
    """Database check plus channel configuration."""

    status: str
    timestamp: datetime
    database: str
    channels: dict[str, str] = Field(
        ...,
        examples=[{"email": "configured", "push": "configured", "sms": "disabled"}],
    )


@router.get("", response_model=LivenessResponse, summary="Basic health check")
@router.get("/live", response_model=LivenessResponse, summary="Liveness check")
async def live() -> LivenessResponse:
    """Return 200 while the process is up. No dependencies are checked."""
    uptime = None
    if _started_at is not None:
        uptime = (datetime.now(timezone.utc) - _started_at).total_seconds()

    return LivenessResponse(
        status="alive",
        environment=settings.app_env,
        uptime_seconds=uptime,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    responses={503: {"description": "Database is unavailable"}},
)
async def ready():
    """Return 503 when the database cannot be reached."""
    db_ok = await check_db_health()

    body = ReadinessResponse(
        status="ready" if db_ok else "not_ready",
        timestamp=datetime.now(timezone.utc),
        database="ok" if db_ok else "failed",
        channels=channel_status(settings),
    )

    if not db_ok:
        logger.warning("Readiness check failed: database unreachable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=body.model_dump(mode="json"),
        )

    return body
