"""
Notification Trigger Endpoint.

Runs one reminder pass. Accepts GET so cron schedulers can call it
directly, and POST for manual triggers.
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from reminder_service.api.middleware.trigger_auth import require_trigger_auth
from reminder_service.core.reminders.orchestrator import (
    ReminderOrchestrator,
    get_orchestrator,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


class ProcessDetails(BaseModel):
    """Per-window candidate counts and SMS total."""

    reminders24h: int = Field(..., description="Appointments in the 24h window")
    reminders12h: int = Field(..., description="Appointments in the 12h window")
    reminders2h: int = Field(..., description="Appointments in the 2h window")
    reminders30m: int = Field(..., description="Appointments in the 30m window")
    thankYou: int = Field(..., description="Completed appointments due a thank-you")
    smsSent: int = Field(..., description="SMS accepted by the provider")


class ProcessResponse(BaseModel):
    """Summary of a notification run."""

    success: bool
    message: str = Field(
        ...,
        examples=["Successfully processed 4 notifications and sent 1 SMS"],
    )
    details: ProcessDetails


@router.api_route(
    "/process",
    methods=["GET", "POST"],
    response_model=ProcessResponse,
    dependencies=[Depends(require_trigger_auth)],
    summary="Process appointment notifications",
    responses={
        401: {"description": "Caller is not an authorized scheduler"},
        500: {"description": "The run failed"},
    },
)
async def process_notifications(
    orchestrator: ReminderOrchestrator = Depends(get_orchestrator),
):
    """
    Send due reminders and thank-you messages.

    Safe to call repeatedly or concurrently: each (appointment, window,
    channel) is claimed atomically before anything is sent.
    """
    try:
        summary = await orchestrator.run()
    except Exception:
        logger.exception("Error processing notifications")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to process notifications"},
        )

    return summary.to_dict()
