"""
Trigger Authorization

Decides who may run the notification processor. Any one of these is
enough:

- No CRON_SECRET configured (open trigger)
- A scheduler request (x-vercel-cron header or known user agent)
- Authorization: Bearer <CRON_SECRET>
- ?token=<CRON_SECRET> (or ?secret=) in the query string
"""

import hmac
import logging
from typing import Optional

from fastapi import HTTPException, Request, status

from reminder_service.config import Settings, get_settings

logger = logging.getLogger(__name__)

SCHEDULER_HEADER = "x-vercel-cron"
SECRET_QUERY_PARAMS = ("token", "secret")


def _matches(candidate: Optional[str], secret: str) -> bool:
    """Constant-time comparison that tolerates a missing candidate."""
    if not candidate:
        return False
    return hmac.compare_digest(candidate.encode(), secret.encode())


def is_scheduler_request(request: Request, settings: Settings) -> bool:
    """Check whether the request comes from a recognized scheduler."""
    if request.headers.get(SCHEDULER_HEADER, "").lower() in ("1", "true"):
        return True

    user_agent = request.headers.get("user-agent", "").lower()
    return any(agent in user_agent for agent in settings.scheduler_user_agents_list)


def is_authorized_trigger(request: Request, settings: Optional[Settings] = None) -> bool:
    """Check whether a request may trigger notification processing."""
    settings = settings or get_settings()
    secret = settings.cron_secret

    if not secret:
        return True

    if is_scheduler_request(request, settings):
        return True

    authorization = request.headers.get("authorization", "")
    if authorization.startswith("Bearer ") and _matches(authorization[len("Bearer "):], secret):
        return True

    return any(
        _matches(request.query_params.get(param), secret)
        for param in SECRET_QUERY_PARAMS
    )


async def require_trigger_auth(request: Request) -> None:
    """
    FastAPI dependency rejecting unauthorized trigger calls with 401.

    Usage:
        @router.post("/process", dependencies=[Depends(require_trigger_auth)])
    """
    if not is_authorized_trigger(request):
        client = request.client.host if request.client else "unknown"
        logger.warning(f"Unauthorized notification trigger from {client}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
