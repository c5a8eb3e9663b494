"""
Reminder Orchestrator.

Runs one evaluation pass: for each window in order, query candidates,
claim each (appointment, window, channel) flag and dispatch on success.

Each appointment's claim and dispatch is an independent unit of work.
Overlapping runs are safe because every dispatch sits behind a claim.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from reminder_service.config import Settings, get_settings
from reminder_service.core.reminders.claims import ClaimCoordinator
from reminder_service.core.reminders.dispatchers import (
    EmailDispatcher,
    PushDispatcher,
    SmsDispatcher,
)
from reminder_service.core.reminders.store import AppointmentStore, PushSubscriptionStore
from reminder_service.core.reminders.templates import (
    AppointmentDetails,
    RecipientRole,
    render_push,
)
from reminder_service.core.reminders.windows import (
    TIMED_WINDOWS,
    ReminderWindow,
    TimeRange,
    compute_windows,
)
from reminder_service.infra.database import async_session_factory
from reminder_service.infra.email import SmtpConfig, SmtpEmailProvider
from reminder_service.infra.push import VapidConfig, WebPushProvider
from reminder_service.infra.sms import TwilioConfig, TwilioSmsProvider
from reminder_service.models.database import (
    Appointment,
    AppointmentStatus,
    ReminderFlag,
    User,
)

logger = logging.getLogger(__name__)

UPCOMING_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)

# (email/push flag, SMS flag) per timed window
WINDOW_FLAGS: dict[ReminderWindow, tuple[ReminderFlag, Optional[ReminderFlag]]] = {
    ReminderWindow.H24: (ReminderFlag.NOTIFICATION_24H, ReminderFlag.SMS_24H),
    ReminderWindow.H12: (ReminderFlag.NOTIFICATION_12H, None),
    ReminderWindow.H2: (ReminderFlag.NOTIFICATION_2H, ReminderFlag.SMS_2H),
    ReminderWindow.M30: (ReminderFlag.NOTIFICATION_30M, None),
}


def _utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


@dataclass
class RunSummary:
    """Counters accumulated over one run."""

    sent_count: int = 0
    sms_sent_count: int = 0
    reminders_24h: int = 0
    reminders_12h: int = 0
    reminders_2h: int = 0
    reminders_30m: int = 0
    thank_you: int = 0

    def record_candidates(self, window: ReminderWindow, count: int) -> None:
        """Store the candidate count of a window."""
        attribute = {
            ReminderWindow.H24: "reminders_24h",
            ReminderWindow.H12: "reminders_12h",
            ReminderWindow.H2: "reminders_2h",
            ReminderWindow.M30: "reminders_30m",
            ReminderWindow.THANK_YOU: "thank_you",
        }[window]
        setattr(self, attribute, count)

    @property
    def message(self) -> str:
        return (
            f"Successfully processed {self.sent_count} notifications "
            f"and sent {self.sms_sent_count} SMS"
        )

    def to_dict(self) -> dict:
        """Convert to the trigger endpoint's response body."""
        return {
            "success": True,
            "message": self.message,
            "details": {
                "reminders24h": self.reminders_24h,
                "reminders12h": self.reminders_12h,
                "reminders2h": self.reminders_2h,
                "reminders30m": self.reminders_30m,
                "thankYou": self.thank_you,
                "smsSent": self.sms_sent_count,
            },
        }


class ReminderOrchestrator:
    """Sequences window evaluation, claims and dispatch for one run."""

    def __init__(
        self,
        store: AppointmentStore,
        claims: ClaimCoordinator,
        email: EmailDispatcher,
        push: PushDispatcher,
        sms: SmsDispatcher,
        clock: Callable[[], datetime] = _utcnow,
        tz: ZoneInfo = ZoneInfo("UTC"),
    ):
        self.store = store
        self.claims = claims
        self.email = email
        self.push = push
        self.sms = sms
        self.clock = clock
        self.tz = tz

    async def run(self) -> RunSummary:
        """Process every reminder window once.

        Returns:
            RunSummary with counters for this run

        Raises:
            Exception: Anything unexpected aborts the rest of the run.
                Appointments claimed before the failure stay claimed.
        """
        now = self.clock()
        windows = compute_windows(now, self.tz)
        summary = RunSummary()

        logger.info(f"Processing notifications at {now.isoformat()}")

        admin = await self.store.find_admin_user()

        for window in TIMED_WINDOWS:
            await self._process_timed_window(window, windows[window], admin, summary)

        await self._process_thank_you(windows[ReminderWindow.THANK_YOU], summary)

        logger.info(
            f"{summary.message} "
            f"(24h={summary.reminders_24h}, 12h={summary.reminders_12h}, "
            f"2h={summary.reminders_2h}, 30m={summary.reminders_30m}, "
            f"thank_you={summary.thank_you})"
        )
        return summary

    async def close(self) -> None:
        """Release provider clients held open between runs."""
        await self.sms.provider.close()

    async def _process_timed_window(
        self,
        window: ReminderWindow,
        time_range: TimeRange,
        admin: Optional[User],
        summary: RunSummary,
    ) -> None:
        notify_flag, sms_flag = WINDOW_FLAGS[window]
        flags = [notify_flag] + ([sms_flag] if sms_flag else [])

        candidates = await self.store.find_candidates(UPCOMING_STATUSES, time_range, flags)
        summary.record_candidates(window, len(candidates))
        logger.info(f"Found {len(candidates)} appointments needing {window.value} reminders")

        for appointment in candidates:
            details = AppointmentDetails.from_appointment(appointment, self.tz)

            if not appointment.is_flag_set(notify_flag) and await self.claims.try_claim(
                appointment.id, notify_flag
            ):
                summary.sent_count += await self._notify_participants(
                    window, appointment, details
                )

            if (
                sms_flag is not None
                and not appointment.is_flag_set(sms_flag)
                and await self.claims.try_claim(appointment.id, sms_flag)
            ):
                summary.sms_sent_count += await self.sms.dispatch(
                    window, appointment, details, admin
                )

    async def _notify_participants(
        self,
        window: ReminderWindow,
        appointment: Appointment,
        details: AppointmentDetails,
    ) -> int:
        """Email and push the client and the barber.

        Returns:
            Number of emails dispatched
        """
        dispatched = 0
        client = appointment.client
        barber_user = appointment.barber.user if appointment.barber else None
        push_data = {"appointmentId": details.appointment_id}

        for role, user in ((RecipientRole.CLIENT, client), (RecipientRole.BARBER, barber_user)):
            if user is None:
                continue

            if user.email:
                await self.email.send(user.email, window, role, details)
                dispatched += 1

            await self.push.send_to_user(
                user.id,
                render_push(window, role, details),
                url=f"/appointments/{details.appointment_id}",
                data=push_data,
            )

        return dispatched

    async def _process_thank_you(self, time_range: TimeRange, summary: RunSummary) -> None:
        candidates = await self.store.find_candidates(
            (AppointmentStatus.COMPLETED,), time_range, [ReminderFlag.THANK_YOU]
        )
        summary.record_candidates(ReminderWindow.THANK_YOU, len(candidates))
        logger.info(f"Found {len(candidates)} completed appointments needing thank-you")

        for appointment in candidates:
            client = appointment.client
            if client is None or not client.email:
                # Nothing can ever be sent; stop re-evaluating it
                await self.store.set_flag(appointment.id, ReminderFlag.THANK_YOU)
                continue

            if not await self.claims.try_claim(appointment.id, ReminderFlag.THANK_YOU):
                continue

            details = AppointmentDetails.from_appointment(appointment, self.tz)
            await self.email.send(
                client.email, ReminderWindow.THANK_YOU, RecipientRole.CLIENT, details
            )
            summary.sent_count += 1


def build_orchestrator(
    settings: Optional[Settings] = None,
    session_factory=None,
) -> ReminderOrchestrator:
    """Wire an orchestrator from settings with the real providers."""
    settings = settings or get_settings()
    session_factory = session_factory or async_session_factory

    timeout = settings.provider_timeout_seconds
    store = AppointmentStore(session_factory)

    return ReminderOrchestrator(
        store=store,
        claims=ClaimCoordinator(store),
        email=EmailDispatcher(
            SmtpEmailProvider(SmtpConfig.from_settings(settings), timeout=timeout),
            timeout=timeout,
        ),
        push=PushDispatcher(
            WebPushProvider(VapidConfig.from_settings(settings), timeout=timeout),
            PushSubscriptionStore(session_factory),
            timeout=timeout,
        ),
        sms=SmsDispatcher(
            TwilioSmsProvider(TwilioConfig.from_settings(settings), timeout=timeout),
            timeout=timeout,
        ),
        tz=ZoneInfo(settings.business_timezone),
    )


# Singleton
_orchestrator: Optional[ReminderOrchestrator] = None


def get_orchestrator() -> ReminderOrchestrator:
    """Get singleton ReminderOrchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator()
    return _orchestrator


async def close_orchestrator() -> None:
    """Close provider clients held by the singleton, if any."""
    global _orchestrator
    if _orchestrator is not None:
        await _orchestrator.close()
        _orchestrator = None
