"""
Claim Coordinator.

Idempotency gate in front of every dispatch: a channel is only notified
after this run wins the flag for (appointment, window, channel). Claiming
and marking as handled are the same atomic update, so overlapping runs
need no external lock.
"""

import logging
import uuid

from reminder_service.core.reminders.store import AppointmentStore
from reminder_service.models.database import ReminderFlag

logger = logging.getLogger(__name__)


class ClaimCoordinator:
    """Wraps the store's conditional update into a yes/no claim."""

    def __init__(self, store: AppointmentStore):
        self.store = store

    async def try_claim(self, appointment_id: uuid.UUID, flag: ReminderFlag) -> bool:
        """Claim a flag for this run.

        A False result means a concurrent or earlier run already handled
        this appointment for the flag. Callers skip it silently.
        """
        claimed = await self.store.try_claim(appointment_id, flag)
        if not claimed:
            logger.debug(
                f"Appointment {appointment_id} already claimed for {flag.value}; skipping"
            )
        return claimed
