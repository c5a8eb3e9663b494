"""
Appointment and Push Subscription stores.

Thin async SQLAlchemy wrappers around the only tables the reminder engine
touches. Every call runs in its own short transaction: there is no
run-wide transaction, so a crash mid-run keeps whatever was already
claimed.
"""

import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy import delete, false, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from reminder_service.core.reminders.windows import TimeRange
from reminder_service.models.database import (
    Appointment,
    AppointmentStatus,
    Barber,
    PushSubscription,
    ReminderFlag,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)


def _flag_column(flag: ReminderFlag):
    """Resolve a reminder flag to its mapped column."""
    return getattr(Appointment, flag.value)


class AppointmentStore:
    """
    Reads reminder candidates and records per-channel "sent" flags.

    The conditional update in ``try_claim`` is the only concurrency
    primitive in the engine.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_candidates(
        self,
        statuses: Iterable[AppointmentStatus],
        time_range: TimeRange,
        flags: Iterable[ReminderFlag],
    ) -> list[Appointment]:
        """Find appointments in a window with at least one flag still unset.

        Args:
            statuses: Eligible appointment statuses
            time_range: Inclusive range of appointment start instants
            flags: Flags relevant to the window

        Returns:
            Appointments with client, barber (and its user) and service loaded
        """
        pending = [_flag_column(flag) == false() for flag in flags]

        stmt = (
            select(Appointment)
            .where(
                Appointment.status.in_(list(statuses)),
                Appointment.date >= time_range.start,
                Appointment.date <= time_range.end,
                or_(*pending),
            )
            .options(
                selectinload(Appointment.client),
                selectinload(Appointment.barber).selectinload(Barber.user),
                selectinload(Appointment.service),
            )
            .order_by(Appointment.date)
        )

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def try_claim(self, appointment_id: uuid.UUID, flag: ReminderFlag) -> bool:
        """Atomically flip a flag from False to True.

        Returns:
            True if this call set the flag, False if it was already set
        """
        column = _flag_column(flag)
        stmt = (
            update(Appointment)
            .where(Appointment.id == appointment_id, column == false())
            .values({flag.value: True})
            .execution_options(synchronize_session=False)
        )

        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(stmt)
        return result.rowcount == 1

    async def set_flag(self, appointment_id: uuid.UUID, flag: ReminderFlag) -> None:
        """Set a flag to True unconditionally. Flags are never reset."""
        stmt = (
            update(Appointment)
            .where(Appointment.id == appointment_id)
            .values({flag.value: True})
            .execution_options(synchronize_session=False)
        )

        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(stmt)

    async def find_admin_user(self) -> Optional[User]:
        """Return the administrator account, if one exists."""
        stmt = (
            select(User)
            .where(User.role == UserRole.ADMIN)
            .order_by(User.created_at)
            .limit(1)
        )

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalars().first()


class PushSubscriptionStore:
    """Push subscriptions keyed by user id."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list_for_user(self, user_id: uuid.UUID) -> list[PushSubscription]:
        """List every subscription a user registered."""
        stmt = select(PushSubscription).where(PushSubscription.user_id == user_id)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def delete(self, subscription_id: uuid.UUID) -> bool:
        """Delete a subscription.

        Returns:
            True if a row was removed, False if it was already gone
        """
        stmt = delete(PushSubscription).where(PushSubscription.id == subscription_id)

        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(stmt)
        return result.rowcount > 0
