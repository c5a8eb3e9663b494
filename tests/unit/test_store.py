"""Tests for the appointment store, claim coordinator and push subscription store."""

import asyncio
import uuid
from datetime import timedelta

import pytest

from reminder_service.core.reminders.claims import ClaimCoordinator
from reminder_service.core.reminders.store import AppointmentStore, PushSubscriptionStore
from reminder_service.core.reminders.windows import ReminderWindow, compute_window
from reminder_service.models.database import (
    Appointment,
    AppointmentStatus,
    ReminderFlag,
    User,
    UserRole,
)

from tests.conftest import NOW, NOW_NAIVE

UPCOMING = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)


async def load_appointment(session_factory, appointment_id) -> Appointment:
    async with session_factory() as session:
        return await session.get(Appointment, appointment_id)


class TestFindCandidates:
    """Test candidate queries."""

    @pytest.fixture
    def store(self, session_factory):
        return AppointmentStore(session_factory)

    @pytest.mark.asyncio
    async def test_window_boundaries(self, store, make_appointment):
        """Test start and end are inclusive and anything outside is not."""
        window = compute_window(ReminderWindow.H24, NOW)
        at_start = await make_appointment(window.start)
        at_end = await make_appointment(window.end)
        await make_appointment(window.start - timedelta(seconds=1))
        await make_appointment(window.end + timedelta(seconds=1))

        candidates = await store.find_candidates(
            UPCOMING, window, [ReminderFlag.NOTIFICATION_24H]
        )

        assert {a.id for a in candidates} == {at_start.id, at_end.id}

    @pytest.mark.asyncio
    async def test_status_filter(self, store, make_appointment):
        """Test only eligible statuses are returned."""
        window = compute_window(ReminderWindow.H2, NOW)
        pending = await make_appointment(window.start, status=AppointmentStatus.PENDING)
        confirmed = await make_appointment(window.start, status=AppointmentStatus.CONFIRMED)
        await make_appointment(window.start, status=AppointmentStatus.CANCELLED)
        await make_appointment(window.start, status=AppointmentStatus.NO_SHOW)

        candidates = await store.find_candidates(
            UPCOMING, window, [ReminderFlag.NOTIFICATION_2H]
        )

        assert {a.id for a in candidates} == {pending.id, confirmed.id}

    @pytest.mark.asyncio
    async def test_any_flag_still_false(self, store, make_appointment):
        """Test an appointment stays a candidate while any relevant flag is unset."""
        window = compute_window(ReminderWindow.H24, NOW)
        sms_pending = await make_appointment(window.start, notification_24h_sent=True)
        await make_appointment(window.start, notification_24h_sent=True, sms_24h_sent=True)

        candidates = await store.find_candidates(
            UPCOMING, window, [ReminderFlag.NOTIFICATION_24H, ReminderFlag.SMS_24H]
        )

        assert [a.id for a in candidates] == [sms_pending.id]

    @pytest.mark.asyncio
    async def test_relations_loaded(self, store, make_appointment):
        """Test client, barber user and service are usable after the session closes."""
        window = compute_window(ReminderWindow.H12, NOW)
        await make_appointment(window.start)

        [candidate] = await store.find_candidates(
            UPCOMING, window, [ReminderFlag.NOTIFICATION_12H]
        )

        assert candidate.client.email == "a@x.com"
        assert candidate.barber.user.email == "b@x.com"
        assert candidate.service.name == "Haircut"


class TestClaims:
    """Test the conditional update used as the claim primitive."""

    @pytest.fixture
    def store(self, session_factory):
        return AppointmentStore(session_factory)

    @pytest.mark.asyncio
    async def test_first_claim_wins(self, store, make_appointment, session_factory):
        """Test a claim succeeds once and sets the flag."""
        appointment = await make_appointment(NOW_NAIVE)

        assert await store.try_claim(appointment.id, ReminderFlag.NOTIFICATION_24H) is True
        assert await store.try_claim(appointment.id, ReminderFlag.NOTIFICATION_24H) is False

        stored = await load_appointment(session_factory, appointment.id)
        assert stored.notification_24h_sent is True
        assert stored.sms_24h_sent is False

    @pytest.mark.asyncio
    async def test_flags_independent(self, store, make_appointment):
        """Test each flag is claimed independently."""
        appointment = await make_appointment(NOW_NAIVE)

        assert await store.try_claim(appointment.id, ReminderFlag.NOTIFICATION_2H)
        assert await store.try_claim(appointment.id, ReminderFlag.SMS_2H)

    @pytest.mark.asyncio
    async def test_unknown_appointment(self, store):
        """Test claiming a missing appointment returns False."""
        assert await store.try_claim(uuid.uuid4(), ReminderFlag.THANK_YOU) is False

    @pytest.mark.asyncio
    async def test_concurrent_claims_single_winner(self, store, make_appointment):
        """Test overlapping claims on the same flag produce exactly one winner."""
        appointment = await make_appointment(NOW_NAIVE)

        results = await asyncio.gather(
            *(store.try_claim(appointment.id, ReminderFlag.SMS_24H) for _ in range(5))
        )

        assert results.count(True) == 1

    @pytest.mark.asyncio
    async def test_set_flag_is_monotonic(self, store, make_appointment, session_factory):
        """Test set_flag only ever writes True and can be repeated."""
        appointment = await make_appointment(NOW_NAIVE, thank_you_sent=True)

        await store.set_flag(appointment.id, ReminderFlag.THANK_YOU)
        await store.set_flag(appointment.id, ReminderFlag.THANK_YOU)

        stored = await load_appointment(session_factory, appointment.id)
        assert stored.thank_you_sent is True
        assert await store.try_claim(appointment.id, ReminderFlag.THANK_YOU) is False

    @pytest.mark.asyncio
    async def test_coordinator_reports_conflict(self, store, make_appointment):
        """Test the coordinator passes through the store's answer."""
        appointment = await make_appointment(NOW_NAIVE)
        coordinator = ClaimCoordinator(store)

        assert await coordinator.try_claim(appointment.id, ReminderFlag.NOTIFICATION_30M)
        assert not await coordinator.try_claim(appointment.id, ReminderFlag.NOTIFICATION_30M)


class TestAdminLookup:
    """Test administrator lookup."""

    @pytest.mark.asyncio
    async def test_no_admin(self, session_factory):
        """Test None when no admin exists."""
        assert await AppointmentStore(session_factory).find_admin_user() is None

    @pytest.mark.asyncio
    async def test_finds_admin(self, session_factory, seed):
        """Test the admin is found among other users."""
        await seed(
            User(name="Client", role=UserRole.CLIENT),
            User(name="Owner", phone="+15550000000", role=UserRole.ADMIN),
        )

        admin = await AppointmentStore(session_factory).find_admin_user()

        assert admin.name == "Owner"
        assert admin.phone == "+15550000000"


class TestPushSubscriptionStore:
    """Test push subscription lookup and deletion."""

    @pytest.mark.asyncio
    async def test_list_and_delete(self, session_factory, seed, subscribe):
        """Test listing by user and deleting one subscription."""
        user, other = User(name="Ana"), User(name="Other")
        await seed(user, other)
        first = await subscribe(user.id, "https://push.example/1")
        await subscribe(user.id, "https://push.example/2")
        await subscribe(other.id, "https://push.example/3")
        store = PushSubscriptionStore(session_factory)

        assert len(await store.list_for_user(user.id)) == 2

        assert await store.delete(first.id) is True
        assert await store.delete(first.id) is False

        remaining = await store.list_for_user(user.id)
        assert [s.endpoint for s in remaining] == ["https://push.example/2"]
