"""Shared fixtures: a throwaway SQLite database and seeding helpers."""

from datetime import datetime, timezone
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from reminder_service.infra.sms import SmsResult
from reminder_service.models.database import (
    Appointment,
    AppointmentStatus,
    Barber,
    Base,
    PushSubscription,
    Service,
    User,
    UserRole,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
NOW_NAIVE = NOW.replace(tzinfo=None)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Session factory bound to a fresh SQLite file with all tables."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'reminders.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def seed(session_factory):
    """Insert ORM objects and return them."""

    async def _seed(*objects):
        async with session_factory() as session:
            async with session.begin():
                session.add_all(objects)
        return objects

    return _seed


@pytest.fixture
def make_appointment(seed):
    """Create a client, barber, service and appointment in one go."""

    async def _make(
        date: datetime,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
        client_email: Optional[str] = "a@x.com",
        client_phone: Optional[str] = None,
        barber_email: Optional[str] = "b@x.com",
        barber_phone: Optional[str] = None,
        with_client: bool = True,
        **flags,
    ) -> Appointment:
        client = None
        if with_client:
            client = User(name="Ana", email=client_email, phone=client_phone, role=UserRole.CLIENT)
        barber_user = User(name="Beto", email=barber_email, phone=barber_phone, role=UserRole.BARBER)
        barber = Barber(user=barber_user)
        service = Service(name="Haircut")
        appointment = Appointment(
            client=client,
            barber=barber,
            service=service,
            date=date,
            time="12:00 PM",
            status=status,
            **flags,
        )
        await seed(*[obj for obj in (client, barber_user, barber, service, appointment) if obj])
        return appointment

    return _make


@pytest.fixture
def subscribe(seed):
    """Register a push subscription for a user."""

    async def _subscribe(user_id, endpoint: str) -> PushSubscription:
        subscription = PushSubscription(
            user_id=user_id,
            endpoint=endpoint,
            p256dh="p256dh-key",
            auth="auth-key",
        )
        await seed(subscription)
        return subscription

    return _subscribe


@pytest.fixture
def email_provider():
    """Email provider that accepts everything."""
    provider = MagicMock()
    provider.send = AsyncMock(return_value=None)
    return provider


@pytest.fixture
def push_provider():
    """Configured push provider that accepts everything."""
    provider = MagicMock()
    provider.is_configured.return_value = True
    provider.send = AsyncMock(return_value=None)
    return provider


@pytest.fixture
def sms_provider():
    """Configured SMS provider that accepts everything."""
    provider = MagicMock()
    provider.is_configured.return_value = True
    provider.send = AsyncMock(
        return_value=SmsResult(success=True, provider_message_id="SM123", status="queued")
    )
    return provider
