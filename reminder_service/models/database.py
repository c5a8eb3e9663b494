"""
Database Models

SQLAlchemy ORM models for the barbershop reminder service.

Only the tables the reminder engine reads or writes are mapped here; the
booking application owns the rest of the schema.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, List

from sqlalchemy import (
    Boolean, DateTime, ForeignKey, Index, String, Text, Uuid,
    Enum as SQLEnum, text
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )


class UserRole(str, Enum):
    """User role enumeration."""
    CLIENT = "CLIENT"
    BARBER = "BARBER"
    ADMIN = "ADMIN"


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class ReminderFlag(str, Enum):
    """Per-channel "sent" flags on an appointment, by column name.

    Each flag starts False and is set True exactly once, when a dispatch
    attempt for its channel and window is claimed.
    """
    NOTIFICATION_24H = "notification_24h_sent"
    SMS_24H = "sms_24h_sent"
    NOTIFICATION_12H = "notification_12h_sent"
    NOTIFICATION_2H = "notification_2h_sent"
    SMS_2H = "sms_2h_sent"
    NOTIFICATION_30M = "notification_30m_sent"
    THANK_YOU = "thank_you_sent"


class User(Base, TimestampMixin):
    """
    User model.

    Clients, barbers and the administrator are all users; an appointment's
    client is referenced by user id.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("idx_user_role", "role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole),
        default=UserRole.CLIENT
    )

    # Relationships
    push_subscriptions: Mapped[List["PushSubscription"]] = relationship(
        "PushSubscription",
        back_populates="user"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name='{self.name}', role={self.role.value})>"


class Barber(Base, TimestampMixin):
    """Barber profile. Contact details live on the linked user."""

    __tablename__ = "barbers"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    user: Mapped["User"] = relationship("User")

    def __repr__(self) -> str:
        return f"<Barber(id={self.id}, user_id={self.user_id})>"


class Service(Base, TimestampMixin):
    """Bookable service (haircut, beard trim, ...)."""

    __tablename__ = "services"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name='{self.name}')>"


class Appointment(Base, TimestampMixin):
    """
    Appointment model.

    ``date`` holds the start instant (naive UTC); ``time`` is the clock
    label shown to people, e.g. "10:30 AM".
    """

    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointment_date_status", "date", "status"),
        Index("idx_appointment_client", "client_id"),
        Index("idx_appointment_barber", "barber_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    barber_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("barbers.id", ondelete="SET NULL"),
        nullable=True
    )
    service_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("services.id", ondelete="SET NULL"),
        nullable=True
    )
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    time: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        SQLEnum(AppointmentStatus),
        default=AppointmentStatus.PENDING
    )

    notification_24h_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sms_24h_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notification_12h_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notification_2h_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sms_2h_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notification_30m_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    thank_you_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    client: Mapped[Optional["User"]] = relationship("User")
    barber: Mapped[Optional["Barber"]] = relationship("Barber")
    service: Mapped[Optional["Service"]] = relationship("Service")

    def is_flag_set(self, flag: ReminderFlag) -> bool:
        """Return the loaded value of a reminder flag."""
        return bool(getattr(self, flag.value))

    def __repr__(self) -> str:
        return (
            f"<Appointment(id={self.id}, client_id={self.client_id}, "
            f"barber_id={self.barber_id}, date={self.date}, "
            f"status={self.status.value})>"
        )


class PushSubscription(Base, TimestampMixin):
    """
    Web Push subscription.

    Created when a user opts in from a browser; deleted by the push
    dispatcher once the push service reports the endpoint as gone.
    """

    __tablename__ = "push_subscriptions"
    __table_args__ = (
        Index("idx_push_subscription_user", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    endpoint: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    p256dh: Mapped[str] = mapped_column(String(255), nullable=False)
    auth: Mapped[str] = mapped_column(String(255), nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="push_subscriptions")

    def to_subscription_info(self) -> dict:
        """Return the subscription in the shape Web Push clients expect."""
        return {
            "endpoint": self.endpoint,
            "keys": {
                "p256dh": self.p256dh,
                "auth": self.auth,
            },
        }

    def __repr__(self) -> str:
        return f"<PushSubscription(id={self.id}, user_id={self.user_id})>"
