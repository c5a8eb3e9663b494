"""
Reminder message templates.

Builds the email, push and SMS content for every (window, recipient role)
combination from a flattened view of the appointment.
"""

from dataclasses import dataclass
from datetime import timezone
from enum import Enum
from html import escape
from typing import Optional
from zoneinfo import ZoneInfo

from reminder_service.core.reminders.windows import ReminderWindow
from reminder_service.models.database import Appointment


class RecipientRole(str, Enum):
    """Who a message is addressed to."""
    CLIENT = "client"
    BARBER = "barber"
    ADMIN = "admin"


@dataclass
class AppointmentDetails:
    """Display-ready appointment fields with placeholder defaults."""

    appointment_id: str
    client_name: str
    barber_name: str
    service_name: str
    date: str
    time: str

    @classmethod
    def from_appointment(cls, appointment: Appointment, tz: ZoneInfo) -> "AppointmentDetails":
        """Flatten an appointment, tolerating missing client, barber or service."""
        client = appointment.client
        barber_user = appointment.barber.user if appointment.barber else None
        local_start = appointment.date.replace(tzinfo=timezone.utc).astimezone(tz)

        return cls(
            appointment_id=str(appointment.id),
            client_name=(client.name if client else None) or "Client",
            barber_name=(barber_user.name if barber_user else None) or "Barber",
            service_name=(appointment.service.name if appointment.service else None) or "Service",
            # e.g. "Sunday, October 18, 2026"
            date=f"{local_start:%A}, {local_start:%B} {local_start.day}, {local_start.year}",
            time=appointment.time,
        )


@dataclass
class EmailContent:
    """Rendered email."""

    subject: str
    html: str


@dataclass
class PushContent:
    """Rendered push notification."""

    title: str
    body: str
    urgent: bool = False


# Subject lines by window and role
_EMAIL_SUBJECTS: dict[tuple[ReminderWindow, RecipientRole], str] = {
    (ReminderWindow.H24, RecipientRole.CLIENT): "⏰ Reminder: Your appointment is tomorrow",
    (ReminderWindow.H24, RecipientRole.BARBER): "⏰ Reminder: Appointment scheduled for tomorrow",
    (ReminderWindow.H12, RecipientRole.CLIENT): "⏰ Your appointment is in 12 hours",
    (ReminderWindow.H12, RecipientRole.BARBER): "⏰ Appointment in 12 hours",
    (ReminderWindow.H2, RecipientRole.CLIENT): "⏰ Your appointment is in 2 hours",
    (ReminderWindow.H2, RecipientRole.BARBER): "⏰ Appointment in 2 hours",
    (ReminderWindow.M30, RecipientRole.CLIENT): "🚨 URGENT: Your appointment is in 30 minutes",
    (ReminderWindow.M30, RecipientRole.BARBER): "🚨 Appointment in 30 minutes",
    (ReminderWindow.THANK_YOU, RecipientRole.CLIENT): "💈 Thank you for your visit!",
}

_WHEN_PHRASES = {
    ReminderWindow.H24: "tomorrow",
    ReminderWindow.H12: "in 12 hours",
    ReminderWindow.H2: "in 2 hours",
    ReminderWindow.M30: "in 30 minutes",
}

_ACCENT_COLORS = {
    ReminderWindow.H24: "#00f0ff",
    ReminderWindow.H12: "#00f0ff",
    ReminderWindow.H2: "#f59e0b",
    ReminderWindow.M30: "#ef4444",
}


def _counterpart(role: RecipientRole, details: AppointmentDetails) -> tuple[str, str]:
    """Return (recipient name, name of the other party) for a role."""
    if role == RecipientRole.BARBER:
        return details.barber_name, details.client_name
    return details.client_name, details.barber_name


def _reminder_html(window: ReminderWindow, role: RecipientRole, details: AppointmentDetails) -> str:
    name, other = _counterpart(role, details)
    other_label = "Client" if role == RecipientRole.BARBER else "Barber"
    accent = _ACCENT_COLORS[window]
    urgent_banner = ""
    if window == ReminderWindow.M30:
        urgent_banner = (
            f'<p style="font-size: 16px; color: #ffffff; background-color: {accent}; '
            f'padding: 15px; border-radius: 8px; text-align: center;">'
            f"<strong>Time to head out! Your appointment starts at {escape(details.time)}</strong></p>"
        )

    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #0a0a0a; color: #ffffff;">
      <div style="background: {accent}; padding: 30px; border-radius: 10px 10px 0 0; text-align: center;">
        <h1 style="color: #000; margin: 0;">✂️ Appointment Reminder</h1>
      </div>
      <div style="background-color: #1a1a1a; padding: 30px; border-radius: 0 0 10px 10px;">
        <p style="font-size: 18px; color: {accent};">Hi {escape(name)},</p>
        <p style="font-size: 16px; line-height: 1.6; color: #cccccc;">
          This is a reminder that you have an appointment <strong>{_WHEN_PHRASES[window]}</strong>:
        </p>
        {urgent_banner}
        <div style="background-color: #0a0a0a; padding: 20px; border-left: 4px solid {accent}; margin: 20px 0;">
          <p style="margin: 5px 0;"><strong>Service:</strong> {escape(details.service_name)}</p>
          <p style="margin: 5px 0;"><strong>{other_label}:</strong> {escape(other)}</p>
          <p style="margin: 5px 0;"><strong>Date:</strong> {escape(details.date)}</p>
          <p style="margin: 5px 0;"><strong>Time:</strong> {escape(details.time)}</p>
        </div>
        <p style="font-size: 14px; color: #888888;">
          If you need to cancel or reschedule, please let us know as soon as possible.
        </p>
      </div>
    </div>
    """


def _thank_you_html(details: AppointmentDetails) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #0a0a0a; color: #ffffff;">
      <div style="background: #00f0ff; padding: 30px; border-radius: 10px 10px 0 0; text-align: center;">
        <h1 style="color: #000; margin: 0;">💈 Thank you for your visit!</h1>
      </div>
      <div style="background-color: #1a1a1a; padding: 30px; border-radius: 0 0 10px 10px;">
        <p style="font-size: 18px; color: #00f0ff;">Hi {escape(details.client_name)},</p>
        <p style="font-size: 16px; line-height: 1.6; color: #cccccc;">
          Thanks for choosing us. We hope you enjoyed your
          <strong>{escape(details.service_name)}</strong> with
          <strong>{escape(details.barber_name)}</strong>.
        </p>
        <p style="font-size: 16px; color: #ffd700; text-align: center;">⭐ ⭐ ⭐ ⭐ ⭐</p>
        <p style="color: #cccccc; text-align: center;">Would you leave us a review? It helps us improve.</p>
        <p style="font-size: 14px; color: #888888;">See you next time. Book your next appointment any time!</p>
      </div>
    </div>
    """


def render_email(
    window: ReminderWindow,
    role: RecipientRole,
    details: AppointmentDetails,
) -> EmailContent:
    """Render the email for a window and recipient role.

    Raises:
        KeyError: If the combination has no email (e.g. barber thank-you)
    """
    subject = _EMAIL_SUBJECTS[(window, role)]
    if window == ReminderWindow.THANK_YOU:
        return EmailContent(subject=subject, html=_thank_you_html(details))
    return EmailContent(subject=subject, html=_reminder_html(window, role, details))


def render_push(
    window: ReminderWindow,
    role: RecipientRole,
    details: AppointmentDetails,
) -> PushContent:
    """Render the push notification for a timed window and recipient role."""
    _, other = _counterpart(role, details)
    time = details.time
    to_client = role == RecipientRole.CLIENT

    if window == ReminderWindow.H24:
        body = (
            f"Your appointment with {other} is tomorrow at {time}"
            if to_client
            else f"Appointment with {other} is tomorrow at {time}"
        )
        return PushContent(title="⏰ Appointment Reminder", body=body)

    if window == ReminderWindow.H12:
        body = (
            f"Your appointment with {other} is in 12 hours ({time})"
            if to_client
            else f"Appointment with {other} is in 12 hours ({time})"
        )
        return PushContent(title="⏰ Appointment Reminder", body=body)

    if window == ReminderWindow.H2:
        body = (
            f"Your appointment with {other} is in 2 hours ({time})"
            if to_client
            else f"Appointment with {other} is in 2 hours ({time})"
        )
        return PushContent(title="⏰ Upcoming Appointment", body=body)

    if window == ReminderWindow.M30:
        if to_client:
            return PushContent(
                title="🚨 URGENT: Appointment in 30 Minutes",
                body=f"Your appointment with {other} is at {time}. Please don't be late!",
                urgent=True,
            )
        return PushContent(
            title="🚨 Imminent Appointment",
            body=f"Appointment with {other} in 30 minutes ({time})",
            urgent=True,
        )

    raise ValueError(f"No push notification for window {window.value}")


def render_sms(
    window: ReminderWindow,
    role: RecipientRole,
    details: AppointmentDetails,
) -> Optional[str]:
    """Render the SMS text, or None when the combination sends no SMS."""
    if window == ReminderWindow.H24 and role == RecipientRole.CLIENT:
        return (
            f"Hi {details.client_name}, reminder: {details.service_name} with "
            f"{details.barber_name} tomorrow ({details.date}) at {details.time}. "
            f"Reply YES to confirm or NO to cancel."
        )

    if window == ReminderWindow.H2:
        if role == RecipientRole.CLIENT:
            return (
                f"Hi {details.client_name}, your appointment with {details.barber_name} "
                f"is in 2 hours ({details.time}). See you soon!"
            )
        if role == RecipientRole.BARBER:
            return (
                f"Reminder: {details.service_name} with {details.client_name} "
                f"in 2 hours ({details.time})."
            )
        return (
            f"Upcoming: {details.client_name} with {details.barber_name} "
            f"({details.service_name}) in 2 hours at {details.time}."
        )

    return None
