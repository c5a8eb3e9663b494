"""
Channel Dispatchers.

Email, push and SMS dispatchers. Each is only invoked after the
orchestrator has claimed the matching flag, and none of them propagates
a delivery failure: failures are logged and the flag stays claimed.
"""

import asyncio
import json
import logging
import uuid
from typing import Optional, Protocol

from reminder_service.core.reminders.store import PushSubscriptionStore
from reminder_service.core.reminders.templates import (
    AppointmentDetails,
    PushContent,
    RecipientRole,
    render_email,
    render_sms,
)
from reminder_service.core.reminders.windows import ReminderWindow
from reminder_service.errors import ConfigurationError, DeliveryError, StaleEndpointError
from reminder_service.infra.sms import SmsResult
from reminder_service.models.database import (
    Appointment,
    AppointmentStatus,
    PushSubscription,
    User,
)

logger = logging.getLogger(__name__)

PUSH_ICON = "/icon-192.png"
PUSH_BADGE = "/icon-96.png"


class EmailProvider(Protocol):
    async def send(self, to: str, subject: str, body: str) -> None: ...


class SmsProvider(Protocol):
    def is_configured(self) -> bool: ...

    async def send(self, to: str, body: str) -> SmsResult: ...

    async def close(self) -> None: ...


class PushProvider(Protocol):
    def is_configured(self) -> bool: ...

    async def send(self, subscription_info: dict, payload: str) -> None: ...


class EmailDispatcher:
    """Formats and sends one reminder email per recipient role."""

    def __init__(self, provider: EmailProvider, timeout: float = 10.0):
        self.provider = provider
        self.timeout = timeout

    async def send(
        self,
        to: str,
        window: ReminderWindow,
        role: RecipientRole,
        details: AppointmentDetails,
    ) -> bool:
        """Send a reminder email.

        Returns:
            True if the provider accepted the message
        """
        content = render_email(window, role, details)

        try:
            await asyncio.wait_for(
                self.provider.send(to, content.subject, content.html),
                timeout=self.timeout,
            )
        except ConfigurationError as e:
            logger.warning(
                f"Email skipped for appointment {details.appointment_id} "
                f"({window.value}, {role.value}): {e}"
            )
            return False
        except asyncio.TimeoutError:
            logger.error(
                f"Email to {to} timed out after {self.timeout}s "
                f"(appointment {details.appointment_id}, {window.value})"
            )
            return False
        except DeliveryError as e:
            logger.error(
                f"Email to {to} failed (appointment {details.appointment_id}, "
                f"{window.value}): {e}"
            )
            return False
        except Exception as e:
            logger.error(
                f"Unexpected email provider error (appointment {details.appointment_id}, "
                f"{window.value}): {e}",
                exc_info=True,
            )
            return False

        return True


class PushDispatcher:
    """
    Fans a push notification out to every subscription of a user.

    Subscriptions are delivered concurrently and independently. An
    endpoint the push service reports as gone is deleted.
    """

    def __init__(
        self,
        provider: PushProvider,
        subscriptions: PushSubscriptionStore,
        timeout: float = 10.0,
    ):
        self.provider = provider
        self.subscriptions = subscriptions
        self.timeout = timeout

    @staticmethod
    def build_payload(
        content: PushContent,
        url: str,
        data: Optional[dict] = None,
    ) -> str:
        """Serialize the push payload, echoing the deep link and urgency inside data."""
        payload_data = {**(data or {}), "url": url}
        if content.urgent:
            payload_data["urgent"] = True

        return json.dumps({
            "title": content.title,
            "body": content.body,
            "icon": PUSH_ICON,
            "badge": PUSH_BADGE,
            "url": url,
            "data": payload_data,
        })

    async def send_to_user(
        self,
        user_id: uuid.UUID,
        content: PushContent,
        url: str = "/",
        data: Optional[dict] = None,
    ) -> int:
        """Send a notification to all of a user's subscriptions.

        Returns:
            Number of subscriptions that accepted the message
        """
        if not self.provider.is_configured():
            logger.debug("Web push not configured; skipping push")
            return 0

        subscriptions = await self.subscriptions.list_for_user(user_id)
        if not subscriptions:
            return 0

        payload = self.build_payload(content, url, data)
        results = await asyncio.gather(
            *(self._deliver(subscription, payload) for subscription in subscriptions)
        )

        failed = results.count(False)
        if failed:
            logger.warning(f"Push failed for {failed} subscription(s) (user_id={user_id})")
        return results.count(True)

    async def _deliver(self, subscription: PushSubscription, payload: str) -> bool:
        try:
            await asyncio.wait_for(
                self.provider.send(subscription.to_subscription_info(), payload),
                timeout=self.timeout,
            )
        except StaleEndpointError as e:
            await self.subscriptions.delete(subscription.id)
            logger.info(
                f"Removed stale push subscription {subscription.id} "
                f"(user_id={subscription.user_id}, status={e.status_code})"
            )
            return False
        except asyncio.TimeoutError:
            logger.warning(f"Push to subscription {subscription.id} timed out")
            return False
        except (ConfigurationError, DeliveryError) as e:
            logger.warning(f"Push to subscription {subscription.id} failed: {e}")
            return False
        except Exception as e:
            logger.error(
                f"Unexpected push provider error (subscription {subscription.id}): {e}",
                exc_info=True,
            )
            return False

        return True


class SmsDispatcher:
    """
    Sends reminder SMS for the windows that have an SMS channel.

    24h: client only, and only while the appointment is still PENDING, as
    a confirmation request. 2h: client, barber and admin, each gated only
    by having a phone number.
    """

    def __init__(self, provider: SmsProvider, timeout: float = 10.0):
        self.provider = provider
        self.timeout = timeout

    def recipients(
        self,
        window: ReminderWindow,
        appointment: Appointment,
        admin: Optional[User],
    ) -> list[tuple[RecipientRole, str]]:
        """Resolve (role, phone) pairs that should receive an SMS."""
        barber_user = appointment.barber.user if appointment.barber else None
        phones: list[tuple[RecipientRole, Optional[str]]] = []

        if window == ReminderWindow.H24:
            if appointment.status == AppointmentStatus.PENDING:
                phones.append((RecipientRole.CLIENT, appointment.client.phone if appointment.client else None))
        elif window == ReminderWindow.H2:
            phones.append((RecipientRole.CLIENT, appointment.client.phone if appointment.client else None))
            phones.append((RecipientRole.BARBER, barber_user.phone if barber_user else None))
            phones.append((RecipientRole.ADMIN, admin.phone if admin else None))

        return [(role, phone) for role, phone in phones if phone]

    async def dispatch(
        self,
        window: ReminderWindow,
        appointment: Appointment,
        details: AppointmentDetails,
        admin: Optional[User] = None,
    ) -> int:
        """Send the SMS for a claimed window.

        Returns:
            Number of SMS the provider accepted
        """
        if not self.provider.is_configured():
            logger.info(
                f"SMS provider not configured; {window.value} SMS for appointment "
                f"{appointment.id} skipped"
            )
            return 0

        if window == ReminderWindow.H24 and appointment.status != AppointmentStatus.PENDING:
            logger.debug(
                f"Appointment {appointment.id} is {appointment.status.value}; "
                f"no 24h confirmation SMS"
            )
            return 0

        sent = 0
        for role, phone in self.recipients(window, appointment, admin):
            text = render_sms(window, role, details)
            if text and await self._send(phone, text, appointment.id, window, role):
                sent += 1
        return sent

    async def _send(
        self,
        phone: str,
        text: str,
        appointment_id: uuid.UUID,
        window: ReminderWindow,
        role: RecipientRole,
    ) -> bool:
        try:
            result = await asyncio.wait_for(
                self.provider.send(phone, text),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"SMS to {role.value} timed out (appointment {appointment_id}, {window.value})"
            )
            return False
        except Exception as e:
            logger.error(
                f"Unexpected SMS provider error for {role.value} "
                f"(appointment {appointment_id}, {window.value}): {e}",
                exc_info=True,
            )
            return False

        if not result.success:
            logger.error(
                f"SMS to {role.value} failed (appointment {appointment_id}, "
                f"{window.value}): {result.error}"
            )
            return False

        logger.info(
            f"{window.value} SMS sent to {role.value} for appointment {appointment_id} "
            f"({result.provider_message_id})"
        )
        return True
