"""
Twilio SMS Provider

Sends SMS through the Twilio Messages REST API using httpx.

Nothing is sent unless TWILIO_SMS_ENABLED is true and account SID, auth
token and sender number are all present.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from reminder_service.config import Settings

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
PLACEHOLDER_ACCOUNT_SID = "placeholder-twilio-account-sid"


@dataclass(frozen=True)
class TwilioConfig:
    """Twilio credentials and sender."""

    account_sid: Optional[str]
    auth_token: Optional[str]
    from_number: Optional[str]
    enabled: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "TwilioConfig":
        """Build config from settings."""
        return cls(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_phone_number,
            enabled=settings.twilio_sms_enabled,
        )

    @property
    def has_credentials(self) -> bool:
        """Check for a usable account SID and auth token."""
        return bool(
            self.account_sid
            and self.auth_token
            and self.account_sid != PLACEHOLDER_ACCOUNT_SID
        )

    def missing_reason(self) -> Optional[str]:
        """Explain why SMS cannot be sent, or None when it can."""
        if not self.enabled:
            return "SMS disabled via TWILIO_SMS_ENABLED"
        if not self.has_credentials:
            return "Twilio credentials not configured"
        if not self.from_number:
            return "TWILIO_PHONE_NUMBER not configured"
        return None


@dataclass
class SmsResult:
    """Outcome of an SMS send."""

    success: bool
    provider_message_id: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None


def normalize_phone_number(phone: str) -> str:
    """Normalize a phone number towards E.164.

    Numbers already starting with "+" are kept. Ten-digit numbers, and
    eleven-digit numbers starting with 1, are treated as US numbers.
    Anything else is returned trimmed and unchanged.
    """
    trimmed = str(phone or "").strip()
    if not trimmed or trimmed.startswith("+"):
        return trimmed

    digits = re.sub(r"\D", "", trimmed)
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"

    return trimmed


class TwilioSmsProvider:
    """SMS provider using the Twilio REST API."""

    def __init__(self, config: TwilioConfig, timeout: float = 10.0):
        """Initialize provider.

        Args:
            config: Twilio settings
            timeout: Request timeout in seconds
        """
        self.config = config
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    def is_configured(self) -> bool:
        """Check whether SMS can be sent at all."""
        return self.config.missing_reason() is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=TWILIO_API_BASE,
                auth=(self.config.account_sid, self.config.auth_token),
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send(self, to: str, body: str) -> SmsResult:
        """Send an SMS.

        Args:
            to: Recipient phone number (normalized before sending)
            body: Message text

        Returns:
            SmsResult with the Twilio message SID on success
        """
        reason = self.config.missing_reason()
        if reason:
            logger.warning(f"{reason}; skipping SMS")
            return SmsResult(success=False, error=reason)

        client = await self._get_client()

        try:
            response = await client.post(
                f"/Accounts/{self.config.account_sid}/Messages.json",
                data={
                    "To": normalize_phone_number(to),
                    "From": self.config.from_number,
                    "Body": body,
                },
            )
            response.raise_for_status()

        except httpx.HTTPStatusError as e:
            detail = e.response.text
            logger.error(f"Twilio rejected SMS ({e.response.status_code}): {detail}")
            return SmsResult(success=False, error=detail or str(e))

        except httpx.HTTPError as e:
            logger.error(f"Failed to send SMS: {e}")
            return SmsResult(success=False, error=str(e))

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            # 2xx without a Twilio message resource, e.g. a proxy page
            logger.error(f"Unexpected Twilio response ({response.status_code}): {response.text[:200]}")
            return SmsResult(
                success=False,
                status=str(response.status_code),
                error="Unexpected response from Twilio",
            )

        logger.info(f"SMS sent successfully: {data.get('sid')}")
        return SmsResult(
            success=True,
            provider_message_id=data.get("sid"),
            status=data.get("status"),
        )
