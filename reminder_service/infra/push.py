"""
Web Push Provider

Delivers encrypted Web Push messages with VAPID authentication via
pywebpush. pywebpush is synchronous, so each send runs in a worker thread.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from py_vapid import Vapid
from pywebpush import WebPushException, webpush

from reminder_service.config import Settings
from reminder_service.errors import DeliveryError, StaleEndpointError

logger = logging.getLogger(__name__)

# Push services answer 404/410 for subscriptions that will never work again
STALE_STATUS_CODES = frozenset({404, 410})


def is_valid_private_key(private_key: str) -> bool:
    """Check that a VAPID private key can be loaded."""
    try:
        Vapid.from_string(private_key=private_key)
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class VapidConfig:
    """VAPID key pair and subject."""

    public_key: Optional[str]
    private_key: Optional[str]
    subject: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "VapidConfig":
        """Build config from settings.

        The subject must be an https URL or a mailto: address; the app URL
        is used when it is https, the contact email otherwise. A private
        key that cannot be loaded leaves push unconfigured.
        """
        if settings.app_url.startswith("https://"):
            subject = settings.app_url
        else:
            subject = f"mailto:{settings.vapid_email}"

        private_key = settings.vapid_private_key or None
        if private_key and not is_valid_private_key(private_key):
            logger.warning("VAPID_PRIVATE_KEY could not be loaded; web push disabled")
            private_key = None

        return cls(
            public_key=settings.vapid_public_key or None,
            private_key=private_key,
            subject=subject,
        )

    @property
    def is_configured(self) -> bool:
        """Check that both keys are present."""
        return bool(self.public_key and self.private_key)


class WebPushProvider:
    """Push provider speaking the Web Push protocol."""

    def __init__(self, config: VapidConfig, timeout: float = 10.0):
        self.config = config
        self.timeout = timeout

    def is_configured(self) -> bool:
        """Check whether VAPID keys are available."""
        return self.config.is_configured

    def _send_sync(self, subscription_info: dict, payload: str) -> None:
        webpush(
            subscription_info=subscription_info,
            data=payload,
            vapid_private_key=self.config.private_key,
            # pywebpush adds aud/exp to the claims dict, so pass a fresh one
            vapid_claims={"sub": self.config.subject},
            timeout=self.timeout,
        )

    async def send(self, subscription_info: dict, payload: str) -> None:
        """Send one push message.

        Args:
            subscription_info: {"endpoint": ..., "keys": {"p256dh": ..., "auth": ...}}
            payload: JSON payload

        Raises:
            StaleEndpointError: The push service reports the endpoint as gone
            DeliveryError: Any other push service, network or encoding failure
        """
        try:
            await asyncio.to_thread(self._send_sync, subscription_info, payload)
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            if status_code in STALE_STATUS_CODES:
                raise StaleEndpointError(
                    f"Push endpoint gone ({status_code})", status_code=status_code
                ) from e
            raise DeliveryError(f"Push delivery failed: {e}", status_code=status_code) from e
        except OSError as e:
            raise DeliveryError(f"Push delivery failed: {e}") from e
        except ValueError as e:
            # Unloadable VAPID key or malformed subscription keys
            raise DeliveryError(f"Push message could not be built: {e}") from e
