"""
Reminder Errors

Failure taxonomy shared by providers, dispatchers and the orchestrator.

A claim conflict is not represented here: losing a claim is an expected
outcome and is reported as ``False`` by the claim coordinator.
"""

from typing import Optional


class ReminderError(Exception):
    """Base class for reminder delivery errors."""
    pass


class ConfigurationError(ReminderError):
    """Raised when a channel's provider is not configured."""
    pass


class DeliveryError(ReminderError):
    """Raised when a provider rejects or fails to deliver a message.

    Attributes:
        status_code: Provider status code, when the provider returned one
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StaleEndpointError(DeliveryError):
    """Raised when a push endpoint is permanently gone (404/410)."""
    pass
