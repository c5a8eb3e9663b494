"""
Reminders Module

Time-windowed, idempotent, multi-channel reminder dispatch: window
calculation, claim coordination, email/push/SMS dispatch and the run
orchestrator.

Usage:
    from reminder_service.core.reminders import get_orchestrator

    summary = await get_orchestrator().run()
    print(summary.message)
"""

# Windows
from reminder_service.core.reminders.windows import (
    ReminderWindow,
    TimeRange,
    compute_window,
    compute_windows,
)

# Stores and claims
from reminder_service.core.reminders.store import (
    AppointmentStore,
    PushSubscriptionStore,
)
from reminder_service.core.reminders.claims import ClaimCoordinator

# Dispatchers
from reminder_service.core.reminders.dispatchers import (
    EmailDispatcher,
    PushDispatcher,
    SmsDispatcher,
)

# Orchestrator
from reminder_service.core.reminders.orchestrator import (
    ReminderOrchestrator,
    RunSummary,
    build_orchestrator,
    get_orchestrator,
)

__all__ = [
    # Windows
    "ReminderWindow",
    "TimeRange",
    "compute_window",
    "compute_windows",
    # Stores and claims
    "AppointmentStore",
    "PushSubscriptionStore",
    "ClaimCoordinator",
    # Dispatchers
    "EmailDispatcher",
    "PushDispatcher",
    "SmsDispatcher",
    # Orchestrator
    "ReminderOrchestrator",
    "RunSummary",
    "build_orchestrator",
    "get_orchestrator",
]
