"""
Reminder Windows.

Computes, for a given "now", the interval of appointment start times each
reminder class should pick up. The evaluator runs periodically, so every
timed window carries a tolerance: an appointment that falls between two
polls is still caught by the next one.

Bounds are inclusive on both ends and returned as naive UTC datetimes,
matching how appointment instants are stored.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo


class ReminderWindow(str, Enum):
    """Reminder classes, in processing order."""
    H24 = "24h"
    H12 = "12h"
    H2 = "2h"
    M30 = "30m"
    THANK_YOU = "thank_you"


@dataclass(frozen=True)
class WindowRule:
    """Offset from now and tolerance of a timed reminder window."""

    offset: timedelta
    tolerance: timedelta


WINDOW_RULES: dict[ReminderWindow, WindowRule] = {
    ReminderWindow.H24: WindowRule(timedelta(hours=24), timedelta(minutes=60)),
    ReminderWindow.H12: WindowRule(timedelta(hours=12), timedelta(minutes=60)),
    ReminderWindow.H2: WindowRule(timedelta(hours=2), timedelta(minutes=30)),
    ReminderWindow.M30: WindowRule(timedelta(minutes=30), timedelta(minutes=15)),
}

TIMED_WINDOWS = (
    ReminderWindow.H24,
    ReminderWindow.H12,
    ReminderWindow.H2,
    ReminderWindow.M30,
)


@dataclass(frozen=True)
class TimeRange:
    """Closed interval [start, end] of naive UTC datetimes."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        """Check whether an instant falls inside the range (inclusive)."""
        return self.start <= _to_naive_utc(instant) <= self.end


def _to_naive_utc(value: datetime) -> datetime:
    """Convert to naive UTC. Naive input is assumed to already be UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_day(now: datetime, tz: ZoneInfo) -> datetime:
    """Return local midnight of ``now``'s day in ``tz``, as naive UTC."""
    aware_now = now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)
    local_midnight = aware_now.astimezone(tz).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return _to_naive_utc(local_midnight)


def compute_window(
    window: ReminderWindow,
    now: datetime,
    tz: Optional[ZoneInfo] = None,
) -> TimeRange:
    """Compute the target interval of one reminder window.

    Args:
        window: Reminder window
        now: Current instant (aware, or naive UTC)
        tz: Business timezone, only used by the thank-you window

    Returns:
        TimeRange of appointment start instants to pick up
    """
    utc_now = _to_naive_utc(now)

    if window == ReminderWindow.THANK_YOU:
        return TimeRange(start=start_of_day(now, tz or ZoneInfo("UTC")), end=utc_now)

    rule = WINDOW_RULES[window]
    start = utc_now + rule.offset
    return TimeRange(start=start, end=start + rule.tolerance)


def compute_windows(
    now: datetime,
    tz: Optional[ZoneInfo] = None,
) -> dict[ReminderWindow, TimeRange]:
    """Compute every reminder window for ``now``, in processing order."""
    return {window: compute_window(window, now, tz) for window in ReminderWindow}
