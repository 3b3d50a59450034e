"""
Recurrence Rules

Derives the next fire time of a reminder from its anchor occurrence.

The anchor (`Reminder.time`) fixes the time of day for every rule, the
weekday for weekly reminders and the day of month for monthly ones.

    none     the anchor itself, if it's still in the future
    daily    today at the anchor's time, or tomorrow if that has passed
    weekly   the next anchor weekday at the anchor's time
    monthly  the anchor's day of month, clamped to shorter months

DESIGN DECISION: Monthly occurrences are always computed from the
anchor, never from the previous occurrence. Jan 31 therefore yields
Feb 28 (or 29), then Mar 31, and never drifts to the 28th for good.
"""

from datetime import datetime, timedelta
from typing import Any, Mapping, Optional, Union

from dateutil.relativedelta import relativedelta
from pydantic import ValidationError

from daybook.models.entities import Recurrence, Reminder
from daybook.store.errors import DaybookError


class InvalidReminderTime(DaybookError):
    """The reminder's stored time can't be turned into a fire time."""

    def __init__(self, reminder_id: Optional[str], reason: str):
        self.reminder_id = reminder_id
        self.reason = reason
        super().__init__(f"Invalid time for reminder {reminder_id}: {reason}")


def as_reminder(value: Union[Reminder, Mapping[str, Any]]) -> Reminder:
    """
    Accept a Reminder or a raw reminder document.

    Raises:
        InvalidReminderTime: If the document doesn't validate
    """
    if isinstance(value, Reminder):
        return value
    try:
        return Reminder.model_validate(dict(value))
    except ValidationError as e:
        raise InvalidReminderTime(
            value.get("id") if isinstance(value, Mapping) else None,
            f"{e.error_count()} validation error(s)",
        ) from e


def next_fire_time(
    reminder: Union[Reminder, Mapping[str, Any]],
    now: datetime,
) -> Optional[datetime]:
    """
    First occurrence of `reminder` strictly after `now`.

    Returns:
        The fire time, or None for a one-time reminder whose moment has
        already passed

    Raises:
        InvalidReminderTime: If the reminder is malformed or its next
                             occurrence is out of datetime range
    """
    reminder = as_reminder(reminder)
    anchor = reminder.time

    if anchor > now:
        return anchor

    try:
        if reminder.recurrence == Recurrence.NONE:
            return None
        if reminder.recurrence == Recurrence.DAILY:
            return _next_daily(anchor, now)
        if reminder.recurrence == Recurrence.WEEKLY:
            return _next_weekly(anchor, now)
        return _next_monthly(anchor, now)
    except (OverflowError, ValueError) as e:
        raise InvalidReminderTime(reminder.id, str(e)) from e


def _next_daily(anchor: datetime, now: datetime) -> datetime:
    candidate = datetime.combine(now.date(), anchor.time())
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def _next_weekly(anchor: datetime, now: datetime) -> datetime:
    days_ahead = (anchor.weekday() - now.weekday()) % 7
    candidate = datetime.combine(now.date() + timedelta(days=days_ahead), anchor.time())
    if candidate <= now:
        candidate += timedelta(days=7)
    return candidate


def _next_monthly(anchor: datetime, now: datetime) -> datetime:
    months = (now.year - anchor.year) * 12 + (now.month - anchor.month)
    candidate = anchor + relativedelta(months=months)
    if candidate <= now:
        candidate = anchor + relativedelta(months=months + 1)
    return candidate
