"""
Reminder Scheduler Package
"""

from daybook.reminders.recurrence import (
    InvalidReminderTime,
    as_reminder,
    next_fire_time,
)
from daybook.reminders.scheduler import (
    ArmedTrigger,
    ReminderScheduler,
    ReminderState,
)

__all__ = [
    "ArmedTrigger",
    "InvalidReminderTime",
    "ReminderScheduler",
    "ReminderState",
    "as_reminder",
    "next_fire_time",
]
