"""Notification scheduling services package."""

from daybook.services.notifications.interface import (
    NotificationScheduler,
    ScheduledNotification,
)
from daybook.services.notifications.local import (
    AsyncioNotificationScheduler,
    log_delivery,
)

__all__ = [
    "AsyncioNotificationScheduler",
    "NotificationScheduler",
    "ScheduledNotification",
    "log_delivery",
]
