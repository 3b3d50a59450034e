"""Services package."""

from daybook.services.notifications import (
    AsyncioNotificationScheduler,
    NotificationScheduler,
    ScheduledNotification,
)
from daybook.services.remote import (
    GoogleSheetsClient,
    GoogleSheetsCollectionClient,
    InMemoryCollectionClient,
    RemoteCollectionClient,
    RemoteConnectionError,
    RemoteError,
    RemoteNotFoundError,
)

__all__ = [
    # Notification services
    "AsyncioNotificationScheduler",
    "NotificationScheduler",
    "ScheduledNotification",
    # Remote store services
    "GoogleSheetsClient",
    "GoogleSheetsCollectionClient",
    "InMemoryCollectionClient",
    "RemoteCollectionClient",
    "RemoteConnectionError",
    "RemoteError",
    "RemoteNotFoundError",
]
