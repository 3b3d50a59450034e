"""
Shared fixtures.

No test talks to Google Sheets or a real notification service: the
remote store is the in-memory client and notifications are recorded.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

import pytest

from daybook.config import CollectionSettings, SchedulerSettings
from daybook.models.entities import Recurrence
from daybook.services.notifications import NotificationScheduler, ScheduledNotification
from daybook.services.remote import InMemoryCollectionClient
from daybook.store import EntityStore


class RecordingNotificationScheduler(NotificationScheduler):
    """Notification scheduler that only remembers what it was asked."""

    def __init__(self, native: frozenset = frozenset()):
        self._native = native
        self.scheduled: dict[str, ScheduledNotification] = {}
        self.cancelled: list[str] = []
        self.schedule_calls = 0

    def supports(self, hint: Optional[Recurrence]) -> bool:
        return hint is None or hint == Recurrence.NONE or hint in self._native

    async def schedule(
        self,
        fire_time: datetime,
        title: str,
        body: str,
        recurrence_hint: Optional[Recurrence] = None,
    ) -> str:
        self.schedule_calls += 1
        notification = ScheduledNotification(
            trigger_id=uuid4().hex,
            fire_time=fire_time,
            title=title,
            body=body,
            recurrence_hint=recurrence_hint,
        )
        self.scheduled[notification.trigger_id] = notification
        return notification.trigger_id

    async def cancel(self, trigger_id: str) -> None:
        if self.scheduled.pop(trigger_id, None) is not None:
            self.cancelled.append(trigger_id)

    async def cancel_all(self) -> None:
        for trigger_id in list(self.scheduled):
            await self.cancel(trigger_id)

    def pending(self) -> list[tuple]:
        """(fire_time, title, body, hint) of every live trigger, sorted."""
        return sorted(
            (n.fire_time, n.title, n.body, n.recurrence_hint)
            for n in self.scheduled.values()
        )


class FixedClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def remote() -> InMemoryCollectionClient:
    return InMemoryCollectionClient()


@pytest.fixture
def collections() -> CollectionSettings:
    return CollectionSettings(
        profiles="profiles-v1",
        tasks="todos-v1",
        ledger="transactions-v1",
        reminders="reminders-v1",
        audit="audit-v1",
    )


@pytest.fixture
def scheduler_settings() -> SchedulerSettings:
    return SchedulerSettings(
        undo_grace_period_seconds=5.0,
        default_title="Reminder",
        default_body="You have a reminder!",
    )


@pytest.fixture
def store(remote, collections) -> EntityStore:
    return EntityStore(remote, collections=collections)


@pytest.fixture
def notifier() -> RecordingNotificationScheduler:
    return RecordingNotificationScheduler()
