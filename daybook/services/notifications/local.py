"""
In-Process Notification Scheduler

Delivers notifications from the asyncio event loop. Used when Daybook
runs as a desktop/background service rather than behind a mobile push
service.

Repeats daily and weekly triggers natively (fixed 1 and 7 day steps).
Monthly triggers are not repeated: month lengths vary, so the reminder
scheduler re-arms them after each delivery.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional
from uuid import uuid4

import structlog

from daybook.models.entities import Recurrence
from daybook.services.notifications.interface import (
    NotificationScheduler,
    ScheduledNotification,
)


logger = structlog.get_logger(__name__)

DeliveryCallback = Callable[[ScheduledNotification], Awaitable[None]]

NATIVE_REPEATS: dict[Recurrence, timedelta] = {
    Recurrence.DAILY: timedelta(days=1),
    Recurrence.WEEKLY: timedelta(days=7),
}


async def log_delivery(notification: ScheduledNotification) -> None:
    """Default delivery: write the notification to the structured log."""
    logger.info(
        "notification_delivered",
        trigger_id=notification.trigger_id,
        title=notification.title,
        body=notification.body,
        fire_time=notification.fire_time.isoformat(),
    )


class AsyncioNotificationScheduler(NotificationScheduler):
    """
    Notification scheduler backed by asyncio tasks.

    One task per trigger sleeps until the fire time, delivers, and for
    natively repeating hints advances the fire time and sleeps again.
    """

    def __init__(
        self,
        on_fire: Optional[DeliveryCallback] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._on_fire = on_fire or log_delivery
        self._clock = clock
        self._tasks: dict[str, asyncio.Task] = {}
        self._pending: dict[str, ScheduledNotification] = {}

    def set_delivery_callback(self, on_fire: DeliveryCallback) -> None:
        self._on_fire = on_fire

    def supports(self, hint: Optional[Recurrence]) -> bool:
        return hint is None or hint == Recurrence.NONE or hint in NATIVE_REPEATS

    def pending(self) -> tuple[ScheduledNotification, ...]:
        """Notifications waiting to fire, ordered by fire time."""
        return tuple(sorted(self._pending.values(), key=lambda n: n.fire_time))

    async def schedule(
        self,
        fire_time: datetime,
        title: str,
        body: str,
        recurrence_hint: Optional[Recurrence] = None,
    ) -> str:
        if not self.supports(recurrence_hint):
            logger.debug(
                "recurrence_hint_ignored",
                hint=recurrence_hint.value if recurrence_hint else None,
            )
            recurrence_hint = None

        notification = ScheduledNotification(
            trigger_id=uuid4().hex,
            fire_time=fire_time,
            title=title,
            body=body,
            recurrence_hint=recurrence_hint,
        )
        self._pending[notification.trigger_id] = notification
        self._tasks[notification.trigger_id] = asyncio.create_task(
            self._run(notification),
            name=f"notification-{notification.trigger_id}",
        )
        return notification.trigger_id

    async def cancel(self, trigger_id: str) -> None:
        self._pending.pop(trigger_id, None)
        task = self._tasks.pop(trigger_id, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def cancel_all(self) -> None:
        for trigger_id in list(self._tasks):
            await self.cancel(trigger_id)

    async def _run(self, notification: ScheduledNotification) -> None:
        trigger_id = notification.trigger_id
        step = NATIVE_REPEATS.get(notification.recurrence_hint)

        while True:
            delay = (notification.fire_time - self._clock()).total_seconds()
            await asyncio.sleep(max(0.0, delay))

            if step is None:
                # One-shot: forget the trigger before delivery so the
                # callback can schedule and cancel freely.
                self._pending.pop(trigger_id, None)
                self._tasks.pop(trigger_id, None)

            await self._deliver(notification)

            if step is None:
                return

            next_time = notification.fire_time + step
            now = self._clock()
            if next_time <= now:
                # Occurrences missed while the host was asleep are dropped
                missed = (now - next_time) // step + 1
                next_time += step * missed
                logger.info(
                    "missed_occurrences_skipped",
                    trigger_id=trigger_id,
                    missed=missed,
                )
            notification = notification.model_copy(update={"fire_time": next_time})
            if trigger_id not in self._tasks:
                return
            self._pending[trigger_id] = notification

    async def _deliver(self, notification: ScheduledNotification) -> None:
        try:
            await self._on_fire(notification)
        except Exception:
            # A failing callback must not kill a repeating trigger
            logger.exception(
                "notification_delivery_failed",
                trigger_id=notification.trigger_id,
            )
