"""
Reminder Scheduler

Turns the active profile's reminders into notification triggers.

Per reminder:

    Inactive --rearm--> Scheduled --fire--> Fired      (one-time only)
                            |
                            +--fire--> Scheduled       (recurring)

rearm() is the only way triggers are created in bulk. It cancels every
trigger this scheduler armed before and derives the schedule again from
the current store snapshot, so calling it twice leaves the same set of
pending notifications as calling it once.

Recurrence rules the notification backend can't repeat natively are
armed as one-shot triggers; handle_fired() arms the next occurrence when
they fire.
"""

import asyncio
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

import structlog
from pydantic import BaseModel, ConfigDict

from daybook.audit import AuditLogger
from daybook.config import SchedulerSettings, get_settings
from daybook.models.audit import AuditEventBuilder
from daybook.models.entities import Recurrence, Reminder
from daybook.reminders.recurrence import InvalidReminderTime, next_fire_time
from daybook.services.notifications import NotificationScheduler, ScheduledNotification
from daybook.store import EntityStore


logger = structlog.get_logger(__name__)

# Collections whose changes can alter the schedule
WATCHED_COLLECTIONS = frozenset({"reminders", "profiles"})


class ReminderState(str, Enum):
    INACTIVE = "inactive"
    SCHEDULED = "scheduled"
    FIRED = "fired"


class ArmedTrigger(BaseModel):
    """A trigger this scheduler handed to the notification backend."""
    model_config = ConfigDict(frozen=True)

    reminder_id: str
    trigger_id: str
    fire_time: datetime
    native_repeat: bool


class ReminderScheduler:
    """
    Keeps notification triggers in line with the active profile's
    reminders.

    Usage:
        scheduler = ReminderScheduler(store, notifier)
        scheduler.attach()          # re-arm on every store change
        await scheduler.rearm()     # initial schedule
    """

    def __init__(
        self,
        store: EntityStore,
        notifier: NotificationScheduler,
        settings: Optional[SchedulerSettings] = None,
        clock: Callable[[], datetime] = datetime.now,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._notifier = notifier
        self._settings = settings or get_settings().scheduler
        self._clock = clock
        self._audit = audit_logger
        self._lock = asyncio.Lock()
        self._armed: dict[str, ArmedTrigger] = {}
        self._by_trigger: dict[str, str] = {}
        self._fired: set[str] = set()
        self._skip_logged: set[str] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None

    # -------------------------------------------------------------------------
    # Store subscription
    # -------------------------------------------------------------------------

    def attach(self) -> None:
        """Re-arm whenever reminders or profiles change."""
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._on_store_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_store_change(self, collection: str) -> None:
        if collection in WATCHED_COLLECTIONS:
            await self.rearm()

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def armed(self) -> tuple[ArmedTrigger, ...]:
        """Triggers currently armed, ordered by fire time."""
        return tuple(sorted(self._armed.values(), key=lambda t: t.fire_time))

    def state_of(self, reminder_id: str) -> ReminderState:
        if reminder_id in self._armed:
            return ReminderState.SCHEDULED
        if reminder_id in self._fired:
            return ReminderState.FIRED
        return ReminderState.INACTIVE

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    async def rearm(self) -> int:
        """
        Cancel previously armed triggers and schedule the active
        profile's active reminders.

        Malformed reminders are logged and skipped; they never stop the
        others from being scheduled.

        Returns:
            Number of triggers armed
        """
        async with self._lock:
            await self._cancel_armed()
            self._prune(reminder.id for reminder in self._store.reminders.list())

            active = self._store.active_profile
            if active is None:
                logger.info("rearm_skipped_no_active_profile")
                return 0

            now = self._clock()
            armed = 0
            skipped = 0
            for reminder in self._store.reminders.list():
                if reminder.profile_id != active.id or not reminder.is_active:
                    continue

                try:
                    fire_time = next_fire_time(reminder, now)
                except InvalidReminderTime as e:
                    logger.warning(
                        "reminder_skipped_invalid_time",
                        reminder_id=reminder.id,
                        reason=e.reason,
                    )
                    skipped += 1
                    continue

                if fire_time is None:
                    await self._log_past_once(reminder)
                    skipped += 1
                    continue

                await self._arm(reminder, fire_time)
                armed += 1

            if self._audit is not None:
                await self._audit.log(
                    AuditEventBuilder.reminders_rearmed(active.id, armed, skipped)
                )
            return armed

    async def handle_fired(self, notification: ScheduledNotification) -> None:
        """
        Delivery callback for the notification backend.

        One-time reminders move to Fired. Recurring reminders whose rule
        isn't repeated natively get their next occurrence armed.
        """
        async with self._lock:
            reminder_id = self._by_trigger.get(notification.trigger_id)
            if reminder_id is None:
                logger.debug("unknown_trigger_fired", trigger_id=notification.trigger_id)
                return

            armed = self._armed[reminder_id]
            if self._audit is not None:
                await self._audit.log(
                    AuditEventBuilder.reminder_fired(reminder_id, notification.title)
                )

            # The backend repeats it; the trigger stays armed
            if armed.native_repeat:
                return

            self._forget(reminder_id)
            reminder = self._store.reminders.get(reminder_id)
            if reminder is None or reminder.recurrence == Recurrence.NONE:
                self._fired.add(reminder_id)
                return

            after = max(self._clock(), notification.fire_time)
            try:
                fire_time = next_fire_time(reminder, after)
            except InvalidReminderTime as e:
                logger.warning(
                    "reminder_skipped_invalid_time",
                    reminder_id=reminder_id,
                    reason=e.reason,
                )
                return
            if fire_time is not None:
                await self._arm(reminder, fire_time)

    async def close(self) -> None:
        """Stop listening and cancel every armed trigger."""
        self.detach()
        async with self._lock:
            await self._cancel_armed()

    # -------------------------------------------------------------------------
    # Helpers (callers hold the lock)
    # -------------------------------------------------------------------------

    async def _arm(self, reminder: Reminder, fire_time: datetime) -> None:
        hint = None
        if reminder.recurrence != Recurrence.NONE and self._notifier.supports(
            reminder.recurrence
        ):
            hint = reminder.recurrence

        trigger_id = await self._notifier.schedule(
            fire_time,
            reminder.title or self._settings.default_title,
            reminder.body or self._settings.default_body,
            hint,
        )
        self._armed[reminder.id] = ArmedTrigger(
            reminder_id=reminder.id,
            trigger_id=trigger_id,
            fire_time=fire_time,
            native_repeat=hint is not None,
        )
        self._by_trigger[trigger_id] = reminder.id
        self._fired.discard(reminder.id)

    async def _cancel_armed(self) -> None:
        for trigger in list(self._armed.values()):
            await self._notifier.cancel(trigger.trigger_id)
        self._armed.clear()
        self._by_trigger.clear()

    def _prune(self, known_ids) -> None:
        """Drop bookkeeping of reminders that left the store."""
        known = set(known_ids)
        self._fired &= known
        self._skip_logged &= known

    def _forget(self, reminder_id: str) -> None:
        armed = self._armed.pop(reminder_id, None)
        if armed is not None:
            self._by_trigger.pop(armed.trigger_id, None)

    async def _log_past_once(self, reminder: Reminder) -> None:
        if reminder.id in self._skip_logged:
            return
        self._skip_logged.add(reminder.id)
        logger.info(
            "one_time_reminder_in_past",
            reminder_id=reminder.id,
            time=reminder.time.isoformat(),
        )
        if self._audit is not None:
            await self._audit.log(
                AuditEventBuilder.reminder_skipped(reminder.id, "time already passed")
            )
