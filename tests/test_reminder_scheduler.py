"""
Tests for the reminder scheduler.

Notifications go to a recording scheduler; time comes from a fixed clock.
"""

import pytest
from datetime import datetime

from conftest import FixedClock, RecordingNotificationScheduler
from daybook.audit import AuditLogger
from daybook.models.entities import Recurrence
from daybook.reminders import ReminderScheduler, ReminderState
from daybook.store import EntityStore


NOW = datetime(2024, 3, 13, 10, 0)  # Wednesday


async def _active_profile(store: EntityStore):
    profile = await store.add_profile("Asha")
    await store.switch_active_profile(profile.id)
    return profile


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def scheduler(store, notifier, scheduler_settings, clock):
    return ReminderScheduler(store, notifier, settings=scheduler_settings, clock=clock)


class TestRearm:
    """Deriving the schedule from the store."""

    @pytest.mark.asyncio
    async def test_arms_only_active_reminders_of_active_profile(self, store, scheduler, notifier):
        asha = await _active_profile(store)
        ravi = await store.add_profile("Ravi")
        mine = await store.add_reminder("Stretch", datetime(2024, 3, 1, 18, 0), "daily")
        await store.add_reminder("Off", datetime(2024, 3, 1, 18, 0), "daily", is_active=False)
        await store.add_reminder("Theirs", datetime(2024, 3, 1, 18, 0), "daily", profile_id=ravi.id)

        armed = await scheduler.rearm()

        assert armed == 1
        assert [t.reminder_id for t in scheduler.armed()] == [mine.id]
        assert notifier.pending() == [
            (datetime(2024, 3, 13, 18, 0), "Stretch", "You have a reminder!", None)
        ]
        assert asha.id == store.active_profile.id

    @pytest.mark.asyncio
    async def test_rearm_is_idempotent(self, store, scheduler, notifier):
        await _active_profile(store)
        await store.add_reminder("Stretch", datetime(2024, 3, 1, 18, 0), "daily")
        await store.add_reminder("Rent", datetime(2024, 1, 31, 9, 0), "monthly", body="Pay it")

        await scheduler.rearm()
        first = notifier.pending()
        await scheduler.rearm()

        assert notifier.pending() == first
        assert len(notifier.scheduled) == 2
        assert len(notifier.cancelled) == 2

    @pytest.mark.asyncio
    async def test_weekly_example(self, store, scheduler, notifier):
        await _active_profile(store)
        await store.add_reminder("Standup", datetime(2024, 3, 4, 9, 0), "weekly")

        await scheduler.rearm()

        assert notifier.pending()[0][0] == datetime(2024, 3, 18, 9, 0)

    @pytest.mark.asyncio
    async def test_no_active_profile_arms_nothing(self, store, scheduler, notifier):
        profile = await store.add_profile("Asha")
        await store.add_reminder("Stretch", datetime(2024, 3, 1, 18, 0), "daily", profile_id=profile.id)
        assert await scheduler.rearm() == 0
        assert notifier.scheduled == {}

    @pytest.mark.asyncio
    async def test_past_one_time_reminder_is_skipped_and_logged_once(
        self, remote, collections, notifier, scheduler_settings, clock
    ):
        audit = AuditLogger(remote, collection="audit-v1")
        store = EntityStore(remote, collections=collections)
        scheduler = ReminderScheduler(
            store, notifier, settings=scheduler_settings, clock=clock, audit_logger=audit
        )
        await _active_profile(store)
        past = await store.add_reminder("Dentist", datetime(2024, 3, 1, 9, 0))

        assert await scheduler.rearm() == 0
        assert await scheduler.rearm() == 0

        skipped = [
            d for d in remote.documents("audit-v1").values()
            if d["event_type"] == "reminder_skipped"
        ]
        assert len(skipped) == 1
        assert skipped[0]["record_id"] == past.id
        assert scheduler.state_of(past.id) == ReminderState.INACTIVE

    @pytest.mark.asyncio
    async def test_bookkeeping_dropped_for_removed_reminders(
        self, remote, collections, notifier, scheduler_settings, clock
    ):
        """A reminder that left the store is logged again if it comes back."""
        audit = AuditLogger(remote, collection="audit-v1")
        store = EntityStore(remote, collections=collections)
        scheduler = ReminderScheduler(
            store, notifier, settings=scheduler_settings, clock=clock, audit_logger=audit
        )
        past = {
            "id": "r1",
            "title": "Dentist",
            "time": "2024-03-01T09:00:00",
            "repeat": "none",
            "profileId": "p1",
        }
        remote.seed("profiles-v1", [{"id": "p1", "name": "Asha", "isActive": True}])
        remote.seed("reminders-v1", [past])
        await store.refresh_all()
        await scheduler.rearm()

        await remote.delete("reminders-v1", "r1")
        await store.reminders.refresh()
        await scheduler.rearm()
        remote.seed("reminders-v1", [past])
        await store.reminders.refresh()
        await scheduler.rearm()

        skipped = [
            d for d in remote.documents("audit-v1").values()
            if d["event_type"] == "reminder_skipped"
        ]
        assert len(skipped) == 2

    @pytest.mark.asyncio
    async def test_fired_state_dropped_with_reminder(self, store, scheduler, notifier, clock):
        await _active_profile(store)
        reminder = await store.add_reminder("Dentist", datetime(2024, 3, 13, 15, 0))
        await scheduler.rearm()
        (notification,) = notifier.scheduled.values()
        clock.now = datetime(2024, 3, 13, 15, 0)
        await scheduler.handle_fired(notification)

        await store.delete_reminder(reminder.id)
        await scheduler.rearm()

        assert scheduler.state_of(reminder.id) == ReminderState.INACTIVE


class TestStoreSubscription:
    """attach() keeps the schedule in line with store changes."""

    @pytest.mark.asyncio
    async def test_new_reminder_is_armed(self, store, scheduler, notifier):
        scheduler.attach()
        await _active_profile(store)
        reminder = await store.add_reminder("Stretch", datetime(2024, 3, 1, 18, 0), "daily")
        assert scheduler.state_of(reminder.id) == ReminderState.SCHEDULED
        assert len(notifier.scheduled) == 1

    @pytest.mark.asyncio
    async def test_deleted_reminder_is_cancelled(self, store, scheduler, notifier):
        scheduler.attach()
        await _active_profile(store)
        reminder = await store.add_reminder("Stretch", datetime(2024, 3, 1, 18, 0), "daily")
        await store.delete_reminder(reminder.id)
        assert notifier.scheduled == {}
        assert scheduler.state_of(reminder.id) == ReminderState.INACTIVE

    @pytest.mark.asyncio
    async def test_deactivated_reminder_is_cancelled(self, store, scheduler, notifier):
        scheduler.attach()
        await _active_profile(store)
        reminder = await store.add_reminder("Stretch", datetime(2024, 3, 1, 18, 0), "daily")
        await store.set_reminder_active(reminder.id, False)
        assert notifier.scheduled == {}

    @pytest.mark.asyncio
    async def test_profile_switch_rearms(self, store, scheduler, notifier):
        scheduler.attach()
        asha = await _active_profile(store)
        ravi = await store.add_profile("Ravi")
        await store.add_reminder("Asha's", datetime(2024, 3, 1, 18, 0), "daily")
        await store.add_reminder("Ravi's", datetime(2024, 3, 1, 20, 0), "daily", profile_id=ravi.id)

        await store.switch_active_profile(ravi.id)
        assert [p[1] for p in notifier.pending()] == ["Ravi's"]

        await store.switch_active_profile(asha.id)
        assert [p[1] for p in notifier.pending()] == ["Asha's"]

    @pytest.mark.asyncio
    async def test_detach_stops_rearming(self, store, scheduler, notifier):
        scheduler.attach()
        scheduler.detach()
        await _active_profile(store)
        await store.add_reminder("Stretch", datetime(2024, 3, 1, 18, 0), "daily")
        assert notifier.scheduled == {}


class TestFiring:
    """handle_fired() state transitions."""

    @pytest.mark.asyncio
    async def test_one_time_reminder_moves_to_fired(self, store, scheduler, notifier, clock):
        await _active_profile(store)
        reminder = await store.add_reminder("Dentist", datetime(2024, 3, 13, 15, 0))
        await scheduler.rearm()
        (notification,) = notifier.scheduled.values()

        clock.now = datetime(2024, 3, 13, 15, 0)
        await scheduler.handle_fired(notification)

        assert scheduler.state_of(reminder.id) == ReminderState.FIRED
        assert scheduler.armed() == ()

    @pytest.mark.asyncio
    async def test_monthly_is_rearmed_after_firing(self, store, scheduler, notifier, clock):
        """The recording scheduler has no native repeats: each month is re-armed."""
        await _active_profile(store)
        reminder = await store.add_reminder("Rent", datetime(2024, 1, 31, 9, 0), "monthly")
        await scheduler.rearm()
        (notification,) = notifier.scheduled.values()
        assert notification.fire_time == datetime(2024, 3, 31, 9, 0)
        assert notification.recurrence_hint is None

        # Delivered by a one-shot backend, which forgets the trigger
        notifier.scheduled.pop(notification.trigger_id)
        clock.now = datetime(2024, 3, 31, 9, 0)
        await scheduler.handle_fired(notification)

        (following,) = notifier.scheduled.values()
        assert following.fire_time == datetime(2024, 4, 30, 9, 0)
        assert scheduler.state_of(reminder.id) == ReminderState.SCHEDULED

    @pytest.mark.asyncio
    async def test_native_repeat_stays_armed(self, store, scheduler_settings, clock):
        notifier = RecordingNotificationScheduler(native=frozenset({Recurrence.DAILY}))
        scheduler = ReminderScheduler(store, notifier, settings=scheduler_settings, clock=clock)
        await _active_profile(store)
        reminder = await store.add_reminder("Stretch", datetime(2024, 3, 1, 18, 0), "daily")
        await scheduler.rearm()
        (notification,) = notifier.scheduled.values()
        assert notification.recurrence_hint == Recurrence.DAILY

        clock.now = datetime(2024, 3, 13, 18, 0)
        await scheduler.handle_fired(notification)

        assert notifier.schedule_calls == 1
        assert scheduler.state_of(reminder.id) == ReminderState.SCHEDULED

    @pytest.mark.asyncio
    async def test_unknown_trigger_is_ignored(self, store, scheduler, notifier):
        await _active_profile(store)
        await store.add_reminder("Stretch", datetime(2024, 3, 1, 18, 0), "daily")
        await scheduler.rearm()
        (notification,) = notifier.scheduled.values()
        await scheduler.rearm()

        # The old trigger was cancelled by the second rearm
        await scheduler.handle_fired(notification)
        assert len(notifier.scheduled) == 1

    @pytest.mark.asyncio
    async def test_close_cancels_everything(self, store, scheduler, notifier):
        scheduler.attach()
        await _active_profile(store)
        await store.add_reminder("Stretch", datetime(2024, 3, 1, 18, 0), "daily")
        await scheduler.close()
        assert notifier.scheduled == {}
        assert scheduler.armed() == ()
