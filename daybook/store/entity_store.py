"""
Entity Store

The single owner of Daybook's four collections: profiles, tasks, ledger
entries and reminders. Constructed once at startup and passed explicitly
to every consumer (see daybook.orchestrator); there is no module-level
instance.

Consumers read snapshots (tuples of immutable models) and subscribe to
change notifications; only the store writes.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict

from daybook.audit import AuditLogger
from daybook.config import CollectionSettings, get_settings
from daybook.models.audit import AuditEventBuilder
from daybook.models.entities import (
    LedgerEntry,
    LedgerEntryFields,
    LedgerEntryType,
    Profile,
    ProfileFields,
    Recurrence,
    Reminder,
    ReminderFields,
    Task,
    TaskFields,
)
from daybook.services.remote import RemoteCollectionClient, RemoteError
from daybook.store.collection import CollectionStore, ProfileCollectionStore
from daybook.store.errors import NoActiveProfileError, RecordNotFoundError


logger = structlog.get_logger(__name__)

ChangeListener = Callable[[str], Awaitable[None]]


class StoreSnapshot(BaseModel):
    """Point-in-time copy of every collection."""
    model_config = ConfigDict(frozen=True)

    profiles: tuple[Profile, ...]
    active_profile: Optional[Profile]
    tasks: tuple[Task, ...]
    ledger: tuple[LedgerEntry, ...]
    reminders: tuple[Reminder, ...]


class EntityStore:
    """
    In-memory mirror of the remote collections.

    Usage:
        store = EntityStore(remote)
        await store.refresh_all()
        await store.switch_active_profile(profile.id)
        await store.add_ledger_entry(LedgerEntryType.EXPENSE, Decimal("12.50"), "food")
    """

    def __init__(
        self,
        remote: RemoteCollectionClient,
        collections: Optional[CollectionSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        names = collections or get_settings().collections
        self._remote = remote
        self._audit = audit_logger
        self._listeners: list[ChangeListener] = []

        common = dict(
            remote=remote,
            on_change=self._notify,
            audit_logger=audit_logger,
        )
        self.profiles = ProfileCollectionStore(
            name="profiles", remote_name=names.profiles, **common
        )
        self.tasks: CollectionStore[Task] = CollectionStore(
            name="tasks",
            remote_name=names.tasks,
            model=Task,
            fields_model=TaskFields,
            **common,
        )
        self.ledger: CollectionStore[LedgerEntry] = CollectionStore(
            name="ledger",
            remote_name=names.ledger,
            model=LedgerEntry,
            fields_model=LedgerEntryFields,
            mutable=False,
            **common,
        )
        self.reminders: CollectionStore[Reminder] = CollectionStore(
            name="reminders",
            remote_name=names.reminders,
            model=Reminder,
            fields_model=ReminderFields,
            **common,
        )

    @property
    def collections(self) -> dict[str, CollectionStore]:
        return {
            "profiles": self.profiles,
            "tasks": self.tasks,
            "ledger": self.ledger,
            "reminders": self.reminders,
        }

    # -------------------------------------------------------------------------
    # Change notification
    # -------------------------------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Register an async listener called with the collection name after
        every local change. Returns an unsubscribe function.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _notify(self, collection: str) -> None:
        for listener in list(self._listeners):
            try:
                await listener(collection)
            except Exception as e:
                # The write already happened; a broken listener can't undo it
                logger.exception("change_listener_failed", collection=collection)
                if self._audit is not None:
                    await self._audit.log(
                        AuditEventBuilder.system_error(
                            type(e).__name__, str(e), {"collection": collection}
                        )
                    )

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    @property
    def active_profile(self) -> Optional[Profile]:
        return self.profiles.active

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            profiles=self.profiles.list(),
            active_profile=self.profiles.active,
            tasks=self.tasks.list(),
            ledger=self.ledger.list(),
            reminders=self.reminders.list(),
        )

    async def refresh_all(self) -> dict[str, bool]:
        """
        Re-read every collection from the remote store.

        A collection whose read fails keeps its previous snapshot.

        Returns:
            {collection_name: refreshed_ok}
        """
        async def refresh_one(name: str, collection: CollectionStore) -> tuple[str, bool]:
            try:
                await collection.refresh()
                return name, True
            except RemoteError as e:
                logger.error("refresh_failed", collection=name, error=str(e))
                return name, False

        results = await asyncio.gather(
            *(refresh_one(name, c) for name, c in self.collections.items())
        )
        report = dict(results)
        if self._audit is not None:
            await self._audit.log(AuditEventBuilder.data_refreshed(report))
        return report

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    async def add_profile(self, name: str, avatar: str = "") -> Profile:
        return await self.profiles.create(ProfileFields(name=name, avatar=avatar))

    async def remove_profile(self, profile_id: str, cascade: bool = False) -> None:
        """
        Delete a profile.

        If it was the active profile, no profile is active afterwards.

        Args:
            cascade: Also delete the profile's ledger entries and reminders.
                     Without it they are kept (and logged as orphaned).
        """
        if self.profiles.get(profile_id) is None:
            raise RecordNotFoundError("profiles", profile_id)

        entries = [e for e in self.ledger.list() if e.profile_id == profile_id]
        reminders = [r for r in self.reminders.list() if r.profile_id == profile_id]

        if cascade:
            for reminder in reminders:
                await self.reminders.delete(reminder.id)
            for entry in entries:
                await self.ledger.delete(entry.id)
        elif entries or reminders:
            logger.warning(
                "orphaned_records",
                profile_id=profile_id,
                ledger_entries=len(entries),
                reminders=len(reminders),
            )

        await self.profiles.delete(profile_id)

    async def switch_active_profile(self, profile_id: str) -> Profile:
        return await self.profiles.switch_active(profile_id)

    def _owner(self, profile_id: Optional[str]) -> str:
        if profile_id is not None:
            return profile_id
        active = self.profiles.active
        if active is None:
            raise NoActiveProfileError("Select a profile first")
        return active.id

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    async def add_task(self, title: str, **fields: Any) -> Task:
        return await self.tasks.create(TaskFields(title=title, **fields))

    async def update_task(self, task_id: str, **changes: Any) -> Task:
        return await self.tasks.update(task_id, **changes)

    async def toggle_task(self, task_id: str) -> Task:
        task = self.tasks.get(task_id)
        if task is None:
            raise RecordNotFoundError("tasks", task_id)
        return await self.tasks.update(task_id, completed=not task.completed)

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    async def add_ledger_entry(
        self,
        entry_type: Union[LedgerEntryType, str],
        amount: Union[Decimal, str, int],
        category: str,
        description: str = "",
        timestamp: Optional[datetime] = None,
        profile_id: Optional[str] = None,
    ) -> LedgerEntry:
        """Record income or expense, owned by the active profile by default."""
        fields = LedgerEntryFields(
            type=entry_type,
            amount=amount,
            category=category,
            description=description,
            timestamp=timestamp or datetime.now(),
            profile_id=self._owner(profile_id),
        )
        return await self.ledger.create(fields)

    async def delete_ledger_entry(self, entry_id: str) -> None:
        await self.ledger.delete(entry_id)

    # -------------------------------------------------------------------------
    # Reminders
    # -------------------------------------------------------------------------

    async def add_reminder(
        self,
        title: str,
        time: datetime,
        recurrence: Union[Recurrence, str] = Recurrence.NONE,
        body: Optional[str] = None,
        is_active: bool = True,
        profile_id: Optional[str] = None,
    ) -> Reminder:
        """Create a reminder, owned by the active profile by default."""
        fields = ReminderFields(
            title=title,
            body=body,
            time=time,
            recurrence=recurrence,
            is_active=is_active,
            profile_id=self._owner(profile_id),
        )
        return await self.reminders.create(fields)

    async def update_reminder(self, reminder_id: str, **changes: Any) -> Reminder:
        return await self.reminders.update(reminder_id, **changes)

    async def set_reminder_active(self, reminder_id: str, is_active: bool) -> Reminder:
        return await self.reminders.update(reminder_id, is_active=is_active)

    async def delete_reminder(self, reminder_id: str) -> None:
        await self.reminders.delete(reminder_id)
