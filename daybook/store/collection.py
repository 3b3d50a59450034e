"""
Collection Stores

A CollectionStore owns the local snapshot of one remote collection and is
the only code allowed to change it.

Write ordering is always remote first, then local:
- create: the record appears locally only once the remote id exists
- update/delete: the local snapshot changes only after the remote call
  succeeded
A failed remote call raises RemoteWriteError and leaves local state as it
was, so callers can simply retry.

Every mutation and refresh of one collection runs under that collection's
lock. Change listeners are awaited while the lock is still held, so a
listener always observes the state it was notified about.
"""

import asyncio
from typing import Any, Awaitable, Callable, Generic, Mapping, Optional, TypeVar, Union

import structlog
from pydantic import ValidationError

from daybook.audit import AuditLogger
from daybook.models.audit import AuditEventBuilder
from daybook.models.entities import DaybookModel, Profile, ProfileFields
from daybook.services.remote import RemoteCollectionClient, RemoteError
from daybook.store.errors import (
    ImmutableRecordError,
    PartialSwitchError,
    RecordNotFoundError,
    RemoteWriteError,
)


logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=DaybookModel)
ChangeCallback = Callable[[str], Awaitable[None]]


class CollectionStore(Generic[RecordT]):
    """
    Local snapshot of one remote collection.

    Records are immutable pydantic models; `list()` hands out a tuple
    so consumers always work on a point-in-time snapshot.
    """

    def __init__(
        self,
        name: str,
        remote_name: str,
        model: type[RecordT],
        fields_model: type[DaybookModel],
        remote: RemoteCollectionClient,
        on_change: Optional[ChangeCallback] = None,
        audit_logger: Optional[AuditLogger] = None,
        mutable: bool = True,
    ):
        """
        Args:
            name: Logical collection name ("tasks", "profiles", ...)
            remote_name: Collection name in the remote store
            model: Entity model (with id)
            fields_model: Model accepted by create() (without id)
            remote: Remote collection client
            on_change: Awaited after every local change, under the lock
            audit_logger: Optional audit trail
            mutable: False for append-only collections (update is refused)
        """
        self.name = name
        self.remote_name = remote_name
        self.mutable = mutable
        self.lock = asyncio.Lock()
        self._model = model
        self._fields_model = fields_model
        self._remote = remote
        self._on_change = on_change
        self._audit = audit_logger
        self._records: list[RecordT] = []
        self._evicted: dict[str, RecordT] = {}

    # -------------------------------------------------------------------------
    # Reads (no lock: snapshots are replaced, never mutated in place)
    # -------------------------------------------------------------------------

    def list(self) -> tuple[RecordT, ...]:
        """Current snapshot, in insertion order."""
        return tuple(self._records)

    def get(self, record_id: str) -> Optional[RecordT]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def is_evicted(self, record_id: str) -> bool:
        return record_id in self._evicted

    def __len__(self) -> int:
        return len(self._records)

    def _require(self, record_id: str) -> RecordT:
        record = self.get(record_id)
        if record is None:
            raise RecordNotFoundError(self.name, record_id)
        return record

    def _index_of(self, record_id: str) -> Optional[int]:
        for idx, record in enumerate(self._records):
            if record.id == record_id:
                return idx
        return None

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create(self, fields: Union[DaybookModel, Mapping[str, Any]]) -> RecordT:
        """
        Create a record remotely, then append it locally.

        Raises:
            ValidationError: If the fields don't match the model
            RemoteWriteError: If the remote create failed
        """
        if not isinstance(fields, self._fields_model):
            fields = self._fields_model.model_validate(dict(fields))

        async with self.lock:
            try:
                record_id = await self._remote.create(
                    self.remote_name, fields.to_document()
                )
            except RemoteError as e:
                await self._write_failed("create", e)
                raise RemoteWriteError(self.name, "create", str(e)) from e

            record = self._model.model_validate({**fields.model_dump(), "id": record_id})
            self._records.append(record)
            await self._audit_event(AuditEventBuilder.record_created(self.name, record_id))
            await self._changed()
            return record

    async def update(self, record_id: str, **changes: Any) -> RecordT:
        """
        Update fields of an existing record remotely, then locally.

        The record must exist locally; a missing id never reaches the
        remote store.

        Raises:
            ImmutableRecordError: If the collection is append-only
            RecordNotFoundError: If the id isn't in the snapshot
            ValidationError: If the merged record is invalid
            RemoteWriteError: If the remote update failed
        """
        if not self.mutable:
            raise ImmutableRecordError(f"{self.name} records can't be edited")

        unknown = set(changes) - set(self._model.model_fields) - {"id"}
        if "id" in changes or unknown:
            raise ValueError(
                f"Can't update field(s) {sorted(unknown | ({'id'} & set(changes)))} "
                f"of {self.name}"
            )

        async with self.lock:
            current = self._require(record_id)
            if not changes:
                return current

            updated = self._model.model_validate({**current.model_dump(), **changes})
            try:
                await self._remote.update(
                    self.remote_name,
                    record_id,
                    updated.to_document(include=set(changes)),
                )
            except RemoteError as e:
                await self._write_failed("update", e, record_id)
                raise RemoteWriteError(self.name, "update", str(e)) from e

            idx = self._index_of(record_id)
            if idx is not None:
                self._records[idx] = updated
            await self._audit_event(
                AuditEventBuilder.record_updated(self.name, record_id, sorted(changes))
            )
            await self._changed()
            return updated

    async def delete(self, record_id: str) -> None:
        """
        Delete a record remotely, then locally.

        Raises:
            RecordNotFoundError: If the id isn't in the snapshot
            RemoteWriteError: If the remote delete failed
        """
        async with self.lock:
            self._require(record_id)
            try:
                await self._remote.delete(self.remote_name, record_id)
            except RemoteError as e:
                await self._write_failed("delete", e, record_id)
                raise RemoteWriteError(self.name, "delete", str(e)) from e

            self._records = [r for r in self._records if r.id != record_id]
            await self._audit_event(AuditEventBuilder.record_deleted(self.name, record_id))
            await self._changed()

    async def refresh(self) -> tuple[RecordT, ...]:
        """
        Replace the snapshot with the remote collection.

        Documents that don't validate are logged and left out.
        Evicted records stay hidden.

        Raises:
            RemoteError: If the remote read failed (snapshot unchanged)
        """
        async with self.lock:
            documents = await self._remote.list(self.remote_name)

            records = []
            for document in documents:
                try:
                    record = self._model.model_validate(document)
                except ValidationError as e:
                    logger.warning(
                        "malformed_record_skipped",
                        collection=self.name,
                        record_id=document.get("id"),
                        errors=e.error_count(),
                    )
                    continue
                if record.id in self._evicted:
                    continue
                records.append(record)

            self._records = records
            await self._changed()
            return tuple(records)

    # -------------------------------------------------------------------------
    # Local-only eviction (used by deferred deletion)
    # -------------------------------------------------------------------------

    async def evict(self, record_id: str) -> tuple[int, RecordT]:
        """
        Hide a record locally without touching the remote store.

        Returns:
            (original_position, record)

        Raises:
            RecordNotFoundError: If the id isn't in the snapshot
        """
        async with self.lock:
            record = self._require(record_id)
            position = self._index_of(record_id)
            self._records = [r for r in self._records if r.id != record_id]
            self._evicted[record_id] = record
            await self._changed()
            return position, record

    async def restore(self, record: RecordT, position: Optional[int] = None) -> None:
        """Put an evicted record back at `position` (or at the end)."""
        async with self.lock:
            self._evicted.pop(record.id, None)
            if self._index_of(record.id) is not None:
                return
            if position is None or position > len(self._records):
                position = len(self._records)
            self._records.insert(position, record)
            await self._changed()

    async def delete_evicted(self, record_id: str) -> None:
        """
        Delete an evicted record remotely.

        Raises:
            RemoteWriteError: If the remote delete failed; the record
                              stays evicted so the caller can restore it
        """
        async with self.lock:
            try:
                await self._remote.delete(self.remote_name, record_id)
            except RemoteError as e:
                await self._write_failed("delete", e, record_id)
                raise RemoteWriteError(self.name, "delete", str(e)) from e

            self._evicted.pop(record_id, None)
            await self._audit_event(AuditEventBuilder.record_deleted(self.name, record_id))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _changed(self) -> None:
        if self._on_change is not None:
            await self._on_change(self.name)

    async def _audit_event(self, event) -> None:
        if self._audit is not None:
            await self._audit.log(event)

    async def _write_failed(
        self,
        operation: str,
        error: Exception,
        record_id: Optional[str] = None,
    ) -> None:
        logger.error(
            "remote_write_failed",
            collection=self.name,
            operation=operation,
            record_id=record_id,
            error=str(error),
        )
        await self._audit_event(
            AuditEventBuilder.write_failed(self.name, operation, str(error), record_id)
        )


class ProfileCollectionStore(CollectionStore[Profile]):
    """
    Profiles, with the single-active-profile invariant.

    `is_active` can only change through switch_active(); new profiles
    are always created inactive.
    """

    def __init__(self, *args: Any, **kwargs: Any):
        kwargs.setdefault("model", Profile)
        kwargs.setdefault("fields_model", ProfileFields)
        super().__init__(*args, **kwargs)

    @property
    def active(self) -> Optional[Profile]:
        """The profile flagged active, or None."""
        for profile in self._records:
            if profile.is_active:
                return profile
        return None

    async def create(self, fields: Union[DaybookModel, Mapping[str, Any]]) -> Profile:
        if not isinstance(fields, ProfileFields):
            fields = ProfileFields.model_validate(dict(fields))
        if fields.is_active:
            fields = fields.model_copy(update={"is_active": False})
        return await super().create(fields)

    async def update(self, record_id: str, **changes: Any) -> Profile:
        if "is_active" in changes:
            raise ValueError("Use switch_active() to change the active profile")
        return await super().update(record_id, **changes)

    async def refresh(self) -> tuple[Profile, ...]:
        records = await super().refresh()
        flagged = [p.id for p in records if p.is_active]
        if len(flagged) > 1:
            logger.warning("multiple_active_profiles", profile_ids=flagged)
        return records

    async def switch_active(self, profile_id: str) -> Profile:
        """
        Make `profile_id` the only active profile.

        Every profile is updated remotely (concurrently). Local state
        changes only once all of them succeeded.

        Raises:
            RecordNotFoundError: If the profile doesn't exist
            PartialSwitchError: If some remote updates failed
            RemoteWriteError: If every remote update failed
        """
        async with self.lock:
            self._require(profile_id)
            previous = self.active
            targets = [
                p.model_copy(update={"is_active": p.id == profile_id})
                for p in self._records
            ]

            results = await asyncio.gather(
                *(
                    self._remote.update(
                        self.remote_name,
                        p.id,
                        p.to_document(include={"is_active"}),
                    )
                    for p in targets
                ),
                return_exceptions=True,
            )

            failed = [p.id for p, result in zip(targets, results) if isinstance(result, Exception)]
            succeeded = [p.id for p in targets if p.id not in failed]

            if failed:
                errors = [str(r) for r in results if isinstance(r, Exception)]
                logger.error(
                    "profile_switch_failed",
                    profile_id=profile_id,
                    failed_ids=failed,
                    errors=errors,
                )
                if not succeeded:
                    await self._write_failed("switch", Exception(errors[0]), profile_id)
                    raise RemoteWriteError(self.name, "switch", errors[0])
                await self._audit_event(
                    AuditEventBuilder.profile_switch_partial(profile_id, failed)
                )
                raise PartialSwitchError(profile_id, failed, succeeded)

            self._records = targets
            await self._audit_event(
                AuditEventBuilder.profile_switched(
                    profile_id, previous.id if previous else None
                )
            )
            await self._changed()
            return self.active
