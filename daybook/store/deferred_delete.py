"""
Deferred Delete Controller

Soft-deletes tasks with an undo window:

    Live --request_delete--> PendingDelete --timer--> Deleted
                                   |
                                   +--undo--> Live

The task disappears from the visible list immediately, but the remote
delete is only issued once the grace period elapses. Undo is possible
until the remote delete has started.

DESIGN DECISION: Several tasks may be pending at once. Each pending id
owns its own timer and buffered record, so deleting a second task never
finalizes or loses the first one early.
"""

import asyncio
from collections import deque
from enum import Enum
from typing import Optional

import structlog

from daybook.audit import AuditLogger
from daybook.models.audit import AuditEventBuilder
from daybook.models.entities import Task
from daybook.store.collection import CollectionStore
from daybook.store.errors import RemoteWriteError


logger = structlog.get_logger(__name__)

# How many finished deletions state_of() still reports as DELETED
DELETED_HISTORY = 100


class DeleteState(str, Enum):
    """Lifecycle of a task with respect to deletion."""
    LIVE = "live"
    PENDING_DELETE = "pending_delete"
    DELETED = "deleted"


class _PendingDelete:
    """Buffered record and timer of one pending deletion."""

    def __init__(self, task: Task, position: int):
        self.task = task
        self.position = position
        self.timer: Optional[asyncio.Task] = None
        self.committing = False


class DeferredDeleteController:
    """
    Per-task soft-delete state machine with cancelable grace timers.

    Usage:
        controller = DeferredDeleteController(store.tasks, grace_period=5.0)
        await controller.request_delete(task.id)
        ...
        await controller.undo(task.id)     # within the grace period
    """

    def __init__(
        self,
        collection: CollectionStore[Task],
        grace_period: float = 5.0,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._collection = collection
        self._grace_period = grace_period
        self._audit = audit_logger
        self._pending: dict[str, _PendingDelete] = {}
        self._deleted: deque[str] = deque(maxlen=DELETED_HISTORY)

    @property
    def grace_period(self) -> float:
        return self._grace_period

    def state_of(self, task_id: str) -> DeleteState:
        if task_id in self._pending:
            return DeleteState.PENDING_DELETE
        if task_id in self._deleted:
            return DeleteState.DELETED
        return DeleteState.LIVE

    def pending(self) -> tuple[Task, ...]:
        """Tasks currently waiting for deletion (undo candidates)."""
        return tuple(p.task for p in self._pending.values())

    async def request_delete(self, task_id: str) -> Task:
        """
        Hide a task now and delete it remotely after the grace period.

        Requesting deletion of an already pending task is a no-op.

        Raises:
            RecordNotFoundError: If the task isn't in the visible list
        """
        if task_id in self._pending:
            return self._pending[task_id].task

        position, task = await self._collection.evict(task_id)
        entry = _PendingDelete(task, position)
        self._pending[task_id] = entry
        if task_id in self._deleted:
            self._deleted.remove(task_id)
        entry.timer = asyncio.create_task(
            self._expire(task_id),
            name=f"deferred-delete-{task_id}",
        )

        if self._audit is not None:
            await self._audit.log(
                AuditEventBuilder.delete_requested(task_id, self._grace_period)
            )
        return task

    async def undo(self, task_id: str) -> Optional[Task]:
        """
        Restore a pending task at its original position.

        Returns:
            The restored task, or None if there is nothing to undo
            (unknown id, or the remote delete already started)
        """
        entry = self._pending.get(task_id)
        if entry is None or entry.committing:
            return None

        del self._pending[task_id]
        if entry.timer is not None:
            entry.timer.cancel()

        await self._collection.restore(entry.task, entry.position)
        if self._audit is not None:
            await self._audit.log(AuditEventBuilder.delete_undone(task_id))
        return entry.task

    async def flush(self) -> None:
        """Delete every pending task now, without waiting for its timer."""
        for task_id in list(self._pending):
            entry = self._pending.get(task_id)
            if entry is None or entry.committing:
                continue
            if entry.timer is not None:
                entry.timer.cancel()
            await self._commit(task_id)

    async def close(self) -> None:
        """Commit pending deletions and wait for in-flight ones."""
        await self.flush()
        timers = [p.timer for p in self._pending.values() if p.timer is not None]
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)

    async def _expire(self, task_id: str) -> None:
        await asyncio.sleep(self._grace_period)
        await self._commit(task_id)

    async def _commit(self, task_id: str) -> None:
        entry = self._pending.get(task_id)
        if entry is None or entry.committing:
            return

        # From here on undo is no longer possible
        entry.committing = True
        try:
            await self._collection.delete_evicted(task_id)
        except RemoteWriteError as e:
            logger.error("deferred_delete_failed", task_id=task_id, error=str(e))
            self._pending.pop(task_id, None)
            await self._collection.restore(entry.task, entry.position)
            return

        self._pending.pop(task_id, None)
        self._deleted.append(task_id)
