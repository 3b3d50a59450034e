"""
Tests for deferred (undoable) task deletion.

Grace periods are shortened to a few milliseconds.
"""

import asyncio

import pytest

from daybook.services.remote import InMemoryCollectionClient
from daybook.store import (
    DeferredDeleteController,
    DeleteState,
    EntityStore,
    RecordNotFoundError,
)


GRACE = 0.05


async def _tasks(store, *titles):
    return [await store.add_task(title) for title in titles]


@pytest.fixture
def deletes(store):
    return DeferredDeleteController(store.tasks, grace_period=GRACE)


class TestUndo:
    """Undo within the grace period."""

    @pytest.mark.asyncio
    async def test_delete_hides_task_immediately(self, store, deletes, remote):
        (task,) = await _tasks(store, "Buy milk")

        await deletes.request_delete(task.id)

        assert store.tasks.list() == ()
        assert deletes.state_of(task.id) == DeleteState.PENDING_DELETE
        # Nothing was deleted remotely yet
        assert task.id in remote.documents("todos-v1")

    @pytest.mark.asyncio
    async def test_undo_restores_original_position(self, store, deletes, remote):
        first, middle, last = await _tasks(store, "A", "B", "C")
        calls_before = len(remote.calls)

        await deletes.request_delete(middle.id)
        restored = await deletes.undo(middle.id)

        assert restored == middle
        assert store.tasks.list() == (first, middle, last)
        assert deletes.state_of(middle.id) == DeleteState.LIVE
        # Undo never talks to the remote store
        assert len(remote.calls) == calls_before

    @pytest.mark.asyncio
    async def test_undo_cancels_the_timer(self, store, deletes, remote):
        (task,) = await _tasks(store, "Buy milk")
        await deletes.request_delete(task.id)
        await deletes.undo(task.id)

        await asyncio.sleep(GRACE * 4)

        assert store.tasks.list() == (task,)
        assert task.id in remote.documents("todos-v1")

    @pytest.mark.asyncio
    async def test_undo_unknown_id_returns_none(self, deletes):
        assert await deletes.undo("missing") is None

    @pytest.mark.asyncio
    async def test_delete_unknown_id(self, deletes):
        with pytest.raises(RecordNotFoundError):
            await deletes.request_delete("missing")


class TestExpiry:
    """Remote delete after the grace period."""

    @pytest.mark.asyncio
    async def test_elapsed_timer_deletes_remotely(self, store, deletes, remote):
        (task,) = await _tasks(store, "Buy milk")
        await deletes.request_delete(task.id)

        await asyncio.sleep(GRACE * 4)

        assert remote.documents("todos-v1") == {}
        assert store.tasks.list() == ()
        assert deletes.state_of(task.id) == DeleteState.DELETED
        assert await deletes.undo(task.id) is None

    @pytest.mark.asyncio
    async def test_concurrent_pending_deletes(self, store, deletes, remote):
        """Deleting a second task doesn't lose or finalize the first."""
        first, second, third = await _tasks(store, "A", "B", "C")

        await deletes.request_delete(first.id)
        await deletes.request_delete(second.id)
        assert await deletes.undo(first.id) == first

        await asyncio.sleep(GRACE * 4)

        assert store.tasks.list() == (first, third)
        assert set(remote.documents("todos-v1")) == {first.id, third.id}

    @pytest.mark.asyncio
    async def test_refresh_does_not_resurrect_pending_task(self, store, deletes):
        (task,) = await _tasks(store, "Buy milk")
        await deletes.request_delete(task.id)

        await store.tasks.refresh()

        assert store.tasks.list() == ()
        assert await deletes.undo(task.id) == task

    @pytest.mark.asyncio
    async def test_failed_remote_delete_restores_task(self, store, deletes, remote):
        (task,) = await _tasks(store, "Buy milk")
        remote.fail_next("delete", "todos-v1")

        await deletes.request_delete(task.id)
        await asyncio.sleep(GRACE * 4)

        assert store.tasks.list() == (task,)
        assert deletes.state_of(task.id) == DeleteState.LIVE

    @pytest.mark.asyncio
    async def test_undo_after_remote_delete_started(self, collections):
        """Once the remote delete is in flight, undo has no effect."""
        store = EntityStore(InMemoryCollectionClient(latency=GRACE * 2), collections=collections)
        deletes = DeferredDeleteController(store.tasks, grace_period=0)
        (task,) = await _tasks(store, "Buy milk")

        await deletes.request_delete(task.id)
        await asyncio.sleep(GRACE)  # timer elapsed, delete in flight

        assert await deletes.undo(task.id) is None
        await asyncio.sleep(GRACE * 4)
        assert deletes.state_of(task.id) == DeleteState.DELETED


class TestShutdown:

    @pytest.mark.asyncio
    async def test_flush_commits_immediately(self, store, remote):
        deletes = DeferredDeleteController(store.tasks, grace_period=60)
        first, second = await _tasks(store, "A", "B")
        await deletes.request_delete(first.id)
        await deletes.request_delete(second.id)

        await deletes.flush()

        assert remote.documents("todos-v1") == {}
        assert deletes.pending() == ()

    @pytest.mark.asyncio
    async def test_close_commits_pending(self, store, remote):
        deletes = DeferredDeleteController(store.tasks, grace_period=60)
        (task,) = await _tasks(store, "A")
        await deletes.request_delete(task.id)

        await deletes.close()

        assert deletes.state_of(task.id) == DeleteState.DELETED
        assert remote.documents("todos-v1") == {}

    @pytest.mark.asyncio
    async def test_deleted_history_is_bounded(self, store, monkeypatch):
        monkeypatch.setattr("daybook.store.deferred_delete.DELETED_HISTORY", 2)
        deletes = DeferredDeleteController(store.tasks, grace_period=60)
        oldest, middle, newest = await _tasks(store, "A", "B", "C")
        for task in (oldest, middle, newest):
            await deletes.request_delete(task.id)
            await deletes.flush()

        assert deletes.state_of(oldest.id) == DeleteState.LIVE
        assert deletes.state_of(middle.id) == DeleteState.DELETED
        assert deletes.state_of(newest.id) == DeleteState.DELETED
