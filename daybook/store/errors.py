"""
Entity Store Errors

Write failures always leave local state untouched, so every one of
these is safe to retry after the user is told.
"""

from typing import Sequence


class DaybookError(Exception):
    """Base exception for Daybook domain errors."""
    pass


class RemoteWriteError(DaybookError):
    """A create/update/delete failed remotely; local state is unchanged."""

    def __init__(self, collection: str, operation: str, message: str):
        self.collection = collection
        self.operation = operation
        super().__init__(f"Remote {operation} on {collection} failed: {message}")


class PartialSwitchError(DaybookError):
    """
    A profile switch reached only some profiles remotely.

    Local state is left as it was before the switch; re-list
    (EntityStore.refresh_all) to reconcile with the remote store.
    """

    def __init__(
        self,
        profile_id: str,
        failed_ids: Sequence[str],
        succeeded_ids: Sequence[str],
    ):
        self.profile_id = profile_id
        self.failed_ids = tuple(failed_ids)
        self.succeeded_ids = tuple(succeeded_ids)
        super().__init__(
            f"Switch to profile {profile_id} failed for {len(self.failed_ids)} "
            f"profile(s): {', '.join(self.failed_ids)}"
        )


class RecordNotFoundError(DaybookError):
    """The record doesn't exist in the local snapshot."""

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection} record not found: {record_id}")


class ImmutableRecordError(DaybookError):
    """Records of this collection can't be edited, only deleted."""
    pass


class NoActiveProfileError(DaybookError):
    """The operation needs an active profile and none is selected."""
    pass
