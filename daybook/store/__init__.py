"""
Entity Store Package

Owns the synchronized collections and their write ordering.
"""

from daybook.store.errors import (
    DaybookError,
    ImmutableRecordError,
    NoActiveProfileError,
    PartialSwitchError,
    RecordNotFoundError,
    RemoteWriteError,
)
from daybook.store.collection import CollectionStore, ProfileCollectionStore
from daybook.store.entity_store import EntityStore, StoreSnapshot
from daybook.store.deferred_delete import DeferredDeleteController, DeleteState

__all__ = [
    # Errors
    "DaybookError",
    "ImmutableRecordError",
    "NoActiveProfileError",
    "PartialSwitchError",
    "RecordNotFoundError",
    "RemoteWriteError",
    # Stores
    "CollectionStore",
    "EntityStore",
    "ProfileCollectionStore",
    "StoreSnapshot",
    # Deferred deletion
    "DeferredDeleteController",
    "DeleteState",
]
