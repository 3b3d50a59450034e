"""
In-Memory Remote Collection Client

Used by the test-suite and for offline development
(DAYBOOK storage_backend=memory). Behaves like a remote store:
documents are deep-copied on the way in and out, ids are generated,
and failures can be injected per operation.
"""

import asyncio
import copy
from collections import defaultdict
from typing import Optional
from uuid import uuid4

from daybook.services.remote.interface import (
    Document,
    RemoteCollectionClient,
    RemoteError,
    RemoteNotFoundError,
)


class InMemoryCollectionClient(RemoteCollectionClient):
    """
    Dict-backed remote store.

    Failure injection:
        client.fail_next("create", "todos-v1")
        client.fail_on("update", "profiles-v1", doc_id="p2")
    """

    def __init__(self, latency: float = 0.0):
        """
        Args:
            latency: Seconds every call sleeps before completing,
                     to surface ordering issues in tests.
        """
        self._collections: dict[str, dict[str, Document]] = defaultdict(dict)
        self._latency = latency
        self._fail_once: set[tuple[str, str]] = set()
        self._fail_always: set[tuple[str, str, Optional[str]]] = set()
        self.calls: list[tuple] = []

    def fail_next(self, operation: str, collection: str) -> None:
        """Make the next `operation` on `collection` raise RemoteError."""
        self._fail_once.add((operation, collection))

    def fail_on(
        self,
        operation: str,
        collection: str,
        doc_id: Optional[str] = None,
    ) -> None:
        """Make every matching call raise RemoteError until `clear_failures`."""
        self._fail_always.add((operation, collection, doc_id))

    def clear_failures(self) -> None:
        self._fail_once.clear()
        self._fail_always.clear()

    def seed(self, collection: str, documents: list[Document]) -> None:
        """Insert documents directly (each must carry an "id")."""
        for document in documents:
            doc = copy.deepcopy(document)
            doc_id = str(doc.pop("id"))
            self._collections[collection][doc_id] = doc

    def documents(self, collection: str) -> dict[str, Document]:
        """Raw view of a collection for assertions."""
        return copy.deepcopy(self._collections[collection])

    async def _enter(
        self,
        operation: str,
        collection: str,
        doc_id: Optional[str] = None,
    ) -> None:
        self.calls.append((operation, collection, doc_id))
        if self._latency:
            await asyncio.sleep(self._latency)
        if (operation, collection) in self._fail_once:
            self._fail_once.discard((operation, collection))
            raise RemoteError(f"Injected failure: {operation} {collection}")
        if (
            (operation, collection, None) in self._fail_always
            or (operation, collection, doc_id) in self._fail_always
        ):
            raise RemoteError(f"Injected failure: {operation} {collection}/{doc_id}")

    async def list(self, collection: str):
        await self._enter("list", collection)
        return [
            {**copy.deepcopy(doc), "id": doc_id}
            for doc_id, doc in self._collections[collection].items()
        ]

    async def create(self, collection: str, fields: Document) -> str:
        await self._enter("create", collection)
        doc_id = uuid4().hex
        self._collections[collection][doc_id] = copy.deepcopy(fields)
        return doc_id

    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        await self._enter("update", collection, doc_id)
        if doc_id not in self._collections[collection]:
            raise RemoteNotFoundError(f"{collection}/{doc_id} not found")
        self._collections[collection][doc_id].update(copy.deepcopy(fields))

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._enter("delete", collection, doc_id)
        self._collections[collection].pop(doc_id, None)
