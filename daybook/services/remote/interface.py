"""
Abstract Remote Collection Interface

DESIGN DECISION: The remote store is a plain document store: named
collections of JSON documents keyed by generated string ids.
This allows us to:
1. Swap Google Sheets for Firestore or a real database later
2. Use in-memory storage for testing
3. Keep the entity store decoupled from any backend

The interface is intentionally simple - no queries, no schema validation.
Filtering and validation happen in the entity store.
"""

from abc import ABC, abstractmethod
from typing import Any


Document = dict[str, Any]


class RemoteCollectionClient(ABC):
    """
    Abstract interface for remote collection operations.

    Any backend implementation (Google Sheets, Firestore, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def list(self, collection: str) -> list[Document]:
        """
        Read every document of a collection.

        Args:
            collection: Collection name

        Returns:
            Documents as dicts, each including its "id"

        Raises:
            RemoteError: If the read fails
        """
        pass

    @abstractmethod
    async def create(self, collection: str, fields: Document) -> str:
        """
        Create a document.

        Args:
            collection: Collection name
            fields: Document fields (without id)

        Returns:
            The generated document id

        Raises:
            RemoteError: If the write fails
        """
        pass

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        """
        Merge fields into an existing document.

        Raises:
            RemoteNotFoundError: If the document doesn't exist
            RemoteError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """
        Delete a document. Deleting a missing document is not an error.

        Raises:
            RemoteError: If the write fails
        """
        pass


class RemoteError(Exception):
    """Base exception for remote store operations."""
    pass


class RemoteNotFoundError(RemoteError):
    """Document not found in the remote store."""
    pass


class RemoteConnectionError(RemoteError):
    """Could not connect to the remote backend."""
    pass
