"""
Remote Store Package

Provides the abstract collection interface and its implementations.
Google Sheets is the production backend; the in-memory client is
used for tests and offline development.
"""

from daybook.services.remote.interface import (
    Document,
    RemoteCollectionClient,
    RemoteConnectionError,
    RemoteError,
    RemoteNotFoundError,
)
from daybook.services.remote.memory import InMemoryCollectionClient
from daybook.services.remote.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsCollectionClient,
)

__all__ = [
    # Interface
    "Document",
    "RemoteCollectionClient",
    # Exceptions
    "RemoteConnectionError",
    "RemoteError",
    "RemoteNotFoundError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsCollectionClient",
    "InMemoryCollectionClient",
]
