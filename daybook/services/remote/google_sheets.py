"""
Google Sheets Remote Collection Client

DESIGN DECISION: Google Sheets is used as the remote document store because:
1. Users can look at (and export) their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (the entity store serializes writes per collection)
- No queries (the entity store filters in Python)

Each collection is one worksheet. A document is one row:
id, updated_at, data_json. Free-form documents fit without schema
migrations when a model gains a field.

gspread is blocking, so every call runs in a worker thread.
"""

import asyncio
import json
from datetime import datetime
from typing import Optional
from uuid import uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from daybook.config import GoogleSheetsSettings, get_settings
from daybook.services.remote.interface import (
    Document,
    RemoteCollectionClient,
    RemoteConnectionError,
    RemoteError,
    RemoteNotFoundError,
)


logger = structlog.get_logger(__name__)

# Column layout of every collection worksheet
DOCUMENT_COLUMNS = [
    "id",
    "updated_at",
    "data_json",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise RemoteConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise RemoteConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise RemoteConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_collection_sheet(self, collection: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a collection."""
        if collection in self._worksheets:
            return self._worksheets[collection]

        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(collection)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=collection,
                rows=1000,
                cols=len(DOCUMENT_COLUMNS),
            )
            sheet.append_row(DOCUMENT_COLUMNS)

        self._worksheets[collection] = sheet
        return sheet


def _find_row(all_rows: list, doc_id: str) -> Optional[int]:
    """Return the 1-based sheet row of a document, or None."""
    # Row 1 is the header
    for idx, row in enumerate(all_rows[1:], start=2):
        if row and row[0] == doc_id:
            return idx
    return None


class GoogleSheetsCollectionClient(RemoteCollectionClient):
    """
    Google Sheets implementation of the remote collection client.

    Documents are stored one per row, fields JSON-serialized.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -------------------------------------------------------------------------
    # Blocking helpers (run in worker threads)
    # -------------------------------------------------------------------------

    def _read_documents(self, collection: str):
        sheet = self._client.get_collection_sheet(collection)
        documents = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                data = json.loads(row[2]) if len(row) > 2 and row[2] else {}
            except json.JSONDecodeError:
                logger.warning(
                    "malformed_document_skipped",
                    collection=collection,
                    doc_id=row[0],
                )
                continue
            documents.append({**data, "id": row[0]})
        return documents

    def _append_document(self, collection: str, doc_id: str, fields: Document) -> None:
        sheet = self._client.get_collection_sheet(collection)
        # An earlier attempt may have landed before its response was lost
        if _find_row(sheet.get_all_values(), doc_id) is not None:
            logger.info("document_already_appended", collection=collection, doc_id=doc_id)
            return
        sheet.append_row(
            [doc_id, datetime.utcnow().isoformat(), json.dumps(fields)],
            value_input_option="RAW",
        )

    def _merge_document(self, collection: str, doc_id: str, fields: Document) -> None:
        sheet = self._client.get_collection_sheet(collection)
        all_rows = sheet.get_all_values()
        idx = _find_row(all_rows, doc_id)
        if idx is None:
            raise RemoteNotFoundError(f"Document not found: {collection}/{doc_id}")

        row = all_rows[idx - 1]
        data = json.loads(row[2]) if len(row) > 2 and row[2] else {}
        data.update(fields)
        sheet.update(
            range_name=f"A{idx}:C{idx}",
            values=[[doc_id, datetime.utcnow().isoformat(), json.dumps(data)]],
            value_input_option="RAW",
        )

    def _remove_document(self, collection: str, doc_id: str) -> None:
        sheet = self._client.get_collection_sheet(collection)
        idx = _find_row(sheet.get_all_values(), doc_id)
        if idx is not None:
            sheet.delete_rows(idx)

    # -------------------------------------------------------------------------
    # RemoteCollectionClient
    # -------------------------------------------------------------------------

    async def list(self, collection: str):
        """Read all documents of a collection."""
        try:
            return await asyncio.to_thread(self._read_documents, collection)
        except RemoteError:
            raise
        except Exception as e:
            raise RemoteError(f"Failed to list {collection}: {e}")

    async def create(self, collection: str, fields: Document) -> str:
        """Append a document row. The id is fixed before any retry."""
        doc_id = uuid4().hex
        await self._put_document(collection, doc_id, fields)
        return doc_id

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _put_document(self, collection: str, doc_id: str, fields: Document) -> None:
        try:
            await asyncio.to_thread(self._append_document, collection, doc_id, fields)
        except RemoteError:
            raise
        except Exception as e:
            raise RemoteError(f"Failed to create document in {collection}: {e}")

    @retry(
        retry=retry_if_not_exception_type(RemoteNotFoundError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def update(self, collection: str, doc_id: str, fields: Document) -> None:
        """Merge fields into an existing document row."""
        try:
            await asyncio.to_thread(self._merge_document, collection, doc_id, fields)
        except RemoteError:
            raise
        except Exception as e:
            raise RemoteError(f"Failed to update {collection}/{doc_id}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document row (missing rows are ignored)."""
        try:
            await asyncio.to_thread(self._remove_document, collection, doc_id)
        except RemoteError:
            raise
        except Exception as e:
            raise RemoteError(f"Failed to delete {collection}/{doc_id}: {e}")
