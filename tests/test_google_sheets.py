"""
Tests for the Google Sheets collection client, against an in-memory
worksheet (no network).
"""

import json
from unittest.mock import MagicMock

import pytest
from tenacity import wait_none

from daybook.services.remote import (
    GoogleSheetsClient,
    GoogleSheetsCollectionClient,
    RemoteNotFoundError,
)
from daybook.services.remote.google_sheets import DOCUMENT_COLUMNS


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the collection client."""

    def __init__(self):
        self.rows = [list(DOCUMENT_COLUMNS)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append(list(values))

    def update(self, range_name, values, value_input_option=None):
        idx = int(range_name.split(":")[0][1:])
        self.rows[idx - 1] = list(values[0])

    def delete_rows(self, idx):
        del self.rows[idx - 1]


@pytest.fixture
def sheet():
    return FakeWorksheet()


@pytest.fixture
def client(sheet):
    sheets = MagicMock(spec=GoogleSheetsClient)
    sheets.get_collection_sheet.return_value = sheet
    return GoogleSheetsCollectionClient(sheets)


class TestGoogleSheetsCollectionClient:
    """One row per document: id, updated_at, data_json."""

    @pytest.mark.asyncio
    async def test_create_appends_row(self, client, sheet):
        doc_id = await client.create("todos-v1", {"title": "Buy milk"})

        assert len(sheet.rows) == 2
        assert sheet.rows[1][0] == doc_id
        assert json.loads(sheet.rows[1][2]) == {"title": "Buy milk"}

    @pytest.mark.asyncio
    async def test_list_returns_documents_with_id(self, client):
        doc_id = await client.create("todos-v1", {"title": "Buy milk"})
        assert await client.list("todos-v1") == [{"title": "Buy milk", "id": doc_id}]

    @pytest.mark.asyncio
    async def test_list_skips_malformed_rows(self, client, sheet):
        sheet.rows.append(["bad", "2024-03-01T00:00:00", "{not json"])
        sheet.rows.append(["", "", ""])
        doc_id = await client.create("todos-v1", {"title": "Buy milk"})
        assert [d["id"] for d in await client.list("todos-v1")] == [doc_id]

    @pytest.mark.asyncio
    async def test_update_merges_fields(self, client, sheet):
        doc_id = await client.create("todos-v1", {"title": "Buy milk", "completed": False})
        await client.update("todos-v1", doc_id, {"completed": True})
        assert json.loads(sheet.rows[1][2]) == {"title": "Buy milk", "completed": True}

    @pytest.mark.asyncio
    async def test_update_missing_document(self, client):
        with pytest.raises(RemoteNotFoundError):
            await client.update("todos-v1", "missing", {"completed": True})

    @pytest.mark.asyncio
    async def test_delete_removes_row(self, client, sheet):
        keep = await client.create("todos-v1", {"title": "Keep"})
        drop = await client.create("todos-v1", {"title": "Drop"})

        await client.delete("todos-v1", drop)
        await client.delete("todos-v1", "missing")

        assert [row[0] for row in sheet.rows[1:]] == [keep]

    @pytest.mark.asyncio
    async def test_retried_create_does_not_duplicate(self, monkeypatch):
        """A row that landed before the response was lost is not appended twice."""

        class LostResponseWorksheet(FakeWorksheet):
            def __init__(self):
                super().__init__()
                self.failures = 1

            def append_row(self, values, value_input_option=None):
                super().append_row(values, value_input_option)
                if self.failures:
                    self.failures -= 1
                    raise ConnectionError("response lost")

        monkeypatch.setattr(
            GoogleSheetsCollectionClient._put_document.retry, "wait", wait_none()
        )
        sheet = LostResponseWorksheet()
        sheets = MagicMock(spec=GoogleSheetsClient)
        sheets.get_collection_sheet.return_value = sheet
        client = GoogleSheetsCollectionClient(sheets)

        doc_id = await client.create("todos-v1", {"title": "Buy milk"})

        documents = await client.list("todos-v1")
        assert documents == [{"title": "Buy milk", "id": doc_id}]
