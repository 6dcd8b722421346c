"""Tests for backend selection."""

import json

import pytest

from sheetsync.errors import UnsupportedSourceError
from sheetsync.sheets import MemoryWorkbookStore, open_store, source_scheme
from sheetsync.sheets.graph import GraphWorkbookStore
from sheetsync.sheets.gsheets import GoogleSheetsStore
from sheetsync.transport import AuthenticatedTransport, CredentialState


@pytest.mark.parametrize(
    "source,scheme",
    [
        ("https://graph.microsoft.com/v1.0/me/drive/items/abc/workbook", "https"),
        ("gsheets://1AbCdEf", "gsheets"),
        ("memory://", "memory"),
        ("MEMORY://", "memory"),
    ],
)
def test_supported_schemes(source, scheme):
    assert source_scheme(source) == scheme


@pytest.mark.parametrize("source", ["", "ftp://example.com/book.xlsx", "http://example.com", "book.xlsx"])
def test_unsupported_sources(source):
    with pytest.raises(UnsupportedSourceError):
        source_scheme(source)


def test_memory_store_from_file(tmp_path):
    path = tmp_path / "book.json"
    path.write_text(json.dumps({"metadata": [["Key", "Value"]]}))

    store = open_store(f"memory://{path}")

    assert isinstance(store, MemoryWorkbookStore)
    assert store.sheets == {"metadata": [["Key", "Value"]]}


def test_empty_memory_store():
    store = open_store("memory://")
    assert isinstance(store, MemoryWorkbookStore)
    assert store.sheets == {}


def test_gsheets_store(mock_settings):
    store = open_store("gsheets://1AbCdEf", settings=mock_settings)

    assert isinstance(store, GoogleSheetsStore)
    assert store.spreadsheet_id == "1AbCdEf"


def test_gsheets_requires_spreadsheet_id(mock_settings):
    with pytest.raises(UnsupportedSourceError):
        open_store("gsheets://", settings=mock_settings)


def test_graph_store_needs_credentials():
    with pytest.raises(UnsupportedSourceError):
        open_store("https://graph.microsoft.com/v1.0/me/drive/items/abc", AuthenticatedTransport())


@pytest.mark.asyncio
async def test_graph_store():
    transport = AuthenticatedTransport(
        CredentialState("access-1", "refresh-1", "https://login.example.com/token")
    )
    store = open_store("https://graph.microsoft.com/v1.0/me/drive/items/abc", transport)

    assert isinstance(store, GraphWorkbookStore)
    assert store.workbook_url.endswith("/items/abc/workbook")
    await transport.close()
