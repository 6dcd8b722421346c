"""Pytest configuration and shared fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from sheetsync.config import Settings
from sheetsync.records import RecordClient
from sheetsync.sheets import MemoryWorkbookStore

INCOMING_HEADERS = ["Name", "Email", "Amount", "Processed", "Result"]


def make_workbook(incoming_rows: list[list[str]], metadata: list[list[str]] = None) -> dict:
    """Build the sheets of a workbook with metadata, mapping and incoming sheets."""
    return {
        "metadata": [["Key", "Value"]]
        + (metadata if metadata is not None else [["record_type", "contact"], ["record_version", "2"]]),
        "mapping": [
            ["Source", "Destination"],
            ["Name", "full_name"],
            ["Email", "email"],
            ["Amount", "amount"],
            ["Notes", ""],
        ],
        "incoming": [list(INCOMING_HEADERS)] + incoming_rows,
    }


@pytest.fixture
def mock_settings(tmp_path: Path) -> Settings:
    """Create settings with test values."""
    creds_file = tmp_path / "credentials.json"
    creds_file.write_text('{"installed": {"client_id": "test"}}')

    return Settings(
        source="memory://",
        records_base_url="https://records.example.com/api",
        token_url="https://login.example.com/token",
        client_id="client-123",
        client_secret="secret-456",
        access_token="access-1",
        refresh_token="refresh-1",
        secrets_env_path=tmp_path / ".env",
        google_credentials_path=creds_file,
        google_token_path=tmp_path / "token.json",
        database_path=tmp_path / "sheetsync.db",
        history_enabled=False,
    )


@pytest.fixture
def workbook() -> MemoryWorkbookStore:
    """An in-memory workbook with three unprocessed rows and one processed row."""
    return MemoryWorkbookStore(
        make_workbook(
            [
                ["Ada", "ada@example.com", "10", "", ""],
                ["Grace", "grace@example.com", "20", "", ""],
                ["Alan", "alan@example.com", "30", "Y", "SUCCESS"],
                ["Edsger", "edsger@example.com", "40", "", ""],
            ]
        )
    )


@pytest.fixture
def mock_records() -> Mock:
    """Create a mocked record client that always succeeds."""
    client = Mock(spec=RecordClient)
    client.create_record = AsyncMock(side_effect=lambda t, v, fields: {"id": fields.get("email")})
    return client


@pytest.fixture
def make_store():
    """Factory for in-memory workbooks built with ``make_workbook``."""

    def _make(incoming_rows: list[list[str]], metadata: list[list[str]] = None) -> MemoryWorkbookStore:
        return MemoryWorkbookStore(make_workbook(incoming_rows, metadata))

    return _make
