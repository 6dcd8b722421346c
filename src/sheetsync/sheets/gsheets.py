"""Google Sheets backend."""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..errors import ConfigurationError, UnexpectedStatusError
from .address import quote_sheet, row_address, split_range
from .base import TabularStore
from .models import FilteredRow, SheetTable

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def _status(error: HttpError) -> int:
    return int(getattr(error.resp, "status", 0) or 0)


class GoogleSheetsStore(TabularStore):
    """Spreadsheet accessed through the Sheets v4 API.

    The Sheets API has neither workbook sessions nor server-side filters:
    sessions are local bookkeeping only and unprocessed rows are found by
    reading the whole sheet.
    """

    def __init__(
        self,
        spreadsheet_id: str,
        credentials_path: Path,
        token_path: Path,
        service=None,
    ):
        super().__init__()
        self.spreadsheet_id = spreadsheet_id
        self.credentials_path = credentials_path
        self.token_path = token_path
        self._service = service

    def _get_credentials(self) -> Credentials:
        """Get or refresh OAuth2 credentials."""
        creds = None

        if self.token_path.exists():
            creds = Credentials.from_authorized_user_file(str(self.token_path), SCOPES)

        if not creds or not creds.valid:
            if creds and creds.expired and creds.refresh_token:
                creds.refresh(Request())
            else:
                if not self.credentials_path.exists():
                    raise FileNotFoundError(
                        f"Google credentials file not found at {self.credentials_path}. "
                        "Please download it from Google Cloud Console."
                    )
                flow = InstalledAppFlow.from_client_secrets_file(str(self.credentials_path), SCOPES)
                creds = flow.run_local_server(port=0)

            # Save credentials for next run
            self.token_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.token_path, "w") as token:
                token.write(creds.to_json())

        return creds

    @property
    def service(self):
        """Get or create the Sheets API service."""
        if self._service is None:
            self._service = build("sheets", "v4", credentials=self._get_credentials())
        return self._service

    async def _open(self, persistent: bool) -> str:
        return f"local-{uuid.uuid4()}"

    async def _close(self, session_id: str):
        pass

    def _get_values(self, sheet_name: str) -> list[list]:
        try:
            result = (
                self.service.spreadsheets()
                .values()
                .get(spreadsheetId=self.spreadsheet_id, range=quote_sheet(sheet_name))
                .execute()
            )
        except HttpError as e:
            raise UnexpectedStatusError(_status(e), f"Read sheet '{sheet_name}'", str(e)) from e
        return result.get("values", [])

    async def read_range(self, sheet_name: str) -> SheetTable:
        values = await asyncio.to_thread(self._get_values, sheet_name)
        return SheetTable.from_values(values)

    async def filter_unprocessed_rows(
        self,
        sheet_name: str = "incoming",
        status_column: str = "Processed",
        max_rows: int = 500,
        table_name: Optional[str] = None,
    ) -> tuple[list[str], list[FilteredRow]]:
        table = await self.read_range(sheet_name)
        if status_column not in table.headers:
            raise ConfigurationError(f"Column '{status_column}' not found in sheet '{sheet_name}'")

        last_col = len(table.headers) - 1
        rows = []
        # Row 1 holds the headers, so data row i lives on sheet row i + 2.
        for index, record in enumerate(table.rows):
            if len(rows) >= max_rows:
                break
            if record[status_column] != "":
                continue
            rows.append(
                FilteredRow(
                    row_address=row_address(0, last_col, index + 2, sheet_name),
                    row_data=record,
                )
            )

        logger.info(f"Found {len(rows)} unprocessed rows in '{sheet_name}'")
        return table.headers, rows

    def _update_values(self, sheet_name: str, address: str, values: list[list[Optional[str]]]):
        try:
            (
                self.service.spreadsheets()
                .values()
                .update(
                    spreadsheetId=self.spreadsheet_id,
                    range=f"{quote_sheet(sheet_name)}!{address}",
                    valueInputOption="RAW",
                    body={"values": values},
                )
                .execute()
            )
        except HttpError as e:
            raise UnexpectedStatusError(_status(e), f"Write {sheet_name}!{address}", str(e)) from e

    async def _write_range(
        self,
        session_id: Optional[str],
        sheet_name: str,
        range_notation: str,
        values: list[list[Optional[str]]],
    ):
        # The Sheets API skips null cells, which leaves non-target columns untouched.
        address = ":".join(split_range(range_notation))
        await asyncio.to_thread(self._update_values, sheet_name, address, values)
