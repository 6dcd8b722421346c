"""In-process workbook backend used for dry runs and tests."""

import copy
import logging
import uuid
from typing import Optional

from ..errors import ConfigurationError
from .address import col_letter_to_index, column_letters, row_address, row_ordinal, split_range
from .base import TabularStore
from .models import FilteredRow, SheetTable

logger = logging.getLogger(__name__)


class MemoryWorkbookStore(TabularStore):
    """A workbook held as ``{sheet name: rows of cell strings}``.

    Row 1 of every sheet is its header row. Writes made inside a
    non-persistent session are discarded when the session closes.
    """

    def __init__(self, sheets: Optional[dict[str, list[list[str]]]] = None):
        super().__init__()
        self.sheets: dict[str, list[list[str]]] = sheets if sheets is not None else {}
        self.writes: list[tuple[str, str, list[list[Optional[str]]]]] = []
        self._scratch: dict[str, dict[str, list[list[str]]]] = {}

    async def _open(self, persistent: bool) -> str:
        session_id = f"memory-{uuid.uuid4()}"
        if not persistent:
            self._scratch[session_id] = copy.deepcopy(self.sheets)
        return session_id

    async def _close(self, session_id: str):
        self._scratch.pop(session_id, None)

    def _sheet(self, sheet_name: str, session_id: Optional[str] = None) -> list[list[str]]:
        sheets = self._scratch.get(session_id, self.sheets) if session_id else self.sheets
        if sheet_name not in sheets:
            raise ConfigurationError(f"Sheet '{sheet_name}' does not exist")
        return sheets[sheet_name]

    async def read_range(self, sheet_name: str) -> SheetTable:
        return SheetTable.from_values(self._sheet(sheet_name))

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
        for index, record in enumerate(table.rows):
            if len(rows) >= max_rows:
                break
            if record[status_column] == "":
                rows.append(
                    FilteredRow(
                        row_address=row_address(0, last_col, index + 2, sheet_name),
                        row_data=record,
                    )
                )
        return table.headers, rows

    async def _write_range(
        self,
        session_id: Optional[str],
        sheet_name: str,
        range_notation: str,
        values: list[list[Optional[str]]],
    ):
        corners = split_range(range_notation)
        top, left = row_ordinal(corners[0]), col_letter_to_index(column_letters(corners[0]))
        sheet = self._sheet(sheet_name, session_id)

        for row_offset, row_values in enumerate(values):
            row_index = top - 1 + row_offset
            while len(sheet) <= row_index:
                sheet.append([])
            row = sheet[row_index]
            for col_offset, value in enumerate(row_values):
                if value is None:
                    continue
                col_index = left + col_offset
                while len(row) <= col_index:
                    row.append("")
                row[col_index] = value

        self.writes.append((sheet_name, range_notation, values))
