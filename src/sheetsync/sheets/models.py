"""Data models for tabular store operations."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .address import strip_sheet


def cell_text(value: Any) -> str:
    """Render a backend cell value as the string a RowRecord holds."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def zip_row(headers: list[str], values: list[Any]) -> dict[str, str]:
    """Zip a header row with a value row.

    A value row shorter than the headers is padded with empty strings.
    """
    return {
        header: cell_text(values[index]) if index < len(values) else ""
        for index, header in enumerate(headers)
    }


class SheetTable(BaseModel):
    """The used region of a sheet: a header row plus records."""

    headers: list[str] = Field(default_factory=list)
    rows: list[dict[str, str]] = Field(default_factory=list)

    @classmethod
    def from_values(cls, values: list[list[Any]]) -> "SheetTable":
        """Build a table from raw values, treating the first row as headers."""
        if not values:
            return cls()
        headers = [cell_text(v) for v in values[0]]
        return cls(headers=headers, rows=[zip_row(headers, row) for row in values[1:]])


class FilteredRow(BaseModel):
    """An unprocessed row together with its physical cell addresses."""

    row_address: list[str]
    row_data: dict[str, str] = Field(default_factory=dict)

    @field_validator("row_address")
    @classmethod
    def _non_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("row_address must contain at least one cell")
        return value

    @property
    def range_notation(self) -> str:
        """The row's span, e.g. ``incoming!A5:F5``."""
        if len(self.row_address) == 1:
            return self.row_address[0]
        return f"{self.row_address[0]}:{strip_sheet(self.row_address[-1])}"


class UpdateEntry(BaseModel):
    """Values to write into one processed row."""

    row_address: list[str]
    values: list[Optional[str]] = Field(default_factory=list)

    @field_validator("row_address")
    @classmethod
    def _non_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("row_address must contain at least one cell")
        return value


class Block(BaseModel):
    """A run of contiguous rows written with a single range write."""

    start_row: int
    end_row: int
    entries: list[UpdateEntry] = Field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.entries)

    @property
    def top_left(self) -> str:
        return self.entries[0].row_address[0]

    @property
    def bottom_right(self) -> str:
        return self.entries[-1].row_address[-1]

    @property
    def range_notation(self) -> str:
        """The rectangle covering every entry, e.g. ``incoming!H3:I5``."""
        return f"{self.top_left}:{strip_sheet(self.bottom_right)}"


class SessionState(str, Enum):
    """Lifecycle of a workbook session."""

    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"
