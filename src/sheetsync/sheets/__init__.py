"""Tabular store clients for spreadsheet backends."""

from .address import row_ordinal, split_range, strip_sheet
from .base import TabularStore, WorkbookSession
from .coalesce import coalesce
from .factory import open_store, source_scheme
from .memory import MemoryWorkbookStore
from .models import Block, FilteredRow, SessionState, SheetTable, UpdateEntry

__all__ = [
    "Block",
    "FilteredRow",
    "MemoryWorkbookStore",
    "SessionState",
    "SheetTable",
    "TabularStore",
    "UpdateEntry",
    "WorkbookSession",
    "coalesce",
    "open_store",
    "row_ordinal",
    "source_scheme",
    "split_range",
    "strip_sheet",
]
