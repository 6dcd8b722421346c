"""Backend-independent tabular store interface."""

import copy
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from ..errors import SessionError
from .models import Block, FilteredRow, SessionState, SheetTable, UpdateEntry

logger = logging.getLogger(__name__)


class WorkbookSession:
    """Tracks one session through UNOPENED -> OPEN -> CLOSED."""

    def __init__(self, persistent: bool):
        self.persistent = persistent
        self.session_id: Optional[str] = None
        self.state = SessionState.UNOPENED

    def opened(self, session_id: str):
        if self.state is not SessionState.UNOPENED:
            raise SessionError(f"Session cannot be reopened (state: {self.state.value})")
        self.session_id = session_id
        self.state = SessionState.OPEN

    def closed(self):
        self.state = SessionState.CLOSED


class TabularStore(ABC):
    """Abstract base class for tabular backends.

    Subclasses implement the raw reads, writes and session hooks; the store
    adds the shared key/value loading, session bookkeeping and the sparse
    row layout used for block writes.
    """

    def __init__(self):
        self._sessions: dict[str, WorkbookSession] = {}
        self._open_session: Optional[WorkbookSession] = None

    # Backend hooks

    @abstractmethod
    async def read_range(self, sheet_name: str) -> SheetTable:
        """Read the used region of a sheet, first row as headers."""
        pass

    @abstractmethod
    async def filter_unprocessed_rows(
        self,
        sheet_name: str = "incoming",
        status_column: str = "Processed",
        max_rows: int = 500,
        table_name: Optional[str] = None,
    ) -> tuple[list[str], list[FilteredRow]]:
        """Return the headers and the rows whose status column is empty."""
        pass

    @abstractmethod
    async def _open(self, persistent: bool) -> str:
        """Open a backend session and return its id."""
        pass

    @abstractmethod
    async def _close(self, session_id: str):
        """Close a backend session."""
        pass

    @abstractmethod
    async def _write_range(
        self,
        session_id: Optional[str],
        sheet_name: str,
        range_notation: str,
        values: list[list[Optional[str]]],
    ):
        """Write a rectangle of values; ``None`` cells are left untouched."""
        pass

    # Sessions

    async def begin_session(self, persistent: bool) -> str:
        """Open a transactional session.

        Only one session may be open at a time on a store.
        """
        if self._open_session is not None:
            raise SessionError(
                f"Session {self._open_session.session_id} is still open; "
                "close it before opening another"
            )
        session = WorkbookSession(persistent)
        session.opened(await self._open(persistent))
        self._sessions[session.session_id] = session
        self._open_session = session
        logger.info(f"Opened {'persistent' if persistent else 'non-persistent'} session {session.session_id}")
        return session.session_id

    async def end_session(self, session_id: str):
        """Close a session. The session is CLOSED afterwards even if closing failed."""
        session = self._sessions.get(session_id)
        if session is None or session.state is not SessionState.OPEN:
            raise SessionError(f"Session {session_id} is not open")
        try:
            await self._close(session_id)
        finally:
            session.closed()
            if self._open_session is session:
                self._open_session = None
        logger.info(f"Closed session {session_id}")

    def session_state(self, session_id: str) -> SessionState:
        session = self._sessions.get(session_id)
        return session.state if session else SessionState.UNOPENED

    @asynccontextmanager
    async def session(self, persistent: bool) -> AsyncIterator[str]:
        """Open a session for the duration of a block and always close it."""
        session_id = await self.begin_session(persistent)
        try:
            yield session_id
        except BaseException:
            try:
                await self.end_session(session_id)
            except SessionError as close_error:
                logger.warning(f"Failed to close session {session_id} after an error: {close_error}")
            raise
        else:
            await self.end_session(session_id)

    # Reads

    async def read_kv(
        self,
        sheet_name: str,
        key_column: str,
        value_column: str,
        allow_empty_value: bool,
        base: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Overlay a two-column sheet onto a copy of ``base``.

        Rows without a key are ignored. Unless ``allow_empty_value`` is set,
        rows with an empty value are ignored too, so the base value survives.
        """
        result = copy.deepcopy(base) if base else {}
        table = await self.read_range(sheet_name)

        for row in table.rows:
            key = row.get(key_column, "").strip()
            if not key:
                continue
            value = row.get(value_column, "")
            if value == "" and not allow_empty_value:
                continue
            result[key] = value

        logger.info(f"Loaded {len(result)} keys from sheet '{sheet_name}'")
        return result

    # Writes

    async def write_block(
        self,
        session_id: Optional[str],
        sheet_name: str,
        column_indices: list[int],
        block: Block,
    ):
        """Write the entries of a block with a single range write."""
        values = [self._sparse_row(entry, column_indices) for entry in block.entries]
        await self._write_range(session_id, sheet_name, block.range_notation, values)
        logger.info(
            f"Wrote rows {block.start_row}-{block.end_row} ({block.size}) to {block.range_notation}"
        )

    @staticmethod
    def _sparse_row(entry: UpdateEntry, column_indices: list[int]) -> list[Optional[str]]:
        """Lay out an entry across its row, with ``None`` outside the target columns."""
        if len(entry.values) != len(column_indices):
            raise ValueError(
                f"Expected {len(column_indices)} values for {entry.row_address[0]}, "
                f"got {len(entry.values)}"
            )
        row: list[Optional[str]] = [None] * len(entry.row_address)
        for index, value in zip(column_indices, entry.values):
            if not 0 <= index < len(row):
                raise ValueError(
                    f"Column index {index} is outside the row span of {entry.row_address[0]}"
                )
            row[index] = value
        return row

    async def close(self):
        """Release backend resources."""
        pass
