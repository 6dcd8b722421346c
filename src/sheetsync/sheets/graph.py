"""Microsoft Graph workbook backend."""

import logging
from typing import Optional
from urllib.parse import quote

from ..errors import SessionError, UnexpectedStatusError
from ..transport import AuthenticatedTransport
from .address import split_range
from .base import TabularStore
from .models import FilteredRow, SheetTable, cell_text, zip_row

logger = logging.getLogger(__name__)

SESSION_HEADER = "workbook-session-id"


def _segment(name: str) -> str:
    """Quote a worksheet/table/column name for an OData key segment."""
    return quote(name.replace("'", "''"), safe="")


class GraphWorkbookStore(TabularStore):
    """Workbook on OneDrive/SharePoint accessed through the Graph REST API.

    Supports transactional sessions and server-side table filters, so
    unprocessed rows are selected by Excel itself rather than by scanning
    the whole sheet.
    """

    def __init__(self, workbook_url: str, transport: AuthenticatedTransport):
        super().__init__()
        workbook_url = workbook_url.rstrip("/")
        if not workbook_url.endswith("/workbook"):
            workbook_url = f"{workbook_url}/workbook"
        self.workbook_url = workbook_url
        self.transport = transport

    def _headers(self, session_id: Optional[str] = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if session_id is None and self._open_session is not None:
            session_id = self._open_session.session_id
        if session_id:
            headers[SESSION_HEADER] = session_id
        return headers

    async def _open(self, persistent: bool) -> str:
        try:
            body = await self.transport.call_with_refresh(
                "POST",
                f"{self.workbook_url}/createSession",
                201,
                "Create workbook session",
                headers=self._headers(),
                json={"persistChanges": persistent},
            )
        except UnexpectedStatusError as e:
            raise SessionError(f"Failed to create workbook session: {e}") from e
        if not isinstance(body, dict) or not body.get("id"):
            raise SessionError("Workbook session response carried no session id")
        return body["id"]

    async def _close(self, session_id: str):
        try:
            await self.transport.call_with_refresh(
                "POST",
                f"{self.workbook_url}/closeSession",
                204,
                "Close workbook session",
                expects_body=False,
                headers=self._headers(session_id),
            )
        except UnexpectedStatusError as e:
            raise SessionError(f"Failed to close workbook session {session_id}: {e}") from e

    async def read_range(self, sheet_name: str) -> SheetTable:
        body = await self.transport.call_with_refresh(
            "GET",
            f"{self.workbook_url}/worksheets('{_segment(sheet_name)}')/usedRange(valuesOnly=true)",
            200,
            f"Read sheet '{sheet_name}'",
            headers=self._headers(),
        )
        values = body.get("values", []) if isinstance(body, dict) else []
        return SheetTable.from_values(values)

    async def filter_unprocessed_rows(
        self,
        sheet_name: str = "incoming",
        status_column: str = "Processed",
        max_rows: int = 500,
        table_name: Optional[str] = None,
    ) -> tuple[list[str], list[FilteredRow]]:
        table_url = f"{self.workbook_url}/tables('{_segment(table_name or sheet_name)}')"

        async with self.session(persistent=False) as session_id:
            headers = self._headers(session_id)
            await self.transport.call_with_refresh(
                "POST",
                f"{table_url}/clearFilters",
                204,
                f"Clear filters on '{table_name or sheet_name}'",
                expects_body=False,
                headers=headers,
            )
            await self.transport.call_with_refresh(
                "POST",
                f"{table_url}/columns('{_segment(status_column)}')/filter/apply",
                204,
                f"Filter '{status_column}' for empty values",
                expects_body=False,
                headers=headers,
                json={"criteria": {"filterOn": "Custom", "criterion1": "="}},
            )
            body = await self.transport.call_with_refresh(
                "GET",
                f"{table_url}/range/visibleView/rows",
                200,
                f"Read unprocessed rows of '{sheet_name}'",
                headers=headers,
                params={"$top": str(max_rows + 1)},
            )

        views = body.get("value", []) if isinstance(body, dict) else []
        if not views:
            return [], []

        # The first visible row of a table range is always its header row.
        header_values = views[0].get("values") or [[]]
        headers = [cell_text(v) for v in header_values[0]]

        rows = []
        for view in views[1 : max_rows + 1]:
            addresses = (view.get("cellAddresses") or [[]])[0]
            values = (view.get("values") or [[]])[0]
            rows.append(FilteredRow(row_address=addresses, row_data=zip_row(headers, values)))

        logger.info(f"Found {len(rows)} unprocessed rows in '{sheet_name}'")
        return headers, rows

    async def _write_range(
        self,
        session_id: Optional[str],
        sheet_name: str,
        range_notation: str,
        values: list[list[Optional[str]]],
    ):
        address = ":".join(split_range(range_notation))
        await self.transport.call_with_refresh(
            "PATCH",
            f"{self.workbook_url}/worksheets('{_segment(sheet_name)}')/range(address='{address}')",
            200,
            f"Write {sheet_name}!{address}",
            headers=self._headers(session_id),
            json={"values": values},
        )
