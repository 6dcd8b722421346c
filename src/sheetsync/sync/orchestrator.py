"""End-to-end synchronization of unprocessed sheet rows."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from ..config import Settings
from ..errors import ConfigurationError
from ..records import RecordClient
from ..sheets import FilteredRow, TabularStore, UpdateEntry, coalesce, open_store, source_scheme
from ..transport import AuthenticatedTransport
from .models import (
    DEFAULT_CONFIG,
    SyncConfig,
    SyncResult,
    SyncStatus,
    status_values,
    validate_field_mapping,
)

logger = logging.getLogger(__name__)


def build_payload(mapping: dict[str, str], row_data: dict[str, str]) -> dict[str, str]:
    """Map a row's cells onto destination fields, leaving out unset cells."""
    return {
        destination: row_data[source]
        for source, destination in mapping.items()
        if row_data.get(source, "") != ""
    }


class SyncOrchestrator:
    """
    Drives one synchronization run.

    A run loads configuration and field mapping from the workbook, creates a
    downstream record for every unprocessed row, and writes each row's outcome
    back to the sheet in as few range writes as possible. Rows are handled one
    at a time in sheet order; a failing row is recorded and never stops the
    rows after it.
    """

    def __init__(
        self,
        source: str,
        records: RecordClient,
        store: Optional[TabularStore] = None,
        transport: Optional[AuthenticatedTransport] = None,
        defaults: Optional[dict[str, Any]] = None,
        metadata_sheet: str = "metadata",
        history=None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            source: Workbook location; its scheme selects the backend
            records: Client for the downstream record API
            store: Tabular store to use (created from ``source`` if not provided)
            transport: Authenticated transport for HTTP backends
            defaults: Configuration defaults overlaid by the metadata sheet
            metadata_sheet: Name of the key/value configuration sheet
            history: Optional RunHistoryStore the run is recorded in
            settings: Settings used to build the store (module settings if not provided)
        """
        self.source = source
        self.records = records
        self.store = store
        self.transport = transport
        self.defaults = {**DEFAULT_CONFIG, **(defaults or {})}
        self.metadata_sheet = metadata_sheet
        self.history = history
        self.settings = settings

    async def load_config(self, store: TabularStore) -> SyncConfig:
        """Overlay the metadata sheet on the defaults.

        Blank values are kept: a blank metadata cell deliberately overrides
        its default with an empty value.
        """
        merged = await store.read_kv(
            self.metadata_sheet,
            self.defaults["metadata_key_column"],
            self.defaults["metadata_value_column"],
            allow_empty_value=True,
            base=self.defaults,
        )
        return SyncConfig.from_mapping(merged)

    async def load_mapping(self, store: TabularStore, config: SyncConfig) -> dict[str, str]:
        """Load source-column -> destination-field pairs; blank destinations are ignored."""
        mapping = await store.read_kv(
            config.mapping_sheet,
            config.mapping_key_column,
            config.mapping_value_column,
            allow_empty_value=False,
            base={},
        )
        return validate_field_mapping(mapping)

    async def process_row(
        self, row: FilteredRow, config: SyncConfig, mapping: dict[str, str]
    ) -> SyncResult:
        """Create the record for one row, capturing any failure."""
        try:
            response = await self.records.create_record(
                config.record_type,
                config.record_version,
                build_payload(mapping, row.row_data),
            )
        except Exception as e:
            logger.error(f"Row {row.range_notation} failed: {e}", exc_info=True)
            return SyncResult(
                row_range=row.range_notation,
                status=SyncStatus.FAILURE,
                error_message=str(e),
            )
        logger.info(f"Row {row.range_notation} synchronized")
        return SyncResult(row_range=row.range_notation, status=SyncStatus.SUCCESS, response=response)

    async def write_back(
        self,
        store: TabularStore,
        config: SyncConfig,
        headers: list[str],
        entries: list[UpdateEntry],
    ) -> int:
        """Write status entries in one persistent session; returns the number of blocks."""
        column_indices = [headers.index(config.status_column), headers.index(config.message_column)]
        blocks = coalesce(entries)

        async with store.session(persistent=True) as session_id:
            for block in blocks:
                await store.write_block(session_id, config.incoming_sheet, column_indices, block)

        logger.info(f"Wrote {len(entries)} row statuses in {len(blocks)} blocks")
        return len(blocks)

    async def run(self) -> list[SyncResult]:
        """Run one synchronization and return a result per processed row.

        The run is recorded in history whether it succeeds or not. Rows already
        processed when a later step fails are recorded with the error, so the
        records created downstream stay traceable.
        """
        started_at = datetime.now(timezone.utc)
        results: list[SyncResult] = []
        try:
            await self._sync(results)
        except Exception as e:
            await self._record(started_at, results, error=str(e))
            raise
        await self._record(started_at, results)
        return results

    async def _sync(self, results: list[SyncResult]):
        source_scheme(self.source)
        store = self.store or open_store(self.source, self.transport, self.settings)

        config = await self.load_config(store)
        mapping = await self.load_mapping(store, config)
        logger.info(
            f"Syncing '{config.incoming_sheet}' as {config.record_type} v{config.record_version} "
            f"({len(mapping)} mapped fields)"
        )

        headers, rows = await store.filter_unprocessed_rows(
            config.incoming_sheet,
            config.status_column,
            config.max_rows,
            table_name=config.incoming_table,
        )
        if not rows:
            logger.info("No unprocessed rows")
            return

        for column in (config.status_column, config.message_column):
            if column not in headers:
                raise ConfigurationError(f"Column '{column}' not found in '{config.incoming_sheet}'")

        entries: list[UpdateEntry] = []
        for row in rows:
            result = await self.process_row(row, config, mapping)
            results.append(result)
            entries.append(UpdateEntry(row_address=row.row_address, values=status_values(result)))

        try:
            await self.write_back(store, config, headers, entries)
        except Exception as e:
            logger.error(f"Write-back failed after {len(results)} rows were processed: {e}")
            raise

        failures = sum(1 for r in results if r.status is SyncStatus.FAILURE)
        logger.info(f"Run finished: {len(results) - failures} succeeded, {failures} failed")

    async def _record(
        self, started_at: datetime, results: list[SyncResult], error: Optional[str] = None
    ):
        if self.history is None:
            return
        try:
            await self.history.record_run(self.source, started_at, results, error=error)
        except Exception as e:
            logger.error(f"Failed to record run history: {e}")
