"""Tests for the synchronization orchestrator."""

from unittest.mock import AsyncMock, Mock

import pytest

from sheetsync.errors import ConfigurationError, SessionError, UnexpectedStatusError, UnsupportedSourceError
from sheetsync.records import RecordClient
from sheetsync.sheets import MemoryWorkbookStore
from sheetsync.sync import SyncOrchestrator, SyncResult, SyncStatus, build_payload
from sheetsync.sync.models import SyncConfig, status_values


def orchestrator(store, records, **kwargs) -> SyncOrchestrator:
    return SyncOrchestrator(source="memory://", records=records, store=store, **kwargs)


class TestBuildPayload:
    """Test payload construction from a row."""

    def test_maps_and_skips_unset_cells(self):
        mapping = {"Name": "full_name", "Email": "email", "Missing": "other"}
        payload = build_payload(mapping, {"Name": "Ada", "Email": "", "Extra": "x"})
        assert payload == {"full_name": "Ada"}


class TestConfiguration:
    """Test configuration and mapping loading."""

    @pytest.mark.asyncio
    async def test_metadata_overrides_defaults(self, workbook, mock_records):
        config = await orchestrator(workbook, mock_records).load_config(workbook)

        assert config.record_type == "contact"
        assert config.record_version == "2"
        assert config.incoming_sheet == "incoming"
        assert config.max_rows == 500

    @pytest.mark.asyncio
    async def test_blank_metadata_value_overrides_default(self, make_store, mock_records):
        store = make_store([], metadata=[["record_type", "contact"], ["record_version", ""]])
        config = await orchestrator(store, mock_records).load_config(store)
        assert config.record_version == ""

    @pytest.mark.asyncio
    async def test_caller_defaults(self, make_store, mock_records):
        store = make_store([], metadata=[])
        config = await orchestrator(
            store, mock_records, defaults={"record_type": "lead", "max_rows": "5"}
        ).load_config(store)

        assert config.record_type == "lead"
        assert config.max_rows == 5

    @pytest.mark.asyncio
    async def test_missing_record_type(self, make_store, mock_records):
        store = make_store([], metadata=[])
        with pytest.raises(ConfigurationError):
            await orchestrator(store, mock_records).load_config(store)

    @pytest.mark.asyncio
    async def test_invalid_max_rows(self, make_store, mock_records):
        store = make_store([], metadata=[["record_type", "contact"], ["max_rows", "lots"]])
        with pytest.raises(ConfigurationError):
            await orchestrator(store, mock_records).load_config(store)

    @pytest.mark.asyncio
    async def test_blank_mapping_destinations_are_ignored(self, workbook, mock_records):
        sync = orchestrator(workbook, mock_records)
        mapping = await sync.load_mapping(workbook, await sync.load_config(workbook))

        assert mapping == {"Name": "full_name", "Email": "email", "Amount": "amount"}

    @pytest.mark.asyncio
    async def test_empty_mapping(self, workbook, mock_records):
        workbook.sheets["mapping"] = [["Source", "Destination"], ["Notes", ""]]
        with pytest.raises(ConfigurationError):
            await orchestrator(workbook, mock_records).run()
        mock_records.create_record.assert_not_called()


class TestRun:
    """Test full synchronization runs."""

    @pytest.mark.asyncio
    async def test_unsupported_source_fails_fast(self, workbook, mock_records):
        sync = SyncOrchestrator(source="ftp://example.com/book.xlsx", records=mock_records, store=workbook)

        with pytest.raises(UnsupportedSourceError):
            await sync.run()
        mock_records.create_record.assert_not_called()

    @pytest.mark.asyncio
    async def test_all_rows_succeed(self, workbook, mock_records):
        results = await orchestrator(workbook, mock_records).run()

        assert [r.status for r in results] == [SyncStatus.SUCCESS] * 3
        assert [r.row_range for r in results] == [
            "incoming!A2:E2",
            "incoming!A3:E3",
            "incoming!A5:E5",
        ]
        assert results[0].response == {"id": "ada@example.com"}
        mock_records.create_record.assert_any_await(
            "contact", "2", {"full_name": "Ada", "email": "ada@example.com", "amount": "10"}
        )

        incoming = workbook.sheets["incoming"]
        assert [row[3:] for row in incoming[1:]] == [["Y", "SUCCESS"]] * 4
        # Rows 2-3 are one block, row 5 another; processed row 4 is untouched
        assert [w[1] for w in workbook.writes] == ["incoming!A2:E3", "incoming!A5:E5"]

    @pytest.mark.asyncio
    async def test_partial_failure(self, make_store):
        store = make_store(
            [
                ["Ada", "ada@example.com", "10", "", ""],
                ["Grace", "grace@example.com", "20", "", ""],
                ["Edsger", "edsger@example.com", "40", "", ""],
            ]
        )
        records = Mock(spec=RecordClient)
        records.create_record = AsyncMock(
            side_effect=[
                {"id": 1},
                UnexpectedStatusError(422, "Create contact record", {"error": "bad email"}),
                {"id": 3},
            ]
        )

        results = await orchestrator(store, records).run()

        assert len(results) == 3
        assert [r.status for r in results] == [
            SyncStatus.SUCCESS,
            SyncStatus.FAILURE,
            SyncStatus.SUCCESS,
        ]
        failure = results[1]
        assert failure.row_range == "incoming!A3:E3"
        assert "HTTP 422" in failure.error_message
        assert failure.response is None

        incoming = store.sheets["incoming"]
        assert incoming[1][3:] == ["Y", "SUCCESS"]
        assert incoming[2][3:] == ["N", f"FAILURE: {failure.error_message}"]
        assert incoming[3][3:] == ["Y", "SUCCESS"]
        assert [w[1] for w in store.writes] == ["incoming!A2:E4"]

    @pytest.mark.asyncio
    async def test_second_run_selects_no_rows(self, workbook, mock_records):
        first = await orchestrator(workbook, mock_records).run()
        second = await orchestrator(workbook, mock_records).run()

        assert len(first) == 3
        assert second == []
        assert mock_records.create_record.await_count == 3

    @pytest.mark.asyncio
    async def test_rerun_after_failure_skips_failed_rows(self, workbook):
        records = Mock(spec=RecordClient)
        records.create_record = AsyncMock(side_effect=RuntimeError("downstream unavailable"))

        first = await orchestrator(workbook, records).run()
        second = await orchestrator(workbook, records).run()

        assert [r.status for r in first] == [SyncStatus.FAILURE] * 3
        assert second == []

    @pytest.mark.asyncio
    async def test_rows_are_processed_in_order(self, workbook):
        seen = []

        async def create(record_type, version, fields):
            seen.append(fields["full_name"])
            return {}

        records = Mock(spec=RecordClient)
        records.create_record = AsyncMock(side_effect=create)

        await orchestrator(workbook, records).run()
        assert seen == ["Ada", "Grace", "Edsger"]

    @pytest.mark.asyncio
    async def test_no_rows_skips_write_session(self, make_store, mock_records):
        store = make_store([["Alan", "alan@example.com", "30", "Y", "SUCCESS"]])
        store.begin_session = AsyncMock(wraps=store.begin_session)

        assert await orchestrator(store, mock_records).run() == []
        store.begin_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_message_column_fails_before_processing(self, make_store, mock_records):
        store = make_store([["Ada", "ada@example.com", "10", "", ""]])
        sync = orchestrator(store, mock_records, defaults={"message_column": "Outcome"})

        with pytest.raises(ConfigurationError):
            await sync.run()
        mock_records.create_record.assert_not_called()

    @pytest.mark.asyncio
    async def test_write_failure_still_closes_session(self, make_store, mock_records):
        store = make_store(
            [
                ["Ada", "ada@example.com", "10", "", ""],
                ["Alan", "alan@example.com", "30", "Y", "SUCCESS"],
                ["Grace", "grace@example.com", "20", "", ""],
            ]
        )
        original_write = store._write_range
        calls = []

        async def flaky_write(session_id, sheet_name, range_notation, values):
            calls.append(range_notation)
            if len(calls) == 2:
                raise UnexpectedStatusError(503, "Write", None)
            await original_write(session_id, sheet_name, range_notation, values)

        store._write_range = flaky_write

        with pytest.raises(UnexpectedStatusError):
            await orchestrator(store, mock_records).run()

        # The first block stays written; the session was released
        assert store.sheets["incoming"][1][3:] == ["Y", "SUCCESS"]
        assert store.sheets["incoming"][3][3:] == ["", ""]
        assert store._open_session is None

    @pytest.mark.asyncio
    async def test_session_error_aborts_run(self, workbook, mock_records):
        workbook.begin_session = AsyncMock(side_effect=SessionError("no sessions today"))

        with pytest.raises(SessionError):
            await orchestrator(workbook, mock_records).run()

    @pytest.mark.asyncio
    async def test_max_rows_limits_processing(self, workbook, mock_records):
        results = await orchestrator(workbook, mock_records, defaults={"max_rows": "2"}).run()
        assert len(results) == 2

    @pytest.mark.asyncio
    async def test_history_is_recorded(self, workbook, mock_records):
        history = Mock()
        history.record_run = AsyncMock()

        results = await orchestrator(workbook, mock_records, history=history).run()

        history.record_run.assert_awaited_once()
        source, _, recorded = history.record_run.await_args.args
        assert source == "memory://"
        assert recorded == results

    @pytest.mark.asyncio
    async def test_history_failure_does_not_fail_run(self, workbook, mock_records):
        history = Mock()
        history.record_run = AsyncMock(side_effect=RuntimeError("disk full"))

        results = await orchestrator(workbook, mock_records, history=history).run()
        assert len(results) == 3

    @pytest.mark.asyncio
    async def test_write_failure_records_processed_rows(self, workbook, mock_records):
        history = Mock()
        history.record_run = AsyncMock()
        workbook._write_range = AsyncMock(side_effect=UnexpectedStatusError(503, "Write", None))

        with pytest.raises(UnexpectedStatusError):
            await orchestrator(workbook, mock_records, history=history).run()

        history.record_run.assert_awaited_once()
        source, _, recorded = history.record_run.await_args.args
        assert [r.row_range for r in recorded] == [
            "incoming!A2:E2",
            "incoming!A3:E3",
            "incoming!A5:E5",
        ]
        assert all(r.status is SyncStatus.SUCCESS for r in recorded)
        assert history.record_run.await_args.kwargs["error"] == "Write failed with HTTP 503"

    @pytest.mark.asyncio
    async def test_failed_source_is_recorded(self, workbook, mock_records):
        history = Mock()
        history.record_run = AsyncMock()
        sync = SyncOrchestrator(
            source="ftp://example.com/book.xlsx", records=mock_records, store=workbook, history=history
        )

        with pytest.raises(UnsupportedSourceError):
            await sync.run()

        _, _, recorded = history.record_run.await_args.args
        assert recorded == []
        assert history.record_run.await_args.kwargs["error"].startswith("Unsupported source")


class TestSyncResult:
    """Test result models."""

    def test_results_are_immutable(self):
        result = SyncResult(row_range="incoming!A2:E2", status=SyncStatus.SUCCESS, response={})
        with pytest.raises(Exception):
            result.status = SyncStatus.FAILURE

    def test_output_shape(self):
        ok = SyncResult(row_range="A2:E2", status=SyncStatus.SUCCESS, response={"id": 1})
        bad = SyncResult(row_range="A3:E3", status=SyncStatus.FAILURE, error_message="nope")

        assert ok.to_output() == {"row_range": "A2:E2", "status": "SUCCESS", "response": {"id": 1}}
        assert bad.to_output() == {"row_range": "A3:E3", "status": "FAILURE", "error_message": "nope"}

    def test_status_values(self):
        bad = SyncResult(row_range="A3:E3", status=SyncStatus.FAILURE, error_message="nope")
        assert status_values(bad) == ["N", "FAILURE: nope"]

    def test_config_ignores_extra_keys(self):
        config = SyncConfig.from_mapping({"record_type": "contact", "owner": "ops"})
        assert config.record_type == "contact"
