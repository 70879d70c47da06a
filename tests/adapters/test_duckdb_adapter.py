"""
Tests for the DuckDB adapter against an in-memory database.
"""

import io
import logging

import pytest

from sqlbridge.adapters.duckdb.adapter import DuckDBAdapter
from sqlbridge.exceptions import (
    AdapterConnectionError,
    ConfigurationError,
    ExecutionError,
    UnsupportedCapabilityError,
)
from sqlbridge.streaming import ExecutionState, StreamingStats


class TestDuckDBAdapter:
    """Test cases for DuckDB adapter."""

    def test_initialization(self, duckdb_config):
        adapter = DuckDBAdapter(duckdb_config)

        assert adapter.config["path"] == ":memory:"
        assert adapter.config["read_only"] is False
        assert adapter.connection is None
        assert adapter.state is ExecutionState.IDLE

    def test_connect_and_disconnect(self, duckdb_config):
        adapter = DuckDBAdapter(duckdb_config)
        adapter.connect()
        assert adapter.connection is not None

        adapter.disconnect()
        adapter.disconnect()
        assert adapter.connection is None

    def test_context_manager(self, duckdb_config):
        with DuckDBAdapter(duckdb_config) as adapter:
            assert adapter.execute("SELECT 42") == [(42,)]
        assert adapter.connection is None

    def test_settings_must_be_a_dictionary(self, duckdb_config):
        with pytest.raises(ConfigurationError):
            DuckDBAdapter({**duckdb_config, "settings": ["quote"]})

    def test_test_connection(self, duckdb_adapter):
        assert duckdb_adapter.test_connection() is True

    def test_test_connection_failure(self, tmp_path):
        adapter = DuckDBAdapter({"path": str(tmp_path / "missing" / "db.duckdb"), "read_only": True})

        assert adapter.test_connection() is False
        with pytest.raises(AdapterConnectionError):
            adapter.test_connection(raise_exception=True)

    def test_get_database_info(self, duckdb_adapter):
        info = duckdb_adapter.get_database_info()

        assert info["adapter"] == "DuckDB"
        assert info["engine"] == "duckdb"
        assert info["transport"] == "sync_driver"
        assert info["connected"] is True
        assert "array_functions" in info["capabilities"]
        assert info["using_base_settings_only"] is False


class TestDuckDBExecute:
    """Test cases for buffered execution."""

    def test_array_format(self, duckdb_adapter, sales_table):
        rows = duckdb_adapter.execute(f"SELECT id, name FROM {sales_table} ORDER BY id")
        assert rows == [(1, "Alice"), (2, "Bob"), (3, "Charlie")]

    def test_object_format(self, duckdb_adapter, sales_table):
        rows = duckdb_adapter.execute(
            f"SELECT id, name FROM {sales_table} WHERE id = 1", format="object"
        )
        assert rows == [{"id": 1, "name": "Alice"}]

    def test_csv_format(self, duckdb_adapter, sales_table):
        text = duckdb_adapter.execute(
            f"SELECT id, name FROM {sales_table} ORDER BY id LIMIT 2", format="csv"
        )
        assert text == "id,name\n1,Alice\n2,Bob\n"

    def test_native_format(self, duckdb_adapter, sales_table):
        relation = duckdb_adapter.execute(f"SELECT count(*) FROM {sales_table}", format="native")
        assert relation.fetchall() == [(3,)]

    def test_unknown_format(self, duckdb_adapter):
        with pytest.raises(UnsupportedCapabilityError):
            duckdb_adapter.execute("SELECT 1", format="xml")

    def test_failure_sets_state(self, duckdb_adapter):
        with pytest.raises(ExecutionError):
            duckdb_adapter.execute("SELECT * FROM no_such_table")
        assert duckdb_adapter.state is ExecutionState.FAILED

        duckdb_adapter.execute("SELECT 1")
        assert duckdb_adapter.state is ExecutionState.COMPLETED

    def test_retries_rerun_the_statement(self, duckdb_adapter, caplog):
        with caplog.at_level(logging.WARNING, logger="DuckDBAdapter"):
            with pytest.raises(ExecutionError):
                duckdb_adapter.execute("SELECT * FROM no_such_table", retries=3)

        retried = [r for r in caplog.records if "Retrying" in r.getMessage()]
        assert len(retried) == 2
        assert "Failed after 3 attempts" in caplog.text

    def test_sql_is_logged(self, duckdb_adapter, caplog):
        with caplog.at_level(logging.DEBUG, logger="DuckDBAdapter"):
            duckdb_adapter.execute("SELECT 1")
        assert "=== SQL ===" in caplog.text
        assert "=== FINISHED SQL ===" in caplog.text


class TestDuckDBStreaming:
    """Test cases for sink-streamed and callback-streamed execution."""

    def test_execute_stream_writes_header_and_rows(self, duckdb_adapter, sales_table):
        stats = StreamingStats(in_memory_limit=2)
        sink = duckdb_adapter.execute_stream(
            f"SELECT id, name FROM {sales_table} ORDER BY id", io.StringIO(), stats
        )

        assert sink.tell() == 0
        assert sink.read() == "id,name\n1,Alice\n2,Bob\n3,Charlie\n"
        assert stats.total_rows == 3
        assert stats.data == [(1, "Alice"), (2, "Bob")]

    def test_execute_stream_small_fetch_size(self, sales_table, duckdb_adapter):
        duckdb_adapter.config["fetch_size"] = 1
        sink = duckdb_adapter.execute_stream(f"SELECT id FROM {sales_table} ORDER BY id", io.StringIO())
        assert sink.getvalue() == "id\n1\n2\n3\n"

    def test_execute_stream_rejects_foreign_stats(self, duckdb_adapter):
        with pytest.raises(TypeError):
            duckdb_adapter.execute_stream("SELECT 1", io.StringIO(), stats={"rows": 0})

    def test_retry_restarts_sink(self, duckdb_adapter, monkeypatch):
        calls = []
        original = duckdb_adapter._execute_stream

        def flaky(sql, sink, stats):
            calls.append(sql)
            if len(calls) == 1:
                sink.write("partial garbage\n")
                stats.add_row(["garbage"])
                raise ExecutionError("connection dropped")
            original(sql, sink, stats)

        monkeypatch.setattr(duckdb_adapter, "_execute_stream", flaky)
        stats = StreamingStats()
        sink = duckdb_adapter.execute_stream("SELECT 7 AS n", io.StringIO(), stats, retries=2)

        assert len(calls) == 2
        assert sink.getvalue() == "n\n7\n"
        assert stats.total_rows == 1

    def test_stream_delivers_each_row(self, duckdb_adapter, sales_table):
        seen = []
        count = duckdb_adapter.stream(f"SELECT id FROM {sales_table} ORDER BY id", seen.append)
        assert count == 3
        assert seen == [(1,), (2,), (3,)]

    def test_stream_stops_when_callback_returns_false(self, duckdb_adapter):
        seen = []

        def callback(row):
            seen.append(row)
            return len(seen) < 5

        count = duckdb_adapter.stream("SELECT * FROM range(100)", callback)
        assert count == 5
        assert len(seen) == 5

    def test_stream_retries_rerun_the_statement(self, duckdb_adapter, monkeypatch):
        calls = []
        original = duckdb_adapter._stream

        def flaky(sql, callback):
            calls.append(sql)
            if len(calls) == 1:
                callback(("partial",))
                raise ExecutionError("connection dropped")
            return original(sql, callback)

        monkeypatch.setattr(duckdb_adapter, "_stream", flaky)
        seen = []

        count = duckdb_adapter.stream("SELECT 7 AS n", seen.append, retries=2)

        assert len(calls) == 2
        assert count == 1
        assert seen == [("partial",), (7,)]
        assert duckdb_adapter.state is ExecutionState.COMPLETED

    def test_stream_without_retries_runs_once(self, duckdb_adapter):
        with pytest.raises(ExecutionError):
            duckdb_adapter.stream("SELECT * FROM no_such_table", lambda row: None)
        assert duckdb_adapter.state is ExecutionState.FAILED


class TestDuckDBDialect:
    """Dialect functions are available on the adapter itself."""

    def test_functions_on_adapter(self, duckdb_adapter):
        assert duckdb_adapter.quote("x") == '"x"'
        assert duckdb_adapter.date_literal("2024-01-01") == "DATE '2024-01-01'"
        assert duckdb_adapter.supports_array_functions()

    def test_settings_override_from_config(self, duckdb_config):
        adapter = DuckDBAdapter({**duckdb_config, "settings": {"week_start_day": "sunday"}})
        assert adapter.week_starts_on_sunday()

    def test_instances_do_not_share_overrides(self, duckdb_config):
        first = DuckDBAdapter(duckdb_config)
        second = DuckDBAdapter(duckdb_config)

        first.alter_settings({"supports_array_functions": False})

        assert not first.supports_array_functions()
        assert second.supports_array_functions()

    def test_alter_and_reset(self, duckdb_adapter):
        duckdb_adapter.alter_settings({"week_start_day": "sunday"})
        assert duckdb_adapter.week_starts_on_sunday()

        duckdb_adapter.reset_settings()
        assert not duckdb_adapter.week_starts_on_sunday()

    def test_generated_sql_runs(self, duckdb_adapter, sales_table):
        month = duckdb_adapter.truncate_date("month", "sold_on")
        rows = duckdb_adapter.execute(
            f"SELECT {month} AS m, {duckdb_adapter.if_null('amount', 0)} AS a "
            f"FROM {sales_table} ORDER BY id"
        )
        assert [str(m) for m, _ in rows] == ["2024-01-01", "2024-02-01", "2024-03-01"]
        assert rows[2][1] == 0
