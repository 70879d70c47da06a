"""
DuckDB adapter.

Runs statements through the in-process duckdb driver, against an in-memory
database by default or a database file given as path.
"""

from collections.abc import Callable
from typing import Any, TextIO

try:
    import duckdb
except ImportError:
    duckdb = None

from ...config import ConfigField
from ...exceptions import AdapterConnectionError, ConfigurationError, ExecutionError
from ...streaming import (
    CallbackConsumer,
    HeaderAwareWriter,
    ResultFormat,
    RowAccumulator,
    StreamingStats,
)
from ..base import DatabaseAdapter, TransportKind
from ..base.cursor import DEFAULT_FETCH_SIZE, drain_cursor


class DuckDBAdapter(DatabaseAdapter):
    """DuckDB database adapter."""

    ENGINE = "duckdb"
    TRANSPORT_KIND = TransportKind.SYNC_DRIVER
    CONFIG_FIELDS = (
        ConfigField("path", default=":memory:"),
        ConfigField("read_only", default=False),
        ConfigField("fetch_size", default=DEFAULT_FETCH_SIZE),
    )

    def __init__(self, config: dict[str, Any]) -> None:
        if duckdb is None:
            raise ConfigurationError("DuckDB is not installed. Install it with: pip install duckdb")

        super().__init__(config)

    def _open_connection(self) -> Any:
        path = self.config["path"]
        try:
            connection = duckdb.connect(
                database=path,
                read_only=bool(self.config["read_only"]),
                config=self.extra_connection_params,
            )
        except duckdb.Error as e:
            raise AdapterConnectionError(f"Could not open DuckDB database {path}: {e}") from e
        self.logger.info(f"Connected to DuckDB: {path}")
        return connection

    def _ping(self) -> None:
        self.connection.execute("SELECT 1").fetchone()

    def _cursor(self, sql: str) -> Any:
        try:
            cursor = self.connection.cursor()
            cursor.execute(sql)
        except duckdb.Error as e:
            raise ExecutionError(f"DuckDB execution failed: {e}") from e
        return cursor

    def _execute(self, sql: str, result_format: ResultFormat) -> Any:
        if result_format is ResultFormat.NATIVE:
            try:
                return self.connection.sql(sql)
            except duckdb.Error as e:
                raise ExecutionError(f"DuckDB execution failed: {e}") from e

        cursor = self._cursor(sql)
        try:
            accumulator = RowAccumulator()
            drain_cursor(cursor, accumulator, self.config["fetch_size"])
            return accumulator.result(result_format)
        except duckdb.Error as e:
            raise ExecutionError(f"DuckDB fetch failed: {e}") from e
        finally:
            cursor.close()

    def _execute_stream(self, sql: str, sink: TextIO, stats: StreamingStats | None) -> None:
        cursor = self._cursor(sql)
        try:
            writer = HeaderAwareWriter(sink, stats)
            count = drain_cursor(cursor, writer, self.config["fetch_size"])
            writer.sink.flush()
            self.logger.debug(f"Streamed {count} rows")
        except duckdb.Error as e:
            raise ExecutionError(f"DuckDB fetch failed: {e}") from e
        finally:
            cursor.close()

    def _stream(self, sql: str, callback: Callable[[Any], Any]) -> int:
        cursor = self._cursor(sql)
        try:
            return drain_cursor(cursor, CallbackConsumer(callback), self.config["fetch_size"])
        except duckdb.Error as e:
            raise ExecutionError(f"DuckDB fetch failed: {e}") from e
        finally:
            cursor.close()
