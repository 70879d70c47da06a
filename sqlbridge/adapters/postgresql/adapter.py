"""
PostgreSQL adapter.

Buffered executions use a client-side cursor; streamed executions use a
server-side (named) cursor so large results are fetched in batches instead
of being loaded into memory at once.
"""

import itertools
from collections.abc import Callable
from typing import Any, TextIO

try:
    import psycopg2
except ImportError:
    psycopg2 = None

from ...config import ConfigField
from ...exceptions import AdapterConnectionError, ConfigurationError, ExecutionError
from ...streaming import (
    CallbackConsumer,
    HeaderAwareWriter,
    ResultFormat,
    RowAccumulator,
    RowConsumer,
    StreamingStats,
)
from ..base import DatabaseAdapter, TransportKind
from ..base.cursor import DEFAULT_FETCH_SIZE, drain_cursor

_cursor_ids = itertools.count(1)


class PostgreSQLAdapter(DatabaseAdapter):
    """PostgreSQL database adapter."""

    ENGINE = "postgres"
    TRANSPORT_KIND = TransportKind.SYNC_DRIVER
    DEFAULT_PORT = 5432
    CONFIG_FIELDS = (
        ConfigField("host", required=True, message="server host ip address or domain name"),
        ConfigField("port", default=5432, message="port to connect to"),
        ConfigField("database", required=True, message="name of database to connect to"),
        ConfigField("user", required=True, message="connection username"),
        ConfigField("password", message="connection password"),
        ConfigField("schema", message="search_path to use, may be a comma separated list"),
        ConfigField("query_timeout", default=3600, message="query execution timeout in seconds"),
        ConfigField("connection_timeout", default=30, message="connect timeout in seconds"),
        ConfigField("fetch_size", default=DEFAULT_FETCH_SIZE),
    )

    def __init__(self, config: dict[str, Any]) -> None:
        if psycopg2 is None:
            raise ConfigurationError(
                "psycopg2 is not installed. Install it with: pip install psycopg2-binary"
            )

        super().__init__(config)

    def _connection_params(self) -> dict[str, Any]:
        params = {
            "host": self.config["host"],
            "port": self.config["port"] or self.DEFAULT_PORT,
            "dbname": self.config["database"],
            "user": self.config["user"],
            "password": self.config.get("password"),
            "connect_timeout": self.config["connection_timeout"],
        }
        params.update(self.extra_connection_params)
        timeout_ms = int(self.config["query_timeout"]) * 1000
        params["options"] = f"{params.get('options', '')} -c statement_timeout={timeout_ms}".strip()
        return params

    def _open_connection(self) -> Any:
        params = self._connection_params()
        try:
            connection = psycopg2.connect(**params)
        except psycopg2.OperationalError as e:
            raise AdapterConnectionError(
                f"Could not connect to {self.adapter_name} at {params['host']}:{params['port']}: {e}"
            ) from e

        if self.config.get("schema"):
            try:
                with connection.cursor() as cursor:
                    cursor.execute(f"SET search_path TO {self.config['schema']}")
                connection.commit()
            except psycopg2.Error as e:
                connection.close()
                raise AdapterConnectionError(
                    f"Could not set search_path to {self.config['schema']}: {e}"
                ) from e

        self.logger.info(
            f"Connected to {self.adapter_name}: {params['host']}:{params['port']}/{params['dbname']}"
        )
        return connection

    def _ping(self) -> None:
        with self.connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        self.connection.rollback()

    def _execute(self, sql: str, result_format: ResultFormat) -> Any:
        try:
            with self.connection.cursor() as cursor:
                cursor.execute(sql)
                if result_format is ResultFormat.NATIVE:
                    result = cursor.fetchall() if cursor.description else None
                else:
                    accumulator = RowAccumulator()
                    drain_cursor(cursor, accumulator, self.config["fetch_size"])
                    result = accumulator.result(result_format)
            self.connection.commit()
            return result
        except psycopg2.Error as e:
            self._rollback()
            raise ExecutionError(f"{self.adapter_name} execution failed: {e}") from e

    def _drain_server_side(self, sql: str, consumer: RowConsumer) -> int:
        fetch_size = self.config["fetch_size"]
        try:
            with self.connection.cursor(name=f"sqlbridge_stream_{next(_cursor_ids)}") as cursor:
                cursor.itersize = fetch_size
                cursor.execute(sql)
                count = drain_cursor(cursor, consumer, fetch_size, describe_after_fetch=True)
            self.connection.commit()
            return count
        except psycopg2.Error as e:
            self._rollback()
            raise ExecutionError(f"{self.adapter_name} execution failed: {e}") from e

    def _execute_stream(self, sql: str, sink: TextIO, stats: StreamingStats | None) -> None:
        count = self._drain_server_side(sql, HeaderAwareWriter(sink, stats))
        self.logger.debug(f"Streamed {count} rows")

    def _stream(self, sql: str, callback: Callable[[Any], Any]) -> int:
        return self._drain_server_side(sql, CallbackConsumer(callback))

    def _rollback(self) -> None:
        try:
            self.connection.rollback()
        except psycopg2.Error as e:
            self.logger.warning(f"Rollback failed: {e}")
