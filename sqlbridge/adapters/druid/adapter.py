"""
Apache Druid adapter.

Statements go to the Druid SQL endpoint. Streamed executions request CSV and
pass the response body through the chunked decoder, since Druid chunks are
not aligned to row boundaries.
"""

import codecs
import json
from collections.abc import Callable
from typing import Any, TextIO

import httpx

from ...config import ConfigField
from ...exceptions import AdapterConnectionError, ExecutionError
from ...streaming import ChunkedDecoder, ResultFormat, StreamingStats
from ...streaming.stats import DEFAULT_IN_MEMORY_LIMIT
from ..base import TransportKind
from ..base.http import HTTPAdapter

DRUID_SQL = "/druid/v2/sql/"
DRUID_HEALTH = "/status/health"
AUTH_FAILURES = (401, 403)


class DruidAdapter(HTTPAdapter):
    """Apache Druid adapter over the SQL HTTP API."""

    ENGINE = "druid"
    TRANSPORT_KIND = TransportKind.CHUNKED_HTTP
    CONFIG_FIELDS = (
        ConfigField("protocol", required=True, default="http", message="must be http or https"),
        ConfigField("host", required=True, message="server host ip address or domain name"),
        ConfigField("port", required=True, message="port to connect to"),
        ConfigField("username", message="basic auth username"),
        ConfigField("password", message="basic auth password"),
        ConfigField("query_timeout", default=600, message="query execution timeout in seconds"),
        ConfigField("connection_timeout", default=30, message="connect timeout in seconds"),
        ConfigField("memory_row_limit", default=DEFAULT_IN_MEMORY_LIMIT),
    )

    def _base_url(self) -> str:
        return f"{self.config['protocol']}://{self.config['host']}:{self.config['port']}"

    def _client_options(self) -> dict[str, Any]:
        options = super()._client_options()
        if self.config.get("username"):
            options.setdefault("auth", (self.config["username"], self.config.get("password") or ""))
        return options

    def _ping(self) -> None:
        self._check_response(self._request("GET", DRUID_HEALTH), "Druid health check failed")

    def _query_body(self, sql: str, result_format: str, header: bool = False) -> dict[str, Any]:
        body = {
            "query": sql,
            "resultFormat": result_format,
            "header": header,
            "context": {"sqlTimeZone": "Etc/UTC"},
        }
        body.update(self.extra_query_params)
        return body

    def _execute(self, sql: str, result_format: ResultFormat) -> Any:
        if result_format is ResultFormat.CSV:
            body = self._query_body(sql, "csv", header=True)
        elif result_format is ResultFormat.OBJECT:
            body = self._query_body(sql, "object")
        else:
            body = self._query_body(sql, "array")

        response = self._request("POST", DRUID_SQL, json=body)
        self._check_response(response, f"Could not execute {sql}")

        if result_format is ResultFormat.CSV:
            return response.text
        try:
            rows = response.json()
        except json.JSONDecodeError as e:
            raise ExecutionError(f"Druid returned an unreadable response: {e}") from e
        if result_format is ResultFormat.ARRAY:
            return [tuple(row) for row in rows]
        return rows

    def _execute_stream(self, sql: str, sink: TextIO, stats: StreamingStats | None) -> None:
        decoder = ChunkedDecoder(sink, stats, row_limit=self.config["memory_row_limit"])
        with self._stream_request("POST", DRUID_SQL, json=self._query_body(sql, "csv")) as response:
            self._check_response(response, f"Could not execute {sql}")
            for chunk in response.iter_bytes():
                decoder.feed(chunk)
        decoder.finish()
        self.logger.debug(
            f"Streamed {decoder.lines_received} lines in {decoder.chunks_received} chunks "
            f"({decoder.bytes_received} bytes)"
        )

    def _stream(self, sql: str, callback: Callable[[Any], Any]) -> int:
        """Deliver the raw CSV body chunk by chunk, decoded as text."""
        deliveries = 0
        text_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        with self._stream_request("POST", DRUID_SQL, json=self._query_body(sql, "csv")) as response:
            self._check_response(response, f"Could not execute {sql}")
            for chunk in response.iter_bytes():
                text = text_decoder.decode(chunk)
                if not text:
                    continue
                deliveries += 1
                if callback(text) is False:
                    return deliveries

        tail = text_decoder.decode(b"", final=True)
        if tail:
            deliveries += 1
            callback(tail)
        return deliveries

    def _check_response(self, response: httpx.Response, action: str) -> None:
        """Raise for a non 200 answer. Rejected credentials are a connection failure."""
        if response.status_code == 200:
            return
        response.read()
        body = response.text
        if response.status_code in AUTH_FAILURES:
            raise AdapterConnectionError(
                f"Druid rejected the credentials ({response.status_code}): {body}"
            )
        raise ExecutionError(f"{action}:\n{body}", status=response.status_code, remote_message=body)
