"""
Snowflake adapter over the SQL API (v2 statements).

A statement is submitted with POST /api/v2/statements. Snowflake answers 200
with the first partition of the result, or 202 while the statement is still
running, in which case the statement handle is polled. Further partitions
are fetched one by one with ?partition=<index>.

Authentication uses a pre-issued bearer token (key-pair JWT, OAuth access
token or programmatic access token) passed as the token config field.
"""

import json
from collections.abc import Callable
from typing import Any, TextIO

import httpx

from ...config import ConfigField
from ...exceptions import (
    AuthenticationError,
    ConfigurationError,
    ExecutionError,
    TokenExpiredError,
)
from ...streaming import (
    AsyncPoller,
    CallbackConsumer,
    ExecutionState,
    HeaderAwareWriter,
    PollResult,
    ResultFormat,
    RowAccumulator,
    RowConsumer,
    StreamingStats,
    drain_partitions,
)
from ..base import TransportKind
from ..base.http import HTTPAdapter

SNOWFLAKE_STATEMENTS = "/api/v2/statements"
TOKEN_TYPES = ("KEYPAIR_JWT", "OAUTH", "PROGRAMMATIC_ACCESS_TOKEN")

DEFAULT_PARAMETERS = {
    "DATE_OUTPUT_FORMAT": "YYYY-MM-DD",
    "TIMESTAMP_OUTPUT_FORMAT": "YYYY-MM-DD HH24:MI:SS",
    "TIMESTAMP_TZ_OUTPUT_FORMAT": "YYYY-MM-DD HH24:MI:SS TZH",
    "TIMESTAMP_NTZ_OUTPUT_FORMAT": "YYYY-MM-DD HH24:MI:SS",
    "TIMESTAMP_LTZ_OUTPUT_FORMAT": "YYYY-MM-DD HH24:MI:SS TZH",
    "TIME_OUTPUT_FORMAT": "HH24:MI:SS",
}


class SnowflakeAdapter(HTTPAdapter):
    """Snowflake adapter using the SQL API."""

    ENGINE = "snowflake"
    TRANSPORT_KIND = TransportKind.PAGINATED_HTTP
    CONFIG_FIELDS = (
        ConfigField("host", required=True, message="account host, e.g. myorg-myaccount.snowflakecomputing.com"),
        ConfigField("token", required=True, message="bearer token: key-pair JWT, OAuth or programmatic access token"),
        ConfigField("token_type", default="KEYPAIR_JWT", message=f"one of {', '.join(TOKEN_TYPES)}"),
        ConfigField("warehouse", message="snowflake warehouse to connect to"),
        ConfigField("database", message="default database"),
        ConfigField("schema", message="default schema"),
        ConfigField("role", message="role to connect with"),
        ConfigField("query_timeout", default=3600, message="query execution timeout in seconds"),
        ConfigField("connection_timeout", default=30, message="connect timeout in seconds"),
        ConfigField("poll_base_interval", default=0.25, message="first wait between status polls"),
        ConfigField("poll_max_interval", default=30.0, message="longest wait between status polls"),
    )

    def __init__(self, config: dict[str, Any]) -> None:
        super().__init__(config)
        token_type = str(self.config["token_type"]).upper()
        if token_type not in TOKEN_TYPES:
            raise ConfigurationError(
                f"Snowflake Adapter: unsupported token_type {self.config['token_type']}. "
                f"Use one of {', '.join(TOKEN_TYPES)}"
            )
        self.config["token_type"] = token_type

    def _base_url(self) -> str:
        return f"https://{self.config['host'].split('/')[0]}"

    def _default_headers(self) -> dict[str, str]:
        headers = super()._default_headers()
        headers.update(
            {
                "Authorization": f"Bearer {self.config['token']}",
                "X-Snowflake-Authorization-Token-Type": self.config["token_type"],
                "User-Agent": "sqlbridge",
            }
        )
        return headers

    def _ping(self) -> None:
        self._run("SELECT 1", lambda: self._run_statement("SELECT 1", RowAccumulator()))

    def _statement_body(self, sql: str) -> dict[str, Any]:
        body = {
            "statement": sql,
            "timeout": self.config["query_timeout"],
            "warehouse": self.config.get("warehouse"),
            "database": self.config.get("database"),
            "schema": self.config.get("schema"),
            "role": self.config.get("role"),
            "parameters": DEFAULT_PARAMETERS,
        }
        body = {
            k: (v.upper() if k in ("warehouse", "database", "schema", "role") else v)
            for k, v in body.items()
            if v is not None
        }
        body.update(self.extra_query_params)
        return body

    def _decode(self, response: httpx.Response) -> dict[str, Any]:
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise ExecutionError(
                f"Snowflake returned an unreadable response ({response.status_code}): {e}",
                status=response.status_code,
            ) from e

    def _raise_for_auth(self, response: httpx.Response) -> None:
        if response.status_code != 401:
            return
        body = response.text
        if "expired" in body.lower():
            raise TokenExpiredError(f"Snowflake token expired: {body}")
        raise AuthenticationError(f"Snowflake rejected the token: {body}")

    @staticmethod
    def _remote_message(result: Any) -> str:
        if isinstance(result, dict):
            return str(result.get("message") or result)
        return str(result)

    def _submit(self, sql: str) -> dict[str, Any]:
        response = self._request("POST", SNOWFLAKE_STATEMENTS, json=self._statement_body(sql))
        self._raise_for_auth(response)
        result = self._decode(response)

        if response.status_code == 200:
            return result
        if response.status_code == 202:
            return self._poll(result["statementHandle"])

        message = self._remote_message(result)
        raise ExecutionError(
            f"Snowflake statement failed: {message}",
            status=result.get("code", response.status_code) if isinstance(result, dict) else response.status_code,
            remote_message=message,
        )

    def _poll(self, handle: str) -> dict[str, Any]:
        self.logger.debug(f"Polling snowflake for query status: {handle}")
        self._set_state(ExecutionState.POLLING)
        url = f"{SNOWFLAKE_STATEMENTS}/{handle}"

        def check() -> PollResult:
            response = self._request("GET", url)
            self._raise_for_auth(response)
            result = self._decode(response)
            if response.status_code == 202:
                return PollResult(ExecutionState.POLLING, status=result.get("code"))
            if response.status_code == 200:
                return PollResult(ExecutionState.COMPLETED, value=result)
            return PollResult(
                ExecutionState.FAILED,
                status=result.get("code", response.status_code),
                message=self._remote_message(result),
            )

        poller = AsyncPoller(
            base_interval=float(self.config["poll_base_interval"]),
            max_interval=float(self.config["poll_max_interval"]),
            timeout=float(self.config["query_timeout"]),
        )
        return poller.wait_for(check).value

    def _fetch_partition(self, handle: str, index: int) -> list[list[Any]]:
        response = self._request("GET", f"{SNOWFLAKE_STATEMENTS}/{handle}", params={"partition": index})
        self._raise_for_auth(response)
        if response.status_code != 200:
            raise ExecutionError(
                f"Could not fetch partition {index} from Snowflake: {response.text}",
                status=response.status_code,
                remote_message=response.text,
            )
        return self._decode(response).get("data") or []

    def _run_statement(self, sql: str, consumer: RowConsumer) -> tuple[dict[str, Any], int]:
        result = self._submit(sql)
        metadata = result.get("resultSetMetaData") or {}
        columns = [column["name"] for column in metadata.get("rowType") or []]
        partitions = metadata.get("partitionInfo") or [{}]
        handle = result.get("statementHandle")

        delivered = drain_partitions(
            result.get("data") or [],
            len(partitions),
            lambda index: self._fetch_partition(handle, index),
            consumer,
            columns=columns or None,
        )
        return result, delivered

    def _execute(self, sql: str, result_format: ResultFormat) -> Any:
        accumulator = RowAccumulator()
        result, _ = self._run_statement(sql, accumulator)
        if result_format is ResultFormat.NATIVE:
            native = dict(result)
            native["data"] = accumulator.rows
            return native
        return accumulator.result(result_format)

    def _execute_stream(self, sql: str, sink: TextIO, stats: StreamingStats | None) -> None:
        _, delivered = self._run_statement(sql, HeaderAwareWriter(sink, stats))
        self.logger.debug(f"Streamed {delivered} rows")

    def _stream(self, sql: str, callback: Callable[[Any], Any]) -> int:
        _, delivered = self._run_statement(sql, CallbackConsumer(callback))
        return delivered
