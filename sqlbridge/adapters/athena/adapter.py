"""
AWS Athena adapter.

A query is started with start_query_execution, polled with
get_query_execution until it succeeds, fails or is cancelled, and its rows
are read page by page with get_query_results. Results also land in the
configured S3 output location, as Athena always does.
"""

from collections.abc import Callable
from typing import Any, TextIO

try:
    import boto3
    from botocore.exceptions import (
        BotoCoreError,
        ClientError,
        EndpointConnectionError,
        NoCredentialsError,
    )
except ImportError:
    boto3 = None

from ...config import ConfigField
from ...exceptions import (
    AdapterConnectionError,
    ConfigurationError,
    ExecutionError,
    TokenExpiredError,
)
from ...streaming import (
    AsyncPoller,
    CallbackConsumer,
    ExecutionState,
    HeaderAwareWriter,
    Page,
    PollResult,
    ResultFormat,
    RowAccumulator,
    RowConsumer,
    StreamingStats,
    drain_pages,
)
from ..base import DatabaseAdapter, TransportKind

RUNNING_STATES = ("QUEUED", "RUNNING")
CREDENTIAL_ERRORS = (
    "UnrecognizedClientException",
    "InvalidSignatureException",
    "InvalidClientTokenId",
    "AccessDeniedException",
)


class AthenaAdapter(DatabaseAdapter):
    """AWS Athena adapter using boto3."""

    ENGINE = "athena"
    TRANSPORT_KIND = TransportKind.PAGINATED_HTTP
    CONFIG_FIELDS = (
        ConfigField("region", required=True, message="AWS region (e.g., us-east-1)"),
        ConfigField("catalog", required=True, default="AwsDataCatalog", message="data catalog"),
        ConfigField("database", required=True, default="default", message="Athena database/schema name"),
        ConfigField("s3_output_location", required=True, message="S3 location for query results (e.g., s3://bucket/path/)"),
        ConfigField("access_key_id", message="AWS access key ID (optional if using IAM role)"),
        ConfigField("secret_access_key", message="AWS secret access key (optional if using IAM role)"),
        ConfigField("workgroup", default="primary", message="Athena workgroup name"),
        ConfigField("query_timeout", default=300, message="query execution timeout in seconds"),
        ConfigField("poll_base_interval", default=0.25, message="first wait between status polls"),
        ConfigField("poll_max_interval", default=30.0, message="longest wait between status polls"),
        ConfigField("page_size", default=1000, message="rows per get_query_results page"),
    )

    def __init__(self, config: dict[str, Any]) -> None:
        if boto3 is None:
            raise ConfigurationError("boto3 is not installed. Install it with: pip install boto3")

        super().__init__(config)

    def _open_connection(self) -> Any:
        params = {"region_name": self.config["region"]}
        if self.config.get("access_key_id") and self.config.get("secret_access_key"):
            params["aws_access_key_id"] = self.config["access_key_id"]
            params["aws_secret_access_key"] = self.config["secret_access_key"]
        params.update(self.extra_connection_params)

        try:
            client = boto3.client("athena", **params)
        except BotoCoreError as e:
            raise ConfigurationError(f"Failed to create Athena client: {e}") from e
        self.logger.info(f"Created Athena client in {self.config['region']}")
        return client

    def _call(self, operation: str, **params: Any) -> dict[str, Any]:
        """Invoke an Athena API operation, mapping botocore failures."""
        self.connect()
        try:
            return getattr(self.connection, operation)(**params)
        except (EndpointConnectionError, NoCredentialsError) as e:
            raise AdapterConnectionError(f"Could not reach Athena: {e}") from e
        except ClientError as e:
            error = e.response.get("Error", {})
            code = error.get("Code")
            if code == "ExpiredTokenException":
                raise TokenExpiredError(f"AWS session token expired: {error.get('Message', e)}") from e
            if code in CREDENTIAL_ERRORS:
                raise AdapterConnectionError(
                    f"Athena rejected the credentials ({code}): {error.get('Message', e)}"
                ) from e
            raise ExecutionError(
                f"Athena {operation} failed: {error.get('Message', e)}",
                status=code,
                remote_message=error.get("Message"),
            ) from e
        except BotoCoreError as e:
            raise ExecutionError(f"Athena {operation} failed: {e}") from e

    def _ping(self) -> None:
        self._call("list_work_groups", MaxResults=1)

    def _start_query(self, sql: str) -> str:
        params = {
            "QueryString": sql,
            "QueryExecutionContext": {
                "Catalog": self.config["catalog"],
                "Database": self.config["database"],
            },
            "ResultConfiguration": {"OutputLocation": self.config["s3_output_location"]},
            "WorkGroup": self.config["workgroup"],
        }
        params.update(self.extra_query_params)
        return self._call("start_query_execution", **params)["QueryExecutionId"]

    def _wait_for_completion(self, query_id: str) -> dict[str, Any]:
        def check() -> PollResult:
            execution = self._call("get_query_execution", QueryExecutionId=query_id)["QueryExecution"]
            status = execution.get("Status", {})
            state = status.get("State")
            if state == "SUCCEEDED":
                return PollResult(ExecutionState.COMPLETED, value=execution, status=state)
            if state in RUNNING_STATES:
                return PollResult(ExecutionState.POLLING, status=state)
            if state in ("FAILED", "CANCELLED"):
                return PollResult(
                    ExecutionState.FAILED, status=state, message=status.get("StateChangeReason")
                )
            return PollResult(ExecutionState.FAILED, status=state, message=f"Unknown query state: {state}")

        poller = AsyncPoller(
            base_interval=float(self.config["poll_base_interval"]),
            max_interval=float(self.config["poll_max_interval"]),
            timeout=float(self.config["query_timeout"]),
        )

        def on_state(state: ExecutionState) -> None:
            if state is ExecutionState.POLLING:
                self._set_state(ExecutionState.POLLING)

        return poller.wait_for(check, on_state=on_state).value

    def _run_query(self, sql: str, consumer: RowConsumer) -> tuple[str, int]:
        query_id = self._start_query(sql)
        execution = self._wait_for_completion(query_id)
        first_row_is_header = execution.get("StatementType") == "DML"

        def fetch_page(token: str | None) -> Page:
            params = {"QueryExecutionId": query_id, "MaxResults": int(self.config["page_size"])}
            if token:
                params["NextToken"] = token
            response = self._call("get_query_results", **params)
            result_set = response.get("ResultSet", {})

            if token is None:
                columns = result_set.get("ResultSetMetadata", {}).get("ColumnInfo") or []
                if columns:
                    consumer.set_header([column["Name"] for column in columns])

            rows = []
            for index, row in enumerate(result_set.get("Rows", [])):
                values = [datum.get("VarCharValue") for datum in row.get("Data", [])]
                is_label_row = token is None and index == 0 and first_row_is_header
                if not is_label_row and all(value is None for value in values):
                    continue
                rows.append(values)
            return Page(rows=rows, next_token=response.get("NextToken"))

        delivered = drain_pages(fetch_page, consumer, first_row_is_header=first_row_is_header)
        return query_id, delivered

    def _execute(self, sql: str, result_format: ResultFormat) -> Any:
        accumulator = RowAccumulator()
        query_id, _ = self._run_query(sql, accumulator)
        if result_format is ResultFormat.NATIVE:
            return {
                "query_execution_id": query_id,
                "headers": accumulator.columns or [],
                "rows": accumulator.rows,
            }
        return accumulator.result(result_format)

    def _execute_stream(self, sql: str, sink: TextIO, stats: StreamingStats | None) -> None:
        _, delivered = self._run_query(sql, HeaderAwareWriter(sink, stats))
        self.logger.debug(f"Streamed {delivered} rows")

    def _stream(self, sql: str, callback: Callable[[Any], Any]) -> int:
        _, delivered = self._run_query(sql, CallbackConsumer(callback))
        return delivered
