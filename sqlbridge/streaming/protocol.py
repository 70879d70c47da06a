"""
Streaming execution protocol.

Every transport feeds rows into a RowConsumer, whatever the way they arrive
(driver cursor, paginated responses, partitions). There is one consumer per
execution mode:

- RowAccumulator: buffered, the full result is materialized and formatted
- HeaderAwareWriter: sink-streamed, CSV lines written to a text sink
- CallbackConsumer: callback-streamed, one row at a time
"""

import csv
import io
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any, TextIO

from ..exceptions import UnsupportedCapabilityError
from .stats import StreamingStats


class ResultFormat(Enum):
    """Shapes a buffered result can be returned in."""

    ARRAY = "array"
    OBJECT = "object"
    CSV = "csv"
    NATIVE = "native"

    @classmethod
    def parse(cls, value: "str | ResultFormat") -> "ResultFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            supported = ", ".join(f.value for f in cls)
            raise UnsupportedCapabilityError(
                f"Unsupported result format: {value}. Supported formats: {supported}"
            ) from None


class ExecutionState(Enum):
    """Lifecycle of one execution: IDLE -> SUBMITTED -> [POLLING ->] COMPLETED | FAILED."""

    IDLE = "idle"
    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionState.COMPLETED, ExecutionState.FAILED)


def rows_to_csv(columns: Sequence[str] | None, rows: Sequence[Sequence]) -> str:
    """Render rows as CSV text with an optional header line."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    if columns:
        writer.writerow(columns)
    writer.writerows(rows)
    return buffer.getvalue()


def format_rows(
    columns: Sequence[str] | None, rows: Sequence[Sequence], result_format: ResultFormat
) -> Any:
    """
    Shape materialized rows.

    NATIVE results never reach this helper; adapters return their engine's
    own object for it.
    """
    if result_format is ResultFormat.ARRAY:
        return list(rows)
    if result_format is ResultFormat.OBJECT:
        names = list(columns or [])
        return [dict(zip(names, row)) for row in rows]
    if result_format is ResultFormat.CSV:
        return rows_to_csv(columns, rows)
    raise UnsupportedCapabilityError(f"Result format {result_format.value} cannot be built from rows")


class RowConsumer(ABC):
    """Destination of rows produced by a transport."""

    def __init__(self) -> None:
        self.columns: list[str] | None = None
        self.rows_consumed = 0

    def set_header(self, columns: Sequence[str]) -> None:
        """Record column names. Only the first call has any effect."""
        if self.columns is None:
            self.columns = list(columns)
            self._on_header(self.columns)

    def _on_header(self, columns: list[str]) -> None:
        pass

    def add_row(self, row: Sequence) -> bool:
        """
        Consume one data row.

        Returns:
            False when the consumer wants no more rows
        """
        self.rows_consumed += 1
        return self._consume(row) is not False

    @abstractmethod
    def _consume(self, row: Sequence) -> bool | None:
        pass


class RowAccumulator(RowConsumer):
    """Collects every row in memory for buffered execution."""

    def __init__(self) -> None:
        super().__init__()
        self.rows: list[Sequence] = []

    def _consume(self, row: Sequence) -> None:
        self.rows.append(row)

    def result(self, result_format: ResultFormat) -> Any:
        return format_rows(self.columns, self.rows, result_format)


class HeaderAwareWriter(RowConsumer):
    """
    Writes CSV lines to a text sink.

    The header line is written once, before the first data row, and only if
    column names were provided before that row. Data rows are also offered to
    the stats collector.
    """

    def __init__(self, sink: TextIO, stats: StreamingStats | None = None) -> None:
        super().__init__()
        self.sink = sink
        self.stats = stats
        self._writer = csv.writer(sink, lineterminator="\n")
        self.header_written = False

    def _on_header(self, columns: list[str]) -> None:
        if self.rows_consumed == 0 and not self.header_written:
            self._writer.writerow(columns)
            self.header_written = True

    def _consume(self, row: Sequence) -> None:
        self._writer.writerow(row)
        if self.stats is not None:
            self.stats.add_row(row if isinstance(row, (list, tuple)) else list(row))


class CallbackConsumer(RowConsumer):
    """Hands each row to a callback. A callback returning False stops the stream."""

    def __init__(self, callback: Callable[[Any], Any]) -> None:
        super().__init__()
        self.callback = callback
        self.stopped = False

    def _consume(self, row: Sequence) -> bool:
        if self.callback(row) is False:
            self.stopped = True
            return False
        return True
