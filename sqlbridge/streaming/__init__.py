"""
Transport independent streaming execution.
"""

from .chunked import ChunkedDecoder
from .fetch import AsyncPoller, Page, PollBackoff, PollResult, drain_pages, drain_partitions
from .protocol import (
    CallbackConsumer,
    ExecutionState,
    HeaderAwareWriter,
    ResultFormat,
    RowAccumulator,
    RowConsumer,
    format_rows,
    rows_to_csv,
)
from .retry import with_retry
from .stats import StreamingStats

__all__ = [
    "StreamingStats",
    "ChunkedDecoder",
    "ResultFormat",
    "ExecutionState",
    "RowConsumer",
    "RowAccumulator",
    "HeaderAwareWriter",
    "CallbackConsumer",
    "format_rows",
    "rows_to_csv",
    "with_retry",
    "AsyncPoller",
    "PollBackoff",
    "PollResult",
    "Page",
    "drain_pages",
    "drain_partitions",
]
