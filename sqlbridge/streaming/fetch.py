"""
Fetch drivers for results that arrive in several responses.

- drain_partitions: a first response embedding partition 0 and declaring
  more partitions fetched one by one (Snowflake SQL API)
- drain_pages: continuation-token pages, optionally led by a label row
  (Athena get_query_results)
- AsyncPoller: poll a status endpoint with exponential backoff until the
  statement reaches a terminal state

All of them push rows into a RowConsumer and stop early when it asks to.
"""

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import ExecutionError
from .protocol import ExecutionState, RowConsumer

logger = logging.getLogger(__name__)

DEFAULT_POLL_BASE_INTERVAL = 0.25
DEFAULT_POLL_MAX_INTERVAL = 30.0


def _push_rows(rows: Iterable[Sequence], consumer: RowConsumer) -> tuple[int, bool]:
    delivered = 0
    for row in rows:
        delivered += 1
        if not consumer.add_row(row):
            return delivered, False
    return delivered, True


def drain_partitions(
    first_rows: Iterable[Sequence],
    partition_count: int,
    fetch_partition: Callable[[int], Iterable[Sequence]],
    consumer: RowConsumer,
    columns: Sequence[str] | None = None,
) -> int:
    """
    Deliver every partition of a result in order.

    Args:
        first_rows: Rows of partition 0, already present in the first response
        partition_count: Total number of partitions declared by the response
        fetch_partition: Called with 1..partition_count-1, returns that partition's rows
        consumer: Destination of the rows
        columns: Column names, handed to the consumer before any row

    Returns:
        Number of rows delivered
    """
    if columns is not None:
        consumer.set_header(columns)

    delivered, more = _push_rows(first_rows, consumer)
    for index in range(1, max(partition_count, 1)):
        if not more:
            break
        logger.debug(f"Fetching partition {index + 1}/{partition_count}")
        count, more = _push_rows(fetch_partition(index), consumer)
        delivered += count
    return delivered


@dataclass
class Page:
    """One page of a token-paginated result."""

    rows: list[Sequence] = field(default_factory=list)
    next_token: str | None = None


def drain_pages(
    fetch_page: Callable[[str | None], Page],
    consumer: RowConsumer,
    first_row_is_header: bool = False,
) -> int:
    """
    Follow continuation tokens until the last page.

    Args:
        fetch_page: Called with None first, then with each returned token
        consumer: Destination of the rows
        first_row_is_header: The first row of the first page holds column
            labels; it is handed to the consumer as header and not as data

    Returns:
        Number of data rows delivered
    """
    delivered = 0
    token: str | None = None
    first_page = True

    while True:
        page = fetch_page(token)
        rows = page.rows
        if first_page and first_row_is_header and rows:
            consumer.set_header([str(label) for label in rows[0]])
            rows = rows[1:]
        first_page = False

        count, more = _push_rows(rows, consumer)
        delivered += count
        if not more or not page.next_token:
            return delivered
        token = page.next_token


class PollBackoff:
    """
    Wait intervals for status polling.

    Starts at base_interval and doubles each time up to max_interval; after
    the maximum has been waited once the sequence starts again from base.
    """

    def __init__(
        self,
        base_interval: float = DEFAULT_POLL_BASE_INTERVAL,
        max_interval: float = DEFAULT_POLL_MAX_INTERVAL,
    ) -> None:
        if base_interval <= 0 or max_interval < base_interval:
            raise ValueError("Poll intervals must satisfy 0 < base_interval <= max_interval")
        self.base_interval = base_interval
        self.max_interval = max_interval
        self._next = base_interval

    def next_interval(self) -> float:
        interval = self._next
        if interval >= self.max_interval:
            self._next = self.base_interval
        else:
            self._next = min(interval * 2, self.max_interval)
        return interval

    def reset(self) -> None:
        self._next = self.base_interval


@dataclass
class PollResult:
    """What a single status check observed."""

    state: ExecutionState
    value: Any = None
    status: str | int | None = None
    message: str | None = None


class AsyncPoller:
    """Polls a status check until COMPLETED or FAILED."""

    def __init__(
        self,
        base_interval: float = DEFAULT_POLL_BASE_INTERVAL,
        max_interval: float = DEFAULT_POLL_MAX_INTERVAL,
        timeout: float | None = None,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.backoff = PollBackoff(base_interval, max_interval)
        self.timeout = timeout
        self.sleep = sleep or time.sleep
        self.clock = clock or time.monotonic
        self.attempts = 0
        self.waits: list[float] = []
        self.logger = logging.getLogger(self.__class__.__name__)

    def wait_for(
        self,
        check: Callable[[], PollResult],
        on_state: Callable[[ExecutionState], None] | None = None,
    ) -> PollResult:
        """
        Call check until it reports a terminal state.

        Returns:
            The COMPLETED result

        Raises:
            ExecutionError: On a FAILED result (carrying its status and
                message) or when the timeout elapses
        """
        self.backoff.reset()
        started = self.clock()

        while True:
            self.attempts += 1
            result = check()
            if on_state is not None:
                on_state(result.state)

            if result.state is ExecutionState.COMPLETED:
                self.logger.debug(f"Statement completed after {self.attempts} poll attempts")
                return result
            if result.state is ExecutionState.FAILED:
                raise ExecutionError(
                    f"Statement failed with status {result.status}: {result.message}",
                    status=result.status,
                    remote_message=result.message,
                )

            elapsed = self.clock() - started
            if self.timeout is not None and elapsed >= self.timeout:
                raise ExecutionError(
                    f"Statement did not complete within {self.timeout} seconds "
                    f"({self.attempts} poll attempts)",
                    status=result.status,
                )

            interval = self.backoff.next_interval()
            self.waits.append(interval)
            self.sleep(interval)
