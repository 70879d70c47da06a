"""
Thread-safe statistics for streamed executions.

A streaming call writes to a StreamingStats on its worker thread while any
number of other threads read it, for example to update a progress display.
Only a capped preview of rows is kept in memory; the full result goes to the
caller's sink.
"""

import threading
from collections.abc import Iterable, Sequence

DEFAULT_IN_MEMORY_LIMIT = 20_000


def row_byte_size(row: Sequence) -> int:
    """Size of a row as UTF-8 encoded comma separated text."""
    return len(",".join("" if v is None else str(v) for v in row).encode("utf-8"))


class StreamingStats:
    """Row counter, max row size and capped preview buffer behind one lock."""

    def __init__(self, in_memory_limit: int = DEFAULT_IN_MEMORY_LIMIT) -> None:
        if in_memory_limit < 0:
            raise ValueError("in_memory_limit must be zero or positive")
        self._in_memory_limit = in_memory_limit
        self._lock = threading.Lock()
        self._total_rows = 0
        self._max_row_size = 0
        self._data: list[Sequence] = []

    @property
    def in_memory_limit(self) -> int:
        return self._in_memory_limit

    def reset(self) -> None:
        """Clear the counters and the preview."""
        with self._lock:
            self._total_rows = 0
            self._max_row_size = 0
            self._data = []

    def add_row(self, row: Sequence) -> None:
        """
        Count a row and keep it in the preview while there is room.

        Raises:
            TypeError: If the row is not a list or tuple
        """
        if not isinstance(row, (list, tuple)):
            raise TypeError(f"Row must be a list or tuple, got {type(row).__name__}")

        size = row_byte_size(row)
        with self._lock:
            if len(self._data) < self._in_memory_limit:
                self._data.append(row)
            self._total_rows += 1
            if size > self._max_row_size:
                self._max_row_size = size

    def add_preview_rows(self, rows: Iterable[Sequence]) -> None:
        """Append rows to the preview only, without counting them."""
        with self._lock:
            for row in rows:
                if len(self._data) >= self._in_memory_limit:
                    break
                self._data.append(row)

    def record_chunk(self, line_count: int, byte_size: int) -> None:
        """Count rows of a raw chunk that was not parsed row by row."""
        with self._lock:
            self._total_rows += line_count
            if byte_size > self._max_row_size:
                self._max_row_size = byte_size

    @property
    def preview_full(self) -> bool:
        with self._lock:
            return len(self._data) >= self._in_memory_limit

    @property
    def data(self) -> list[Sequence]:
        """Snapshot of the preview rows collected so far."""
        with self._lock:
            return list(self._data)

    @property
    def total_rows(self) -> int:
        with self._lock:
            return self._total_rows

    @property
    def max_row_size(self) -> int:
        """Largest row seen, in bytes. Useful to estimate the eventual file size."""
        with self._lock:
            return self._max_row_size

    def __repr__(self) -> str:
        with self._lock:
            return (
                f"StreamingStats(total_rows={self._total_rows}, "
                f"max_row_size={self._max_row_size}, preview={len(self._data)})"
            )
