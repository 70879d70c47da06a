"""
Decoder for CSV streams whose chunks are not aligned to record boundaries.

Chunks go to the sink untouched as soon as they arrive. Separately, they are
accumulated into a parse buffer from which complete records are parsed into
a preview, until the preview is full.
"""

import codecs
import csv
import io
import logging
from typing import IO

from .stats import DEFAULT_IN_MEMORY_LIMIT, StreamingStats

DEFAULT_MAX_BUFFER_BYTES = 8 * 1024 * 1024

# csv error raised in strict mode when the data ends inside a quoted field
INCOMPLETE_RECORD = "unexpected end of data"


class ChunkedDecoder:
    """
    Feed byte chunks in, get a byte-exact sink and a parsed preview out.

    A record split across chunks makes the parse attempt fail; the buffer is
    then kept and parsed again once more bytes arrive. A buffer that grows
    beyond max_buffer_bytes without parsing (one huge unterminated record),
    or a record that can never parse (invalid bytes or malformed quoting),
    ends preview parsing for the rest of the stream. Statistics are counted
    per chunk, so they stay exact whatever the preview does.
    """

    def __init__(
        self,
        sink: IO,
        stats: StreamingStats | None = None,
        row_limit: int = DEFAULT_IN_MEMORY_LIMIT,
        max_buffer_bytes: int = DEFAULT_MAX_BUFFER_BYTES,
        encoding: str = "utf-8",
    ) -> None:
        self.sink = sink
        self.stats = stats
        self.row_limit = row_limit
        self.max_buffer_bytes = max_buffer_bytes
        self.encoding = encoding
        self.logger = logging.getLogger(self.__class__.__name__)

        self.rows: list[list[str]] = []
        self.chunks_received = 0
        self.bytes_received = 0
        self.lines_received = 0
        self.parsing_abandoned = False

        self._text_sink = hasattr(sink, "encoding")
        self._sink_decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = bytearray()
        self._last_byte = b""
        self._finished = False

    @property
    def buffered_bytes(self) -> int:
        return len(self._buffer)

    def feed(self, chunk: bytes) -> None:
        """Process one chunk of the stream."""
        if self._finished:
            raise ValueError("ChunkedDecoder.feed() called after finish()")
        if not chunk:
            return

        self._write_sink(chunk, final=False)

        line_count = chunk.count(b"\n")
        self.chunks_received += 1
        self.bytes_received += len(chunk)
        self.lines_received += line_count
        self._last_byte = chunk[-1:]
        if self.stats is not None:
            self.stats.record_chunk(line_count, len(chunk))

        if self._should_parse():
            self._buffer.extend(chunk)
            self._parse_complete_records()

    def finish(self) -> IO:
        """
        Flush the end of the stream.

        Parses whatever is left in the buffer and counts a last line that had
        no terminating newline.

        Returns:
            The sink, positioned at the end of the written data
        """
        if self._finished:
            return self.sink
        self._finished = True

        self._write_sink(b"", final=True)

        if self.bytes_received and self._last_byte != b"\n":
            self.lines_received += 1
            if self.stats is not None:
                self.stats.record_chunk(1, 0)

        if self._should_parse() and self._buffer:
            try:
                self._add_rows(self._parse(bytes(self._buffer)))
            except (csv.Error, UnicodeDecodeError) as e:
                self.logger.debug(f"Discarding unparseable stream tail ({len(self._buffer)} bytes): {e}")
        self._buffer.clear()
        return self.sink

    def _write_sink(self, chunk: bytes, final: bool) -> None:
        if self._text_sink:
            text = self._sink_decoder.decode(chunk, final)
            if text:
                self.sink.write(text)
        elif chunk:
            self.sink.write(chunk)

    def _should_parse(self) -> bool:
        return not self.parsing_abandoned and len(self.rows) < self.row_limit

    def _parse_complete_records(self) -> None:
        end = self._buffer.rfind(b"\n")
        if end >= 0:
            try:
                rows = self._parse(bytes(self._buffer[: end + 1]))
            except csv.Error as e:
                if INCOMPLETE_RECORD not in str(e):
                    self._stop_parsing(f"malformed CSV ({e})")
                    return
                # Incomplete quoted record, retry when more bytes arrive
                self.logger.debug(f"Deferring parse of {len(self._buffer)} buffered bytes: {e}")
            except UnicodeDecodeError as e:
                self._stop_parsing(f"undecodable bytes ({e})")
                return
            else:
                del self._buffer[: end + 1]
                self._add_rows(rows)

        if not self._should_parse():
            self._buffer.clear()
        elif len(self._buffer) > self.max_buffer_bytes:
            self._stop_parsing(f"parse buffer exceeded {self.max_buffer_bytes} bytes without a complete record")

    def _stop_parsing(self, reason: str) -> None:
        self.logger.warning(
            f"Preview parsing stopped after {len(self.rows)} rows: {reason}. Streaming continues."
        )
        self.parsing_abandoned = True
        self._buffer.clear()

    def _parse(self, data: bytes) -> list[list[str]]:
        text = data.decode(self.encoding)
        return [row for row in csv.reader(io.StringIO(text, newline=""), strict=True) if row]

    def _add_rows(self, rows: list[list[str]]) -> None:
        room = self.row_limit - len(self.rows)
        if room <= 0:
            return
        accepted = rows[:room]
        self.rows.extend(accepted)
        if self.stats is not None:
            self.stats.add_preview_rows(accepted)
