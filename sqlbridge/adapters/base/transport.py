"""
Transport kinds.
"""

from enum import Enum


class TransportKind(Enum):
    """How an engine delivers results."""

    SYNC_DRIVER = "sync_driver"  # DB-API style driver, rows come from a cursor
    CHUNKED_HTTP = "chunked_http"  # one HTTP response streamed in arbitrary byte chunks
    PAGINATED_HTTP = "paginated_http"  # async submission, polling, pages or partitions
