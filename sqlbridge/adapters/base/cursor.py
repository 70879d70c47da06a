"""
Helpers shared by adapters reading rows from DB-API style cursors.
"""

from typing import Any

from ...streaming import RowConsumer

DEFAULT_FETCH_SIZE = 1000


def cursor_columns(cursor: Any) -> list[str] | None:
    """Column names from cursor.description, None for statements without a result."""
    if not cursor.description:
        return None
    return [column[0] for column in cursor.description]


def drain_cursor(
    cursor: Any,
    consumer: RowConsumer,
    fetch_size: int = DEFAULT_FETCH_SIZE,
    describe_after_fetch: bool = False,
) -> int:
    """
    Push every row of an executed cursor into consumer, fetch_size rows at a time.

    Args:
        describe_after_fetch: The cursor only knows its columns once the first
            batch was fetched (psycopg2 server-side cursors)

    Returns:
        Number of rows delivered
    """
    batch = None
    if describe_after_fetch:
        batch = cursor.fetchmany(fetch_size)

    columns = cursor_columns(cursor)
    if columns is None:
        return 0
    consumer.set_header(columns)

    delivered = 0
    while True:
        if batch is None:
            batch = cursor.fetchmany(fetch_size)
        if not batch:
            return delivered
        for row in batch:
            delivered += 1
            if not consumer.add_row(row):
                return delivered
        batch = None
