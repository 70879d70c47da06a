"""
Pytest configuration and shared fixtures for sqlbridge tests.
"""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from sqlbridge.adapters.duckdb.adapter import DuckDBAdapter
from sqlbridge.dialect import Dialect, DialectSettings


@pytest.fixture
def make_dialect() -> Callable[..., Dialect]:
    """Build a Dialect for an engine, with optional setting changes."""

    def _make(engine: str = "base", **changes: Any) -> Dialect:
        return Dialect(DialectSettings.load(engine).copy(changes or None))

    return _make


@pytest.fixture
def duckdb_config():
    """Create DuckDB configuration."""
    return {"type": "duckdb", "path": ":memory:"}


@pytest.fixture
def duckdb_adapter(duckdb_config):
    """Create DuckDB adapter instance."""
    adapter = DuckDBAdapter(duckdb_config)
    adapter.connect()
    yield adapter
    adapter.disconnect()


@pytest.fixture
def sales_table(duckdb_adapter):
    """A small table in the in-memory database."""
    duckdb_adapter.execute(
        """
        CREATE TABLE sales AS
        SELECT * FROM (VALUES
            (1, 'Alice', DATE '2024-01-10', 10.5),
            (2, 'Bob', DATE '2024-02-14', 20.0),
            (3, 'Charlie', DATE '2024-03-03', NULL)
        ) AS t(id, name, sold_on, amount)
        """
    )
    return "sales"


@pytest.fixture
def csv_payload() -> bytes:
    """CSV body with quoted fields, an embedded newline and multi-byte characters."""
    return (
        'id,name,comment\n'
        '1,Alice,"plain"\n'
        '2,"Bob, Jr.","says ""hi"""\n'
        '3,Chloé,"two\nlines"\n'
        '4,Dmitrï,"ünïcode ✓"\n'
        '5,Eve,\n'
    ).encode("utf-8")


class RecordingHandler:
    """httpx.MockTransport handler answering from a queue of canned responses."""

    def __init__(self, responses: list[httpx.Response | Callable[[httpx.Request], httpx.Response]]):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        response = self.responses.pop(0)
        if callable(response):
            return response(request)
        return response

    def json_body(self, index: int) -> dict[str, Any]:
        return json.loads(self.requests[index].content)


@pytest.fixture
def mock_http() -> Callable[..., tuple[RecordingHandler, httpx.MockTransport]]:
    """Build a MockTransport that serves the given responses in order."""

    def _make(*responses):
        handler = RecordingHandler(list(responses))
        return handler, httpx.MockTransport(handler)

    return _make


@pytest.fixture
def no_sleep(monkeypatch):
    """Make status polling instantaneous and record the waits."""
    waits: list[float] = []
    monkeypatch.setattr("sqlbridge.streaming.fetch.time.sleep", waits.append)
    return waits
