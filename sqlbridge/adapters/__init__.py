"""
Database adapters.

This package provides one adapter per engine behind a shared interface:
- connection management
- buffered, sink-streamed and callback-streamed execution
- the engine's SQL dialect (functions, capabilities, policy flags)

Each adapter is organized in its own subpackage.
"""

from .athena import AthenaAdapter
from .base import DatabaseAdapter, TransportKind
from .druid import DruidAdapter
from .duckdb import DuckDBAdapter
from .pool import ConnectionPool
from .postgresql import PostgreSQLAdapter
from .redshift import RedshiftAdapter
from .registry import (
    AdapterRegistry,
    default_registry,
    get_adapter,
    is_adapter_supported,
    list_available_adapters,
)
from .snowflake import SnowflakeAdapter

__all__ = [
    # Base classes
    "DatabaseAdapter",
    "TransportKind",
    # Registry and pools
    "AdapterRegistry",
    "ConnectionPool",
    "default_registry",
    "get_adapter",
    "list_available_adapters",
    "is_adapter_supported",
    # Available adapters
    "DuckDBAdapter",
    "PostgreSQLAdapter",
    "RedshiftAdapter",
    "DruidAdapter",
    "SnowflakeAdapter",
    "AthenaAdapter",
]
