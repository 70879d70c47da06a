"""
DuckDB adapter implementation.
"""

from .adapter import DuckDBAdapter

__all__ = ["DuckDBAdapter"]
