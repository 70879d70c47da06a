"""
PostgreSQL adapter implementation.
"""

from .adapter import PostgreSQLAdapter

__all__ = ["PostgreSQLAdapter"]
