"""
Snowflake adapter implementation.
"""

from .adapter import SnowflakeAdapter

__all__ = ["SnowflakeAdapter"]
