"""
Apache Druid adapter implementation.
"""

from .adapter import DruidAdapter

__all__ = ["DruidAdapter"]
