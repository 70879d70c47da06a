"""
AWS Athena adapter implementation.
"""

from .adapter import AthenaAdapter

__all__ = ["AthenaAdapter"]
