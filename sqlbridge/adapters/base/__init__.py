"""
Base adapter classes.

This module provides the core DatabaseAdapter class and related types.
"""

from .core import DatabaseAdapter
from .transport import TransportKind

__all__ = [
    "DatabaseAdapter",
    "TransportKind",
]
