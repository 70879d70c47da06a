"""
Amazon Redshift adapter implementation.
"""

from .adapter import RedshiftAdapter

__all__ = ["RedshiftAdapter"]
