"""
Amazon Redshift adapter.

Redshift speaks the PostgreSQL wire protocol, so this is the PostgreSQL
adapter with Redshift's port and dialect settings.
"""

from ...config import ConfigField
from ..postgresql import PostgreSQLAdapter


class RedshiftAdapter(PostgreSQLAdapter):
    """Amazon Redshift database adapter."""

    ENGINE = "redshift"
    DEFAULT_PORT = 5439
    CONFIG_FIELDS = tuple(
        ConfigField("port", default=5439, message="port to connect to") if f.name == "port" else f
        for f in PostgreSQLAdapter.CONFIG_FIELDS
    )
