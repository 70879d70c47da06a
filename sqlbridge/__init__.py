"""
sqlbridge

One execution contract over many SQL engines: a template based dialect
translation layer and a transport independent streaming execution protocol.
"""

from .adapters import (
    AdapterRegistry,
    AthenaAdapter,
    DatabaseAdapter,
    DruidAdapter,
    DuckDBAdapter,
    PostgreSQLAdapter,
    RedshiftAdapter,
    SnowflakeAdapter,
    TransportKind,
    default_registry,
    get_adapter,
)
from .dialect import Capability, Dialect, DialectSettings
from .exceptions import (
    AdapterConnectionError,
    AuthenticationError,
    ConfigurationError,
    DialectSettingsError,
    ExecutionError,
    OAuthError,
    SqlBridgeError,
    TokenExpiredError,
    UnsupportedCapabilityError,
)
from .logging_utils import setup_logging
from .streaming import ExecutionState, ResultFormat, StreamingStats

__version__ = "0.1.0"

__all__ = [
    "AdapterRegistry",
    "default_registry",
    "get_adapter",
    "DatabaseAdapter",
    "TransportKind",
    "DuckDBAdapter",
    "PostgreSQLAdapter",
    "RedshiftAdapter",
    "DruidAdapter",
    "SnowflakeAdapter",
    "AthenaAdapter",
    "Dialect",
    "DialectSettings",
    "Capability",
    "StreamingStats",
    "ResultFormat",
    "ExecutionState",
    "setup_logging",
    "SqlBridgeError",
    "ConfigurationError",
    "AdapterConnectionError",
    "ExecutionError",
    "UnsupportedCapabilityError",
    "DialectSettingsError",
    "OAuthError",
    "AuthenticationError",
    "TokenExpiredError",
]
