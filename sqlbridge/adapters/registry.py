"""
Adapter registry for managing database adapters.

The registry maps engine names to adapter classes and owns named connection
pools. It is a plain object: create one, register engines, close it when done.
default_registry() returns a shared registry with every built-in engine.
"""

import importlib
import logging
import threading
from typing import Any

from ..exceptions import ConfigurationError
from .base import DatabaseAdapter
from .pool import ConnectionPool

BUILTIN_ADAPTERS = {
    "duckdb": "sqlbridge.adapters.duckdb:DuckDBAdapter",
    "postgres": "sqlbridge.adapters.postgresql:PostgreSQLAdapter",
    "redshift": "sqlbridge.adapters.redshift:RedshiftAdapter",
    "druid": "sqlbridge.adapters.druid:DruidAdapter",
    "snowflake": "sqlbridge.adapters.snowflake:SnowflakeAdapter",
    "athena": "sqlbridge.adapters.athena:AthenaAdapter",
}


def _import_adapter(path: str) -> type[DatabaseAdapter]:
    module_name, class_name = path.split(":")
    return getattr(importlib.import_module(module_name), class_name)


class AdapterRegistry:
    """Registry for managing database adapters and named pools."""

    def __init__(self) -> None:
        self._adapters: dict[str, type[DatabaseAdapter]] = {}
        self._pools: dict[str, ConnectionPool] = {}
        self._lock = threading.Lock()
        self.logger = logging.getLogger(self.__class__.__name__)

    def register(self, adapter_type: str, adapter_class: type[DatabaseAdapter]) -> None:
        """
        Register a database adapter and load its dialect settings.

        Args:
            adapter_type: Engine name (e.g., 'duckdb', 'snowflake')
            adapter_class: DatabaseAdapter subclass

        Raises:
            ConfigurationError: If the class does not declare a transport kind
        """
        if not isinstance(adapter_class, type) or not issubclass(adapter_class, DatabaseAdapter):
            raise ConfigurationError(f"{adapter_class!r} is not a DatabaseAdapter subclass")
        if adapter_class.TRANSPORT_KIND is None:
            raise ConfigurationError(f"{adapter_class.__name__} does not declare a TRANSPORT_KIND")

        adapter_class.load_settings()
        with self._lock:
            self._adapters[adapter_type.lower()] = adapter_class
        self.logger.debug(f"Registered adapter: {adapter_type} -> {adapter_class.__name__}")

    def register_builtin(self) -> None:
        """Register every adapter shipped with sqlbridge."""
        for adapter_type, path in BUILTIN_ADAPTERS.items():
            self.register(adapter_type, _import_adapter(path))

    def get_adapter_class(self, adapter_type: str) -> type[DatabaseAdapter] | None:
        with self._lock:
            return self._adapters.get(adapter_type.lower())

    def create(self, adapter_type: str, config: dict[str, Any]) -> DatabaseAdapter:
        """
        Create an adapter instance.

        Raises:
            ConfigurationError: If the engine is not registered or the config is invalid
        """
        adapter_class = self.get_adapter_class(adapter_type)
        if adapter_class is None:
            raise ConfigurationError(
                f"Unsupported database type: {adapter_type}. "
                f"Supported types: {self.list_adapters()}"
            )
        return adapter_class(config)

    def create_adapter(self, config: dict[str, Any]) -> DatabaseAdapter:
        """Create an adapter from a configuration carrying its engine under 'type'."""
        adapter_type = config.get("type") if isinstance(config, dict) else None
        if not adapter_type:
            raise ConfigurationError("Database type is required")
        return self.create(adapter_type, config)

    def list_adapters(self) -> list[str]:
        with self._lock:
            return list(self._adapters)

    def is_supported(self, adapter_type: str) -> bool:
        with self._lock:
            return adapter_type.lower() in self._adapters

    def pool(
        self,
        pool_name: str,
        adapter_type: str,
        config: dict[str, Any],
        size: int = 10,
        timeout: float = 5.0,
    ) -> ConnectionPool:
        """
        Get the named pool, creating it on first use.

        Creation is atomic: concurrent callers with the same name all get the
        same pool, and later calls ignore their arguments.
        """
        adapter_class = self.get_adapter_class(adapter_type)
        if adapter_class is None:
            raise ConfigurationError(
                f"Unsupported database type: {adapter_type}. "
                f"Supported types: {self.list_adapters()}"
            )

        with self._lock:
            existing = self._pools.get(pool_name)
            if existing is not None:
                return existing
            pool = ConnectionPool(pool_name, lambda: adapter_class(config), size=size, timeout=timeout)
            self._pools[pool_name] = pool
        self.logger.debug(f"Created pool {pool_name} for {adapter_type} (size={size})")
        return pool

    def pools(self) -> list[str]:
        with self._lock:
            return list(self._pools)

    def close(self) -> None:
        """Tear down every named pool."""
        with self._lock:
            pools, self._pools = list(self._pools.values()), {}
        for pool in pools:
            pool.close()

    def __enter__(self) -> "AdapterRegistry":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


_default_registry: AdapterRegistry | None = None
_default_lock = threading.Lock()


def default_registry() -> AdapterRegistry:
    """Shared registry with every built-in adapter, built on first use."""
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            registry = AdapterRegistry()
            registry.register_builtin()
            _default_registry = registry
        return _default_registry


def get_adapter(config: dict[str, Any]) -> DatabaseAdapter:
    """
    Get an adapter instance from configuration.

    Args:
        config: Adapter configuration with the engine name under 'type'

    Returns:
        Configured adapter instance
    """
    return default_registry().create_adapter(config)


def list_available_adapters() -> list[str]:
    """Get list of available adapter types."""
    return default_registry().list_adapters()


def is_adapter_supported(adapter_type: str) -> bool:
    """Check if an adapter type is supported."""
    return default_registry().is_supported(adapter_type)
