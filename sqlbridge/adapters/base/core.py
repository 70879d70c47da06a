"""
Core database adapter base class.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, TextIO, TypeVar

from ...config import ConfigField, validate_config
from ...dialect import Behaviors, Capabilities, Dialect, DialectSettings, Functions
from ...dialect.capabilities import capability_names
from ...exceptions import AdapterConnectionError, ConfigurationError
from ...streaming import ExecutionState, ResultFormat, StreamingStats, with_retry
from .transport import TransportKind

T = TypeVar("T")


class DatabaseAdapter(ABC, Capabilities, Functions, Behaviors):
    """
    Abstract base class for database adapters.

    An adapter owns a connection to one engine and a Dialect over its own
    copy of the engine's settings, so dialect functions can be called on the
    adapter directly (adapter.truncate_date(...)). Subclasses declare their
    ENGINE (settings document name), TRANSPORT_KIND and CONFIG_FIELDS and
    implement the transport specific hooks.
    """

    ENGINE: str = ""
    TRANSPORT_KIND: TransportKind | None = None
    CONFIG_FIELDS: tuple[ConfigField, ...] = ()

    # Loaded once per adapter class, see load_settings()
    _engine_settings: DialectSettings | None = None
    _settings_lock = threading.Lock()

    def __init__(self, config: dict[str, Any]) -> None:
        self.connection = None
        self.logger = logging.getLogger(self.__class__.__name__)
        self.config = validate_config(self.adapter_name, self.CONFIG_FIELDS, config)

        overrides = self.config.get("settings") or {}
        if not isinstance(overrides, dict):
            raise ConfigurationError(f"{self.adapter_name} Adapter: settings must be a dictionary")
        self.dialect = Dialect(self.load_settings().copy(overrides))

        self._state = ExecutionState.IDLE
        self._state_lock = threading.Lock()

    @classmethod
    def load_settings(cls) -> DialectSettings:
        """Load the engine settings for this adapter class once."""
        with DatabaseAdapter._settings_lock:
            settings = cls.__dict__.get("_engine_settings")
            if settings is None:
                settings = DialectSettings.load(cls.ENGINE or cls.__name__.lower())
                cls._engine_settings = settings
            return settings

    @classmethod
    def settings_loaded(cls) -> bool:
        return cls.__dict__.get("_engine_settings") is not None

    @property
    def adapter_name(self) -> str:
        return self.__class__.__name__.replace("Adapter", "")

    @property
    def settings(self) -> DialectSettings:
        return self.dialect.settings

    def _require_settings(self) -> DialectSettings:
        return self.dialect._require_settings()

    def alter_settings(self, changes: dict[str, Any]) -> None:
        """Override settings on this instance; only the latest override can be undone."""
        self.dialect.override(changes)

    def reset_settings(self) -> None:
        """Undo the last alter_settings()."""
        self.dialect.restore()

    @property
    def extra_connection_params(self) -> dict[str, Any]:
        return dict(self.config.get("extra_connection_params") or {})

    @property
    def extra_query_params(self) -> dict[str, Any]:
        return dict(self.config.get("extra_query_params") or {})

    # connection lifecycle

    @abstractmethod
    def _open_connection(self) -> Any:
        """Create the driver connection or HTTP client."""
        pass

    def _close_connection(self, connection: Any) -> None:
        connection.close()

    @abstractmethod
    def _ping(self) -> None:
        """Run a trivial round trip; raise if the engine is unreachable."""
        pass

    def connect(self) -> None:
        """Establish the connection if it is not open yet."""
        if self.connection is None:
            self.connection = self._open_connection()
            self.logger.debug(f"Connected to {self.adapter_name}")

    def disconnect(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self.connection is None:
            return
        connection, self.connection = self.connection, None
        try:
            self._close_connection(connection)
        finally:
            self.logger.debug(f"Disconnected from {self.adapter_name}")

    def close(self) -> None:
        self.disconnect()

    def test_connection(self, raise_exception: bool = False) -> bool:
        """
        Check that the engine can be reached with the current configuration.

        Args:
            raise_exception: Raise AdapterConnectionError instead of returning False
        """
        try:
            self.connect()
            self._ping()
            return True
        except Exception as e:
            self.logger.warning(f"Connection test failed for {self.adapter_name}: {e}")
            if raise_exception:
                if isinstance(e, AdapterConnectionError):
                    raise
                raise AdapterConnectionError(f"{self.adapter_name} connection test failed: {e}") from e
            return False

    def __enter__(self) -> "DatabaseAdapter":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()

    # execution

    @property
    def state(self) -> ExecutionState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: ExecutionState) -> None:
        with self._state_lock:
            self._state = state

    def with_retry(self, func: Callable[[], T], max_attempts: int = 2) -> T:
        """Run func, retrying the whole call up to max_attempts times."""
        return with_retry(func, max_attempts, log=self.logger)

    def _run(self, sql: str, func: Callable[[], T]) -> T:
        self.logger.debug(f"=== SQL ===\n{sql}")
        self._set_state(ExecutionState.SUBMITTED)
        try:
            result = func()
        except Exception:
            self._set_state(ExecutionState.FAILED)
            raise
        self._set_state(ExecutionState.COMPLETED)
        self.logger.debug("=== FINISHED SQL ===")
        return result

    def execute(self, sql: str, format: str | ResultFormat = "array", retries: int = 0) -> Any:
        """
        Execute SQL and return the whole result.

        Args:
            sql: Statement to run
            format: array (list of rows), object (list of dicts), csv (text
                with a header line) or native (the engine's own result)
            retries: Total attempts allowed, 0 runs once
        """
        result_format = ResultFormat.parse(format)
        self.connect()
        return self._run(sql, lambda: self.with_retry(lambda: self._execute(sql, result_format), retries))

    def execute_stream(
        self,
        sql: str,
        sink: TextIO,
        stats: StreamingStats | None = None,
        retries: int = 0,
    ) -> TextIO:
        """
        Execute SQL writing CSV to sink as rows arrive.

        Each attempt starts from the sink's initial position and resets the
        stats. A failed call leaves the sink content undefined.

        Returns:
            The sink, rewound to its start
        """
        if stats is not None and not isinstance(stats, StreamingStats):
            raise TypeError(f"stats must be a StreamingStats, got {type(stats).__name__}")

        self.connect()
        start = sink.tell()

        def attempt() -> TextIO:
            sink.seek(start)
            sink.truncate()
            if stats is not None:
                stats.reset()
            self._execute_stream(sql, sink, stats)
            return sink

        self._run(sql, lambda: self.with_retry(attempt, retries))
        sink.seek(0)
        return sink

    def stream(self, sql: str, callback: Callable[[Any], Any], retries: int = 0) -> int:
        """
        Execute SQL handing each row (or raw chunk) to callback.

        Nothing is buffered. A callback returning False stops the stream.
        A retried attempt starts over, so the callback sees rows delivered by
        the failed attempt again.

        Args:
            sql: Statement to run
            callback: Called once per row or chunk
            retries: Total attempts allowed, 0 runs once

        Returns:
            Number of callback deliveries of the last attempt
        """
        self.connect()
        return self._run(sql, lambda: self.with_retry(lambda: self._stream(sql, callback), retries))

    @abstractmethod
    def _execute(self, sql: str, result_format: ResultFormat) -> Any:
        pass

    @abstractmethod
    def _execute_stream(self, sql: str, sink: TextIO, stats: StreamingStats | None) -> None:
        pass

    @abstractmethod
    def _stream(self, sql: str, callback: Callable[[Any], Any]) -> int:
        pass

    def get_database_info(self) -> dict[str, Any]:
        """Get basic information about the adapter and its dialect."""
        return {
            "adapter": self.adapter_name,
            "engine": self.ENGINE,
            "transport": self.TRANSPORT_KIND.value if self.TRANSPORT_KIND else None,
            "connected": self.connection is not None,
            "capabilities": capability_names(self.capabilities),
            "using_base_settings_only": self.settings.using_base_only,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(engine={self.ENGINE!r})"
