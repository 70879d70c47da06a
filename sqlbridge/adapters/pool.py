"""
Thread-safe adapter pool.
"""

import logging
import queue
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from ..exceptions import AdapterConnectionError, ConfigurationError
from .base import DatabaseAdapter


class ConnectionPool:
    """
    Hands out up to size adapters, creating them lazily.

    Adapters are returned to the pool when the connection() block exits and
    the most recently returned one is handed out first.
    """

    def __init__(
        self, name: str, factory: Callable[[], DatabaseAdapter], size: int = 10, timeout: float = 5.0
    ) -> None:
        if size < 1:
            raise ConfigurationError(f"Pool {name}: size must be at least 1")
        self.name = name
        self.size = size
        self.timeout = timeout
        self._factory = factory
        self._idle: queue.LifoQueue[DatabaseAdapter] = queue.LifoQueue()
        self._all: list[DatabaseAdapter] = []
        self._lock = threading.Lock()
        self._closed = False
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def created(self) -> int:
        with self._lock:
            return len(self._all)

    @property
    def available(self) -> int:
        """Adapters that can be checked out without blocking."""
        with self._lock:
            return self._idle.qsize() + (self.size - len(self._all))

    def checkout(self) -> DatabaseAdapter:
        with self._lock:
            if self._closed:
                raise AdapterConnectionError(f"Pool {self.name} is closed")
            try:
                return self._idle.get_nowait()
            except queue.Empty:
                pass
            if len(self._all) < self.size:
                adapter = self._factory()
                self._all.append(adapter)
                self.logger.debug(f"Pool {self.name}: created adapter {len(self._all)}/{self.size}")
                return adapter

        try:
            return self._idle.get(timeout=self.timeout)
        except queue.Empty:
            raise AdapterConnectionError(
                f"Pool {self.name}: no adapter available within {self.timeout} seconds"
            ) from None

    def checkin(self, adapter: DatabaseAdapter) -> None:
        if self._closed:
            adapter.close()
            return
        self._idle.put(adapter)

    @contextmanager
    def connection(self) -> Iterator[DatabaseAdapter]:
        """Check out an adapter for the duration of the block."""
        adapter = self.checkout()
        try:
            yield adapter
        finally:
            self.checkin(adapter)

    def close(self) -> None:
        """Close every adapter created by the pool."""
        with self._lock:
            self._closed = True
            adapters, self._all = self._all, []
        for adapter in adapters:
            try:
                adapter.close()
            except Exception as e:
                self.logger.warning(f"Pool {self.name}: error closing adapter: {e}")
        self.logger.debug(f"Pool {self.name} closed")
