"""
Base class for adapters talking to an engine over HTTP.
"""

from abc import abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import httpx

from ...exceptions import AdapterConnectionError, ExecutionError
from .core import DatabaseAdapter

CONNECTION_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.UnsupportedProtocol)


class HTTPAdapter(DatabaseAdapter):
    """
    Adapter whose connection is an httpx.Client.

    extra_connection_params are passed to httpx.Client, which is also how a
    custom transport (for example httpx.MockTransport) is plugged in.
    """

    @abstractmethod
    def _base_url(self) -> str:
        pass

    def _default_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "Accept": "application/json"}

    def _client_options(self) -> dict[str, Any]:
        options = {
            "base_url": self._base_url(),
            "headers": self._default_headers(),
            "timeout": httpx.Timeout(
                float(self.config.get("query_timeout") or 3600),
                connect=float(self.config.get("connection_timeout") or 30),
            ),
        }
        options.update(self.extra_connection_params)
        return options

    def _open_connection(self) -> httpx.Client:
        client = httpx.Client(**self._client_options())
        self.logger.info(f"Created {self.adapter_name} HTTP client for {client.base_url}")
        return client

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, mapping transport failures to adapter errors."""
        self.connect()
        try:
            return self.connection.request(method, url, **kwargs)
        except CONNECTION_ERRORS as e:
            raise AdapterConnectionError(f"Could not reach {self.adapter_name} at {url}: {e}") from e
        except httpx.HTTPError as e:
            raise ExecutionError(f"{self.adapter_name} request to {url} failed: {e}") from e

    @contextmanager
    def _stream_request(self, method: str, url: str, **kwargs: Any) -> Iterator[httpx.Response]:
        """Like _request() but the body is read incrementally inside the block."""
        self.connect()
        try:
            with self.connection.stream(method, url, **kwargs) as response:
                yield response
        except CONNECTION_ERRORS as e:
            raise AdapterConnectionError(f"Could not reach {self.adapter_name} at {url}: {e}") from e
        except httpx.HTTPError as e:
            raise ExecutionError(f"{self.adapter_name} request to {url} failed: {e}") from e
