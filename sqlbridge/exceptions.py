"""
Exceptions raised by sqlbridge adapters and the dialect layer.
"""


class SqlBridgeError(Exception):
    """Base exception for all sqlbridge errors."""

    pass


class ConfigurationError(SqlBridgeError):
    """Raised when an adapter is configured with bad or missing parameters."""

    pass


class AdapterConnectionError(SqlBridgeError):
    """Raised when a connection cannot be established or validated."""

    pass


class ExecutionError(SqlBridgeError):
    """Raised when a submitted statement fails remotely or while decoding."""

    def __init__(
        self, message: str, status: str | int | None = None, remote_message: str | None = None
    ) -> None:
        super().__init__(message)
        self.status = status
        self.remote_message = remote_message


class UnsupportedCapabilityError(SqlBridgeError):
    """Raised when a function is invoked that the target engine does not support."""

    pass


class DialectSettingsError(SqlBridgeError):
    """Raised when dialect settings are missing a required key or were never loaded."""

    pass


class OAuthError(SqlBridgeError):
    """Base exception for token-based authentication flows."""

    pass


class AuthenticationError(OAuthError):
    """Raised when credentials or tokens are rejected."""

    pass


class TokenExpiredError(AuthenticationError):
    """Raised when an access token has expired and should be refreshed."""

    pass
