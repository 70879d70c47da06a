"""
Adapter configuration management.

Adapters declare their connection parameters as ConfigField records and
validate the plain dictionary they are constructed with.
"""

from dataclasses import dataclass
from typing import Any

from .exceptions import ConfigurationError

# Keys every adapter understands in addition to its own fields
RESERVED_KEYS = ("type", "settings", "extra_connection_params", "extra_query_params")


@dataclass(frozen=True)
class ConfigField:
    """Declaration of a single adapter connection parameter."""

    name: str
    required: bool = False
    default: Any = None
    message: str | None = None

    @property
    def error_message(self) -> str:
        return self.message or f"Invalid or missing parameter: {self.name}"


def validate_config(
    adapter_name: str, fields: tuple[ConfigField, ...], config_dict: dict[str, Any]
) -> dict[str, Any]:
    """
    Validate a configuration dictionary against field declarations.

    Args:
        adapter_name: Name used in error messages
        fields: Field declarations of the adapter
        config_dict: Raw configuration

    Returns:
        A new dictionary with defaults applied

    Raises:
        ConfigurationError: If required fields are missing
    """
    if not isinstance(config_dict, dict):
        raise ConfigurationError(f"{adapter_name} Adapter: configuration must be a dictionary")

    missing = [
        f for f in fields if f.required and f.default is None and config_dict.get(f.name) is None
    ]
    if missing:
        messages = ", ".join(f"Missing {f.name} param - {f.error_message}" for f in missing)
        raise ConfigurationError(f"{adapter_name} Adapter: {messages}")

    config = dict(config_dict)
    for f in fields:
        if f.default is not None and config.get(f.name) is None:
            config[f.name] = f.default
    return config

