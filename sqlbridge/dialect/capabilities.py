"""
Capability flags of a dialect.

The string-keyed ``supports_*`` settings are resolved once into a Capability
flag set whenever a settings store is built, overridden or restored.
"""

from collections.abc import Mapping
from enum import Flag, auto
from typing import Any

from ..exceptions import DialectSettingsError, UnsupportedCapabilityError


class Capability(Flag):
    """SQL features a target engine may or may not support."""

    NONE = 0
    TABLE_JOIN = auto()
    FULL_JOIN = auto()
    CROSS_JOIN = auto()
    SUB_QUERIES = auto()
    COMMON_TABLE_EXPRESSIONS = auto()
    TEMP_TABLES = auto()
    WINDOW_FUNCTIONS = auto()
    ARRAY_FUNCTIONS = auto()


CAPABILITY_KEYS: dict[Capability, str] = {
    Capability.TABLE_JOIN: "supports_table_join",
    Capability.FULL_JOIN: "supports_full_join",
    Capability.CROSS_JOIN: "supports_cross_join",
    Capability.SUB_QUERIES: "supports_sub_queries",
    Capability.COMMON_TABLE_EXPRESSIONS: "supports_common_table_expressions",
    Capability.TEMP_TABLES: "supports_temp_tables",
    Capability.WINDOW_FUNCTIONS: "supports_window_functions",
    Capability.ARRAY_FUNCTIONS: "supports_array_functions",
}


def resolve_capabilities(values: Mapping[str, Any]) -> Capability:
    """
    Build the capability set from settings values.

    Raises:
        DialectSettingsError: If any supports_* key is absent
    """
    missing = [key for key in CAPABILITY_KEYS.values() if key not in values]
    if missing:
        raise DialectSettingsError(
            f"Dialect settings are not loaded or incomplete, missing: {', '.join(missing)}"
        )

    resolved = Capability.NONE
    for capability, key in CAPABILITY_KEYS.items():
        if values[key]:
            resolved |= capability
    return resolved


def capability_names(capabilities: Capability) -> list[str]:
    """Lower-case names of the members present in a capability set."""
    return [c.name.lower() for c in CAPABILITY_KEYS if c in capabilities]


class Capabilities:
    """Capability queries, mixed into Dialect."""

    @property
    def capabilities(self) -> Capability:
        return self._require_settings().capabilities

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def require_capability(self, capability: Capability, function_name: str) -> None:
        """Raise if a function depends on a capability the dialect lacks."""
        if not self.supports(capability):
            raise UnsupportedCapabilityError(
                f"{function_name} requires {capability.name.lower()} which "
                f"{self._require_settings().engine} does not support"
            )

    def supports_table_join(self) -> bool:
        return self.supports(Capability.TABLE_JOIN)

    def supports_full_join(self) -> bool:
        return self.supports(Capability.FULL_JOIN)

    def supports_cross_join(self) -> bool:
        return self.supports(Capability.CROSS_JOIN)

    def supports_sub_queries(self) -> bool:
        return self.supports(Capability.SUB_QUERIES)

    def supports_common_table_expressions(self) -> bool:
        return self.supports(Capability.COMMON_TABLE_EXPRESSIONS)

    def supports_temp_tables(self) -> bool:
        return self.supports(Capability.TEMP_TABLES)

    def supports_window_functions(self) -> bool:
        return self.supports(Capability.WINDOW_FUNCTIONS)

    def supports_array_functions(self) -> bool:
        return self.supports(Capability.ARRAY_FUNCTIONS)
