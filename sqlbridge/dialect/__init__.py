"""
SQL dialect translation.

A Dialect wraps one settings store and exposes capability queries, native
function translations and query generation policy flags over it.
"""

from collections.abc import Mapping
from typing import Any

from ..exceptions import DialectSettingsError
from .behaviors import Behaviors, MeasureFilteringStrategy, TempTableType
from .capabilities import Capabilities, Capability, capability_names, resolve_capabilities
from .functions import Functions, substitute
from .settings import DialectSettings, load_base_settings, load_overlay, merge_settings


class Dialect(Capabilities, Functions, Behaviors):
    """Syntax conventions and capability flags of one target engine."""

    def __init__(self, settings: DialectSettings | None) -> None:
        self.settings = settings

    @classmethod
    def for_engine(cls, engine: str, changes: Mapping[str, Any] | None = None) -> "Dialect":
        """Build a dialect from the engine's settings documents."""
        return cls(DialectSettings.load(engine).copy(changes))

    def _require_settings(self) -> DialectSettings:
        if self.settings is None:
            raise DialectSettingsError(
                "Dialect settings have not been loaded. Register the adapter or load settings first."
            )
        return self.settings

    @property
    def engine(self) -> str:
        return self._require_settings().engine

    def override(self, changes: Mapping[str, Any]) -> None:
        self._require_settings().override(changes)

    def restore(self) -> None:
        self._require_settings().restore()

    def __repr__(self) -> str:
        engine = self.settings.engine if self.settings is not None else None
        return f"Dialect(engine={engine!r})"


__all__ = [
    "Dialect",
    "DialectSettings",
    "Capability",
    "Capabilities",
    "Functions",
    "Behaviors",
    "TempTableType",
    "MeasureFilteringStrategy",
    "capability_names",
    "resolve_capabilities",
    "substitute",
    "merge_settings",
    "load_base_settings",
    "load_overlay",
]
