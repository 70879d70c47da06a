"""
Dialect settings store.

Settings control syntax and behaviour (templates, capability flags, policy
flags) while adapter configuration controls how we connect. Generic defaults
live in settings/base.yml; each engine may ship settings/<engine>.yml whose
keys win over the defaults.
"""

import logging
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from ..exceptions import DialectSettingsError
from .capabilities import Capability, resolve_capabilities

SETTINGS_DIR = Path(__file__).parent / "settings"
BASE_SETTINGS_FILE = SETTINGS_DIR / "base.yml"

logger = logging.getLogger(__name__)

_base_lock = threading.Lock()
_base_settings: dict[str, Any] | None = None


def merge_settings(defaults: Mapping[str, Any], overlay: Mapping[str, Any] | None) -> dict[str, Any]:
    """Return a new map of defaults with overlay keys winning."""
    merged = dict(defaults)
    if overlay:
        merged.update(overlay)
    return merged


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        content = yaml.safe_load(f) or {}
    if not isinstance(content, dict):
        raise yaml.YAMLError(f"Expected a mapping in {path}, got {type(content).__name__}")
    return content


def load_base_settings() -> dict[str, Any]:
    """Load the generic defaults once per process."""
    global _base_settings
    with _base_lock:
        if _base_settings is None:
            _base_settings = _read_yaml(BASE_SETTINGS_FILE)
        return dict(_base_settings)


def load_overlay(engine: str, settings_dir: Path | None = None) -> dict[str, Any] | None:
    """
    Load an engine's overlay document.

    Returns:
        The overlay mapping, or None if the document is missing or malformed
    """
    path = (settings_dir or SETTINGS_DIR) / f"{engine.lower()}.yml"
    if not path.exists():
        logger.warning(
            f"{engine} adapter didn't have a settings YAML file. Using only base settings."
        )
        return None

    try:
        return _read_yaml(path)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not read settings for {engine} ({path}): {e}. Using only base settings.")
        return None


class DialectSettings(Mapping):
    """
    Effective key to value map for one dialect.

    Instances are read like a dict. override()/restore() give single-level
    undo: overriding again first restores the previous restore point, so only
    the most recent override can be undone.
    """

    def __init__(
        self, values: Mapping[str, Any], engine: str = "base", using_base_only: bool = False
    ) -> None:
        self.engine = engine
        self.using_base_only = using_base_only
        self._values = dict(values)
        self._restore_point: dict[str, Any] | None = None
        self._capabilities = resolve_capabilities(self._values)

    @classmethod
    def load(cls, engine: str, settings_dir: Path | None = None) -> "DialectSettings":
        """Merge base defaults with the engine overlay."""
        logger.debug(f"+++ LOADING SETTINGS: {engine} +++")
        overlay = load_overlay(engine, settings_dir)
        return cls(
            merge_settings(load_base_settings(), overlay),
            engine=engine,
            using_base_only=overlay is None,
        )

    def copy(self, changes: Mapping[str, Any] | None = None) -> "DialectSettings":
        """Independent copy, optionally with changes merged in."""
        return DialectSettings(
            merge_settings(self._values, changes),
            engine=self.engine,
            using_base_only=self.using_base_only,
        )

    def override(self, changes: Mapping[str, Any]) -> None:
        """Apply changes, keeping the prior state as the only restore point."""
        if self._restore_point is not None:
            self.restore()
        self._restore_point = dict(self._values)
        self._values = merge_settings(self._values, changes)
        self._capabilities = resolve_capabilities(self._values)

    def restore(self) -> None:
        """Return to the state before the last override(). No-op without one."""
        if self._restore_point is None:
            return
        self._values = self._restore_point
        self._restore_point = None
        self._capabilities = resolve_capabilities(self._values)

    @property
    def overridden(self) -> bool:
        return self._restore_point is not None

    @property
    def capabilities(self) -> Capability:
        return self._capabilities

    def require(self, key: str) -> Any:
        """Get a setting that must exist."""
        try:
            return self._values[key]
        except KeyError:
            raise DialectSettingsError(
                f"Dialect setting '{key}' is not defined for {self.engine}"
            ) from None

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self):
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"DialectSettings(engine={self.engine!r}, keys={len(self._values)})"
