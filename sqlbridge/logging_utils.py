"""
Logging setup helpers.

The library itself only creates loggers; applications call setup_logging()
once to get readable output.
"""

import logging
import os

LOG_LEVEL_ENV_VAR = "SQLBRIDGE_LOG_LEVEL"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}


def resolve_log_level(verbose: bool = False, level: str | None = None) -> int:
    """
    Resolve the effective log level.

    Args:
        verbose: If True and no explicit level is given, use DEBUG
        level: Explicit level name; falls back to the SQLBRIDGE_LOG_LEVEL env var

    Returns:
        A logging level constant
    """
    name = level or os.getenv(LOG_LEVEL_ENV_VAR)
    if name:
        return _LEVELS.get(name.strip().lower(), logging.INFO)
    return logging.DEBUG if verbose else logging.INFO


def setup_logging(verbose: bool = False, level: str | None = None) -> None:
    """
    Set up logging configuration.

    Args:
        verbose: If True, set logging level to DEBUG, otherwise INFO
        level: Optional explicit level name (overrides verbose)
    """
    logging.basicConfig(
        level=resolve_log_level(verbose, level),
        format="%(levelname)s - %(name)s - %(message)s",
    )
