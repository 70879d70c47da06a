"""
Bounded retry of whole executions.
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from tenacity import Retrying, retry_if_not_exception_type, stop_after_attempt, wait_none

from ..exceptions import ConfigurationError, OAuthError, UnsupportedCapabilityError

T = TypeVar("T")

# Deterministic failures: running them again cannot succeed
NON_RETRYABLE_ERRORS = (ConfigurationError, UnsupportedCapabilityError, OAuthError)

logger = logging.getLogger(__name__)


def with_retry(
    func: Callable[[], T],
    max_attempts: int = 2,
    log: logging.Logger | None = None,
    wait=None,
) -> T:
    """
    Call func, re-running it on failure up to max_attempts invocations in total.

    Args:
        func: Zero-argument callable performing the whole execution
        max_attempts: Total invocations allowed. 0 calls func exactly once
            without any retry bookkeeping.
        log: Logger for attempt messages (defaults to this module's logger)
        wait: Optional tenacity wait strategy between attempts

    Returns:
        The value returned by the first successful invocation

    Raises:
        The exception of the last failed invocation
    """
    if max_attempts == 0:
        return func()
    if max_attempts < 0:
        raise ConfigurationError(f"max_attempts must be zero or positive, got {max_attempts}")

    log = log or logger
    attempts = 0

    def attempt() -> T:
        nonlocal attempts
        attempts += 1
        return func()

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait or wait_none(),
        retry=retry_if_not_exception_type(NON_RETRYABLE_ERRORS),
        before_sleep=lambda retry_state: log.warning(
            f"Attempt {retry_state.attempt_number} failed with error: "
            f"{retry_state.outcome.exception()}. Retrying..."
        ),
        reraise=True,
    )

    try:
        return retrying(attempt)
    except Exception as e:
        log.error(f"Failed after {attempts} attempts with error: {e}")
        raise
