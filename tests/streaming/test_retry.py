"""
Tests for bounded execution retry.
"""

import logging

import pytest

from sqlbridge.exceptions import ConfigurationError, ExecutionError, TokenExpiredError
from sqlbridge.streaming import with_retry


class FlakyCall:
    """Fails a fixed number of times, then returns a value."""

    def __init__(self, failures, error=ExecutionError):
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error(f"failure {self.calls}")
        return "ok"


class TestWithRetry:
    """Test cases for with_retry."""

    @pytest.mark.parametrize("attempts", [1, 2, 3, 5])
    def test_succeeds_on_last_allowed_attempt(self, attempts):
        func = FlakyCall(failures=attempts - 1)
        assert with_retry(func, max_attempts=attempts) == "ok"
        assert func.calls == attempts

    def test_stops_calling_after_success(self):
        func = FlakyCall(failures=1)
        assert with_retry(func, max_attempts=5) == "ok"
        assert func.calls == 2

    @pytest.mark.parametrize("attempts", [1, 2, 4])
    def test_raises_last_error_after_exhausting_attempts(self, attempts):
        func = FlakyCall(failures=100)
        with pytest.raises(ExecutionError, match=f"failure {attempts}$"):
            with_retry(func, max_attempts=attempts)
        assert func.calls == attempts

    def test_zero_attempts_calls_exactly_once(self):
        func = FlakyCall(failures=1)
        with pytest.raises(ExecutionError):
            with_retry(func, max_attempts=0)
        assert func.calls == 1

    def test_zero_attempts_returns_value(self):
        assert with_retry(FlakyCall(failures=0), max_attempts=0) == "ok"

    def test_negative_attempts_rejected(self):
        with pytest.raises(ConfigurationError):
            with_retry(FlakyCall(failures=0), max_attempts=-1)

    @pytest.mark.parametrize("error", [ConfigurationError, TokenExpiredError])
    def test_deterministic_errors_not_retried(self, error):
        func = FlakyCall(failures=5, error=error)
        with pytest.raises(error):
            with_retry(func, max_attempts=5)
        assert func.calls == 1

    def test_attempts_are_logged(self, caplog):
        log = logging.getLogger("retry-test")
        with caplog.at_level(logging.WARNING, logger="retry-test"):
            with pytest.raises(ExecutionError):
                with_retry(FlakyCall(failures=3), max_attempts=3, log=log)

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(warnings) == 2
        assert "Retrying" in warnings[0].getMessage()
        assert len(errors) == 1
        assert "Failed after 3 attempts" in errors[0].getMessage()
