"""
Unit tests for retry logic with exponential backoff

Tests verify:
- Exponential backoff calculation
- Jitter bounds
- Exception filtering
- Retry callbacks
"""

from unittest.mock import Mock, call, patch

import pytest

from utils.retry import (
    backoff_delay,
    is_retryable_db_exception,
    retry_database_operation,
    retry_with_backoff,
)


class OperationalError(Exception):
    """Stand-in with the same class name as the driver errors"""


class TestBackoffDelay:
    """Test delay calculation"""

    def test_exponential_growth(self):
        assert backoff_delay(0, 1.0, jitter=False) == 1.0
        assert backoff_delay(1, 1.0, jitter=False) == 2.0
        assert backoff_delay(3, 1.0, jitter=False) == 8.0

    def test_capped_at_max_delay(self):
        assert backoff_delay(10, 1.0, max_delay=5.0, jitter=False) == 5.0

    def test_jitter_within_quarter(self):
        for _ in range(50):
            delay = backoff_delay(2, 1.0)
            assert 3.0 <= delay <= 5.0

    def test_jitter_floor(self):
        assert backoff_delay(0, 0.0) == 0.1


class TestRetryWithBackoff:
    """Test retry_with_backoff decorator"""

    def test_success_on_first_attempt(self):
        sleep = Mock()
        func = Mock(return_value="connected", __name__="connect")

        assert retry_with_backoff(max_retries=3, sleep=sleep)(func)() == "connected"
        assert func.call_count == 1
        sleep.assert_not_called()

    def test_success_after_retries(self):
        sleep = Mock()
        func = Mock(
            side_effect=[ConnectionError("refused"), ConnectionError("refused"), "connected"],
            __name__="connect",
        )

        result = retry_with_backoff(max_retries=3, base_delay=1.0, jitter=False, sleep=sleep)(func)()

        assert result == "connected"
        assert func.call_count == 3
        assert sleep.call_args_list == [call(1.0), call(2.0)]

    def test_gives_up_after_max_retries(self):
        func = Mock(side_effect=ConnectionError("refused"), __name__="connect")

        with pytest.raises(ConnectionError):
            retry_with_backoff(max_retries=2, sleep=Mock())(func)()

        assert func.call_count == 3

    def test_non_retryable_raised_immediately(self):
        func = Mock(side_effect=ValueError("bad login"), __name__="connect")

        with pytest.raises(ValueError):
            retry_with_backoff(should_retry=lambda e: False, sleep=Mock())(func)()

        assert func.call_count == 1

    def test_on_retry_callback(self):
        on_retry = Mock()
        error = ConnectionError("refused")
        func = Mock(side_effect=[error, "ok"], __name__="connect")

        retry_with_backoff(base_delay=0.5, jitter=False, on_retry=on_retry, sleep=Mock())(func)()

        on_retry.assert_called_once_with(1, error, 0.5)

    def test_preserves_function_name(self):
        @retry_with_backoff()
        def open_target():
            return True

        assert open_target.__name__ == "open_target"


class TestIsRetryableDbException:
    """Test transient error detection"""

    @pytest.mark.parametrize("message", [
        "could not connect to server: Connection refused",
        "Login timeout expired",
        "[08S01] Communication link failure",
        "database is locked",
        "server closed the connection unexpectedly",
    ])
    def test_transient_messages(self, message):
        assert is_retryable_db_exception(Exception(message)) is True

    def test_retryable_by_type_name(self):
        assert is_retryable_db_exception(OperationalError("anything")) is True
        assert is_retryable_db_exception(TimeoutError()) is True

    @pytest.mark.parametrize("message", [
        'password authentication failed for user "audit"',
        'relation "customers" does not exist',
        "syntax error at or near SELECT",
    ])
    def test_permanent_errors(self, message):
        assert is_retryable_db_exception(Exception(message)) is False


class TestRetryDatabaseOperation:
    """Test the database-specific decorator"""

    def test_retries_transient_error(self):
        sleep = Mock()
        func = Mock(side_effect=[Exception("connection reset by peer"), "conn"], __name__="connect")

        assert retry_database_operation(max_retries=2, sleep=sleep)(func)() == "conn"
        assert sleep.call_count == 1

    def test_does_not_retry_permanent_error(self):
        func = Mock(side_effect=Exception("password authentication failed"), __name__="connect")

        with patch("utils.retry.logger") as logger:
            with pytest.raises(Exception, match="password"):
                retry_database_operation(sleep=Mock())(func)()

        assert func.call_count == 1
        assert "Non-retryable" in logger.error.call_args[0][0]
