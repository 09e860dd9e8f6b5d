"""
Retry with exponential backoff for opening database connections.

Only connection setup is retried. Once an audit run has started, a failed
target lookup is reported as a missing row rather than retried, so row
results never depend on how often a query was attempted.

Usage:
    from utils.retry import retry_database_operation

    @retry_database_operation(max_retries=3, base_delay=1.0)
    def open_target():
        return psycopg2.connect(**params)
"""

import logging
import random
import time
from functools import wraps
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

RetryCallback = Callable[[int, Exception, float], None]

# Substrings of driver messages that indicate a transient failure
RETRYABLE_PATTERNS = (
    "timeout",
    "timed out",
    "deadlock",
    "could not connect",
    "can't connect",
    "unable to connect",
    "connection refused",
    "connection reset",
    "connection closed",
    "connection terminated",
    "server closed the connection",
    "communication link failure",
    "login timeout expired",
    "database is locked",
    "broken pipe",
    "network error",
)

RETRYABLE_EXCEPTION_NAMES = (
    "connectionerror",
    "timeouterror",
    "operationalerror",
    "interfaceerror",
)


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """
    Delay before the next attempt.

    Args:
        attempt: Zero-based number of the attempt that just failed
        base_delay: Delay after the first failure, in seconds
        max_delay: Upper bound before jitter
        exponential_base: Growth factor per attempt
        jitter: Spread the delay by up to 25% either way

    Returns:
        Delay in seconds, never below 0.1 when jitter is applied
    """
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    if jitter:
        spread = delay * 0.25
        delay = max(0.1, delay + random.uniform(-spread, spread))
    return delay


def is_retryable_db_exception(exception: Exception) -> bool:
    """
    Determine if a database exception is worth retrying.

    Args:
        exception: The exception raised by the driver

    Returns:
        True for connection, timeout and lock errors; False for anything
        that will fail the same way again, such as bad credentials or SQL
    """
    message = str(exception).lower()
    type_name = type(exception).__name__.lower()

    if any(pattern in message for pattern in RETRYABLE_PATTERNS):
        return True
    return type_name in RETRYABLE_EXCEPTION_NAMES


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: bool = True,
    should_retry: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[RetryCallback] = None,
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Decorator that retries a function with exponential backoff.

    Args:
        max_retries: Retries after the first attempt
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        jitter: Add random jitter to each delay
        should_retry: Predicate deciding whether an exception is transient
            (default: retry every exception)
        on_retry: Callback(attempt, exception, delay) called before each wait
        sleep: Function used to wait, replaceable in tests

    Returns:
        Decorated function with retry logic
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            name = getattr(func, "__name__", "function")

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if should_retry is not None and not should_retry(e):
                        logger.error(f"Non-retryable error in {name}: {type(e).__name__}: {e}")
                        raise
                    if attempt == max_retries:
                        logger.error(
                            f"Max retries ({max_retries}) exceeded for {name}: "
                            f"{type(e).__name__}: {e}"
                        )
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay, jitter=jitter)
                    logger.warning(
                        f"Attempt {attempt + 1}/{max_retries + 1} failed for {name}: "
                        f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s..."
                    )
                    if on_retry:
                        on_retry(attempt + 1, e, delay)
                    sleep(delay)

            raise RuntimeError(f"Retry loop for {name} ended without a result")

        return wrapper
    return decorator


def retry_database_operation(
    max_retries: int = 3,
    base_delay: float = 1.0,
    on_retry: Optional[RetryCallback] = None,
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Retry decorator that only retries transient database errors.

    Example:
        @retry_database_operation(max_retries=5)
        def connect():
            return pyodbc.connect(connection_string)
    """
    return retry_with_backoff(
        max_retries=max_retries,
        base_delay=base_delay,
        should_retry=is_retryable_db_exception,
        on_retry=on_retry,
        sleep=sleep,
    )
