"""
Explicit outcome types for parsing and classification steps.

A parse either succeeds (Ok), fails in a way the caller can recover from by
falling back to character comparison (Degraded), or fails in a way that must
stop the run before the audit loop starts (Fatal). Only Fatal is ever turned
into an exception.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .errors import ConfigurationError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful parse carrying its value."""

    value: T


@dataclass(frozen=True)
class Degraded:
    """Recoverable failure; the caller falls back to character comparison."""

    reason: str


@dataclass(frozen=True)
class Fatal:
    """Unrecoverable setup failure."""

    reason: str


ParseResult = Ok | Degraded | Fatal


def unwrap(result: ParseResult) -> Any:
    """
    Return the value of an Ok result.

    Args:
        result: Result returned by a parse step

    Returns:
        The parsed value, or None for a Degraded result

    Raises:
        ConfigurationError: If the result is Fatal
    """
    if isinstance(result, Ok):
        return result.value
    if isinstance(result, Fatal):
        raise ConfigurationError(result.reason)
    return None
