"""
Key extraction and the target lookup contract.

A source row is paired with at most one target row through a point lookup
bound to the row's key tuple. A lookup that finds nothing, or fails, is a
result rather than an exception.
"""

from dataclasses import dataclass
from decimal import Decimal, DecimalException
from typing import Iterable, Iterator, Protocol

from ..compare.classifier import looks_numeric

KeyTuple = tuple[str, ...]
Row = list[str | None]


def extract_key(row: Row, key_ordinals: list[int]) -> KeyTuple:
    """
    Build the key tuple for a row, in key order.

    Values are stripped; a key position past the end of a short row, or a
    null key cell, yields an empty string.

    Args:
        row: Cell values indexed by ordinal
        key_ordinals: 0-based key ordinals in key order

    Returns:
        Tuple of key values
    """
    values = []
    for ordinal in key_ordinals:
        value = row[ordinal] if ordinal < len(row) else None
        values.append((value or "").strip())
    return tuple(values)


def normalize_key_part(value: str | None) -> str:
    """
    Canonical form of a key value for set membership.

    Numeric keys compare by value, so "007" from a flat file matches 7 read
    back from an integer column.
    """
    text = (value or "").strip()
    if looks_numeric(text):
        try:
            return format(Decimal(text).normalize(), "f")
        except DecimalException:
            return text
    return text


@dataclass(frozen=True)
class LookupResult:
    """Zero or one target row for a key, plus the driver diagnostic on failure."""

    row: Row | None = None
    error: str | None = None

    @property
    def found(self) -> bool:
        return self.row is not None


class TargetLookup(Protocol):
    """Point lookups and key scans against the target table."""

    def lookup(self, key: KeyTuple) -> LookupResult:
        ...

    def iter_keys(self) -> Iterator[KeyTuple]:
        ...


class SourceKeySet:
    """Keys seen while auditing source rows, for the reverse pass."""

    def __init__(self, keys: Iterable[KeyTuple] = ()):
        self._keys: set[KeyTuple] = set()
        for key in keys:
            self.add(key)

    @staticmethod
    def _normalize(key: KeyTuple) -> KeyTuple:
        return tuple(normalize_key_part(part) for part in key)

    def add(self, key: KeyTuple) -> None:
        self._keys.add(self._normalize(key))

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple):
            return False
        return self._normalize(key) in self._keys

    def __len__(self) -> int:
        return len(self._keys)
