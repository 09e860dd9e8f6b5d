"""
Column descriptors shared by the comparator, the audit loop and the report.

Columns are stored 0-based by ordinal; the 1-based position is only used
when a column is shown to an operator.
"""

from dataclasses import dataclass

from .compare.classifier import ComparisonType
from .errors import ConfigurationError

# Column names that mark a position as "do not audit"
IGNORE_SENTINELS = frozenset({"", "''", '""', '""""'})

MAX_KEY_COLUMNS = 20


@dataclass
class ColumnDescriptor:
    """One audited column position, paired across source and target."""

    ordinal: int
    name: str
    comparison_type: ComparisonType = ComparisonType.CHARACTER
    is_key: bool = False
    source_type: str | None = None
    source_column: str | None = None
    source_table: str | None = None
    degraded: bool = False
    degraded_reason: str | None = None

    @property
    def position(self) -> int:
        """1-based column number used in reports."""
        return self.ordinal + 1

    @property
    def ignored(self) -> bool:
        return self.name.strip() in IGNORE_SENTINELS

    @property
    def audited(self) -> bool:
        return not self.is_key and not self.ignored

    def prime(self, comparison_type: ComparisonType) -> None:
        """Set the comparison type from a sample value; no-op once degraded."""
        if self.degraded:
            return
        self.comparison_type = comparison_type

    def degrade(self, reason: str) -> bool:
        """
        Permanently fall back to character comparison.

        Args:
            reason: Why the typed comparison could not be used

        Returns:
            True if the column changed type, False if it was already character
        """
        if self.degraded or self.comparison_type == ComparisonType.CHARACTER:
            return False
        self.comparison_type = ComparisonType.CHARACTER
        self.degraded = True
        self.degraded_reason = reason
        return True


def parse_key_positions(text: str) -> list[int]:
    """
    Parse a comma-separated list of 1-based key positions.

    Args:
        text: Positions such as "1,2,3"

    Returns:
        0-based key ordinals in key order

    Raises:
        ConfigurationError: If the list is empty, malformed or repeats a position
    """
    parts = [part.strip() for part in text.split(",") if part.strip()]
    if not parts:
        raise ConfigurationError("No key positions given")

    ordinals = []
    for part in parts:
        if not part.isdigit() or int(part) < 1:
            raise ConfigurationError(
                f"Invalid key position {part!r}: positions are whole numbers starting at 1"
            )
        ordinal = int(part) - 1
        if ordinal in ordinals:
            raise ConfigurationError(f"Key position {part} is listed twice")
        ordinals.append(ordinal)

    return ordinals


def build_columns(
    names: list[str],
    key_ordinals: list[int],
) -> list[ColumnDescriptor]:
    """
    Build descriptors for every column position and flag the key columns.

    Args:
        names: Column names in position order
        key_ordinals: 0-based ordinals of the key columns, in key order

    Returns:
        List of column descriptors indexed by ordinal

    Raises:
        ConfigurationError: If the layout is empty, a key ordinal is out of
            range, or there are more key columns than supported
    """
    if not names:
        raise ConfigurationError("Could not determine any target column layout")
    if not key_ordinals:
        raise ConfigurationError("At least one key column is required")
    if len(key_ordinals) > MAX_KEY_COLUMNS:
        raise ConfigurationError(
            f"{len(key_ordinals)} key columns given; at most {MAX_KEY_COLUMNS} are supported"
        )

    for ordinal in key_ordinals:
        if ordinal < 0 or ordinal >= len(names):
            raise ConfigurationError(
                f"Key position {ordinal + 1} is outside the {len(names)} column layout"
            )
        if names[ordinal].strip() in IGNORE_SENTINELS:
            raise ConfigurationError(f"Key position {ordinal + 1} is marked as ignored")

    keys = set(key_ordinals)
    return [
        ColumnDescriptor(ordinal=index, name=name, is_key=index in keys)
        for index, name in enumerate(names)
    ]
