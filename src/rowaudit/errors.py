"""
Exception hierarchy for audit runs.

Only setup problems raise. Cell-level parse failures and row-level lookup
failures are recorded in the report and never unwind past the audit loop.
"""


class RowAuditError(Exception):
    """Base class for all audit errors."""


class ConfigurationError(RowAuditError):
    """
    Fatal setup error raised before the audit loop starts.

    Covers malformed key configuration, key ordinals outside the column
    range, too many key columns, an undeterminable target schema and
    date patterns that cannot be compiled.
    """


class SourceError(RowAuditError):
    """Raised when the source dataset cannot be opened or read."""


class TargetConnectionError(RowAuditError):
    """Raised when the target database cannot be reached during setup."""
