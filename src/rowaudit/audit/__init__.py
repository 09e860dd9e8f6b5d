"""
Row audit orchestration.

This submodule pairs source rows with target rows and records differences:
- RunContext and RunCounters holding all per-run state
- Key extraction and the target lookup contract
- The row audit loop and the reverse audit pass
"""

from .context import (
    DEFAULT_MAX_ERRORS,
    DEFAULT_MAX_ROWS_WITH_ERRORS,
    DEFAULT_PROGRESS_EVERY,
    AuditState,
    RunContext,
    RunCounters,
    TerminationReason,
)
from .keys import (
    KeyTuple,
    LookupResult,
    Row,
    SourceKeySet,
    TargetLookup,
    extract_key,
    normalize_key_part,
)
from .loop import RowAuditor
from .reverse import ReverseAuditPass

__all__ = [
    'RowAuditor',
    'ReverseAuditPass',
    'RunContext',
    'RunCounters',
    'AuditState',
    'TerminationReason',
    'DEFAULT_MAX_ERRORS',
    'DEFAULT_MAX_ROWS_WITH_ERRORS',
    'DEFAULT_PROGRESS_EVERY',
    'KeyTuple',
    'LookupResult',
    'Row',
    'SourceKeySet',
    'TargetLookup',
    'extract_key',
    'normalize_key_part',
]
