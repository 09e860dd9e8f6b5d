"""Target database access: identifier quoting, lookups and key scans."""

from .provider import (
    SQL_FILE_SUFFIX,
    TargetQueryProvider,
    build_key_scan_sql,
    build_lookup_sql,
    describe_table,
)
from .quoting import quote_identifier, validate_identifier

__all__ = [
    "SQL_FILE_SUFFIX",
    "TargetQueryProvider",
    "build_key_scan_sql",
    "build_lookup_sql",
    "describe_table",
    "quote_identifier",
    "validate_identifier",
]
