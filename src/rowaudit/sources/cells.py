"""
Conversion of driver values to cell text.

Every comparison works on text, so values read through a database driver
are rendered the way an operator would type them in a flat file.

Timestamps keep their full fraction of a second: three digits when it is a
whole number of milliseconds, six otherwise. Time zone offsets are dropped
and the wall-clock value is compared.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any


def cell_to_text(value: Any) -> str | None:
    """
    Render a driver value as cell text.

    Args:
        value: Value from a DB-API cursor

    Returns:
        Text form of the value, or None for a database null
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        text = value.strftime("%Y-%m-%d %H:%M:%S")
        if value.microsecond % 1000:
            text += f".{value.microsecond:06d}"
        elif value.microsecond:
            text += f".{value.microsecond // 1000:03d}"
        return text
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return str(value)


def row_to_text(values: tuple | list) -> list[str | None]:
    return [cell_to_text(value) for value in values]
