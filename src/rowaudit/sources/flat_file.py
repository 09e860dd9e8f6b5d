"""
Pipe-delimited flat file source.

Each line is one row of "|"-separated fields; trailing empty fields are
kept, so "1|a||" has four cells. An optional first record "HEADER|A|B|..."
names the columns, and "TRAILER|..." records are skipped.
"""

import logging
from pathlib import Path
from typing import Iterator, TextIO

from ..errors import ConfigurationError, SourceError

logger = logging.getLogger(__name__)

DELIMITER = "|"
HEADER_PREFIX = "HEADER" + DELIMITER
TRAILER_PREFIX = "TRAILER" + DELIMITER


def split_line(line: str) -> list[str]:
    """Split a record on the delimiter, keeping trailing empty fields."""
    return line.rstrip("\r\n").split(DELIMITER)


class FlatFileSource:
    """
    Row source over a pipe-delimited file.

    Usage:
        with FlatFileSource("customers.dat", header=True) as source:
            names = source.column_names
            for row in source:
                ...
    """

    def __init__(self, path: str, header: bool = False, encoding: str = "utf-8"):
        """
        Initialize the source.

        Args:
            path: File to read
            header: The first record must be a HEADER record
            encoding: File encoding
        """
        self.path = path
        self.header = header
        self.encoding = encoding
        self.column_names: list[str] | None = None
        self.trailers: list[list[str]] = []
        self._stream: TextIO | None = None
        self._pending: str | None = None

    @property
    def name(self) -> str:
        return Path(self.path).name

    def open(self) -> "FlatFileSource":
        """
        Open the file and read the HEADER record if there is one.

        Raises:
            SourceError: If the file cannot be opened
            ConfigurationError: If a header is required but missing
        """
        if self._stream is not None:
            return self

        try:
            self._stream = open(self.path, "r", encoding=self.encoding, newline="")
        except OSError as e:
            raise SourceError(f"Cannot open source file {self.path}: {e}") from e

        try:
            first = self._stream.readline()
        except UnicodeDecodeError as e:
            self.close()
            raise SourceError(f"Cannot decode {self.path}: {e}") from e

        if first.startswith(HEADER_PREFIX):
            self.column_names = split_line(first)[1:]
            logger.info(f"Header of {self.name} names {len(self.column_names)} columns")
        elif self.header:
            self.close()
            raise ConfigurationError(f"{self.path} does not start with a {HEADER_PREFIX} record")
        elif first:
            self._pending = first

        return self

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None

    def __enter__(self) -> "FlatFileSource":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _lines(self) -> Iterator[str]:
        if self._pending is not None:
            pending, self._pending = self._pending, None
            yield pending
        yield from self._stream

    def __iter__(self) -> Iterator[list[str]]:
        if self._stream is None:
            self.open()

        try:
            for line in self._lines():
                if not line.strip():
                    continue
                if line.startswith(TRAILER_PREFIX):
                    trailer = split_line(line)
                    self.trailers.append(trailer)
                    logger.info(f"Trailer record in {self.name}: {DELIMITER.join(trailer[1:])}")
                    continue
                yield split_line(line)
        except UnicodeDecodeError as e:
            raise SourceError(f"Cannot decode {self.path}: {e}") from e
