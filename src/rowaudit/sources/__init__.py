"""
Source row readers.

Both sources yield one list of cell text per row through plain iteration:
- FlatFileSource: pipe-delimited files with optional HEADER/TRAILER records
- QuerySource: the result of a SQL script run on the source database
"""

from .cells import cell_to_text, row_to_text
from .flat_file import FlatFileSource, split_line
from .query import QuerySource, split_statements

__all__ = [
    'FlatFileSource',
    'QuerySource',
    'cell_to_text',
    'row_to_text',
    'split_line',
    'split_statements',
]
