"""
app/readers package marker.
"""

from app.readers.tabular_reader import list_directory, read_rows, read_rows_strict

__all__ = [
    "list_directory",
    "read_rows",
    "read_rows_strict",
]
