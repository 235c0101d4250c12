"""
app/mappers package marker.
"""

from app.mappers.column_resolver import (
    ColumnAliasTable,
    ColumnResolution,
    ColumnResolver,
    find_column,
    find_columns,
)

__all__ = [
    "ColumnAliasTable",
    "ColumnResolution",
    "ColumnResolver",
    "find_column",
    "find_columns",
]
