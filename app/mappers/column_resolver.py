"""
app/mappers/column_resolver.py

Column alias resolution for loosely-named spreadsheet exports.

Spreadsheet exports rename columns between versions (``CloseDate`` vs
``Close_Date``), so each logical field carries an ordered list of literal
candidate names.  Resolution runs once per file against a schema probe
(the first row's keys) in two strictly ordered passes:

1. exact match, candidates in priority order;
2. case-insensitive match, candidates in priority order.

An exact hit for any candidate always beats a case-insensitive hit for a
higher-priority candidate.  A field that resolves to nothing is simply
absent; callers fall back to a default value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from app.domain.cells import CellValue, RawRow
from app.errors import MissingRequiredColumnError

ColumnAliasTable = Mapping[str, Sequence[str]]


def find_column(
    keys: Iterable[str] | RawRow | None,
    candidates: Sequence[str],
) -> str | None:
    """
    Return the source column for the first matching candidate, or None.
    """

    if keys is None:
        return None
    available = [key for key in keys if isinstance(key, str)]
    if not available:
        return None

    available_set = set(available)
    for candidate in candidates:
        if candidate in available_set:
            return candidate

    lowered = [(key.lower(), key) for key in available]
    for candidate in candidates:
        wanted = candidate.lower()
        for key_lower, key in lowered:
            if key_lower == wanted:
                return key

    return None


def find_columns(
    keys: Iterable[str] | RawRow | None,
    candidates: Sequence[str],
) -> tuple[str, ...]:
    """
    Resolve each candidate independently, keeping priority order.

    Used where several source columns feed one figure and the first
    non-empty one wins per row.
    """

    available = tuple(key for key in (keys or ()) if isinstance(key, str))
    resolved: list[str] = []
    for candidate in candidates:
        column = find_column(available, (candidate,))
        if column is not None and column not in resolved:
            resolved.append(column)
    return tuple(resolved)


@dataclass(frozen=True)
class ColumnResolution:
    """
    Logical-field to source-column mapping for one file.
    """

    columns: dict[str, str]
    missing: tuple[str, ...]
    source_headers: tuple[str, ...] = field(default_factory=tuple)

    def get(self, logical_field: str) -> str | None:
        return self.columns.get(logical_field)

    def has(self, logical_field: str) -> bool:
        return logical_field in self.columns

    def value(self, row: RawRow, logical_field: str) -> CellValue:
        """
        Return the row's value for *logical_field*, or None when unresolved.
        """

        column = self.columns.get(logical_field)
        if column is None:
            return None
        return row.get(column)


class ColumnResolver:
    """
    Resolves a column alias table against one file's schema probe.
    """

    def __init__(
        self,
        aliases: ColumnAliasTable,
        *,
        required: Sequence[str] = (),
    ) -> None:
        self._aliases: dict[str, tuple[str, ...]] = {
            logical: tuple(candidates) for logical, candidates in aliases.items()
        }
        unknown = [name for name in required if name not in self._aliases]
        if unknown:
            raise ValueError(f"Required fields without aliases: {', '.join(unknown)}")
        self._required = tuple(required)

    @property
    def aliases(self) -> dict[str, tuple[str, ...]]:
        return dict(self._aliases)

    def resolve(self, schema_probe: Iterable[str] | RawRow | None) -> ColumnResolution:
        """
        Resolve every logical field against *schema_probe*.
        """

        headers = tuple(key for key in (schema_probe or ()) if isinstance(key, str))
        resolved: dict[str, str] = {}
        missing: list[str] = []
        for logical, candidates in self._aliases.items():
            column = find_column(headers, candidates)
            if column is None:
                missing.append(logical)
            else:
                resolved[logical] = column
        return ColumnResolution(
            columns=resolved,
            missing=tuple(missing),
            source_headers=headers,
        )

    def require(self, resolution: ColumnResolution) -> ColumnResolution:
        """
        Raise MissingRequiredColumnError when a required field is unresolved.
        """

        absent = [name for name in self._required if not resolution.has(name)]
        if absent:
            raise MissingRequiredColumnError(
                missing_fields=absent,
                available_columns=resolution.source_headers,
            )
        return resolution

    def resolve_required(self, schema_probe: Iterable[str] | RawRow | None) -> ColumnResolution:
        return self.require(self.resolve(schema_probe))
