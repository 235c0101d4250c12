"""
app/errors.py

Exception taxonomy for the dashboard data engine.

These are raised inside readers and pipelines and caught at each
pipeline's public boundary; callers of the public functions always get a
(possibly empty or synthetic-flagged) result instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence


class DataSourceError(RuntimeError):
    """
    Base class for problems locating or reading source files.
    """


class MissingSourceError(DataSourceError):
    """
    Raised when no file matches a pipeline's filename heuristic.
    """


class SourceReadError(DataSourceError):
    """
    Raised when one source file cannot be read or parsed.
    """

    def __init__(self, path: Path | str, message: str) -> None:
        super().__init__(f"{Path(path).name}: {message}")
        self.path = Path(path)


class MissingRequiredColumnError(ValueError):
    """
    Raised when a structurally required logical column cannot be resolved.
    """

    def __init__(
        self,
        *,
        missing_fields: Sequence[str],
        available_columns: Sequence[str],
    ) -> None:
        self.missing_fields = tuple(missing_fields)
        self.available_columns = tuple(available_columns)
        super().__init__(
            "Missing required columns: " + ", ".join(self.missing_fields) + "."
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": str(self),
            "missing_fields": list(self.missing_fields),
            "available_columns": list(self.available_columns),
        }


class UnknownDatasetError(ValueError):
    """
    Raised when an unsupported dataset kind is requested.
    """
