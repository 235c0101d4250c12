"""
app/readers/tabular_reader.py

Uniform row access over CSV and spreadsheet exports.

Dispatch is purely on file extension.  Every reader returns a list of
plain ``dict`` rows keyed by the header as written in the file, with
missing cells as ``None`` and numpy/pandas scalars converted to Python
values so downstream code only ever sees ``CellValue``.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from app.domain.cells import CellValue
from app.errors import SourceReadError

logger = logging.getLogger(__name__)

CSV_EXTENSIONS: frozenset[str] = frozenset({".csv"})
EXCEL_EXTENSIONS: frozenset[str] = frozenset({".xlsx", ".xls"})
SUPPORTED_EXTENSIONS: frozenset[str] = CSV_EXTENSIONS | EXCEL_EXTENSIONS


def list_directory(directory: Path, log: logging.Logger | None = None) -> list[str]:
    """
    Return sorted file names in *directory*; a missing directory is empty.
    """

    log = log or logger
    if not directory.is_dir():
        log.warning("Data directory not found: %s", directory)
        return []
    return sorted(entry.name for entry in directory.iterdir() if entry.is_file())


def read_rows(
    path: Path,
    *,
    sheet_name: str | None = None,
    log: logging.Logger | None = None,
) -> list[dict[str, CellValue]]:
    """
    Read *path* into rows, logging and returning ``[]`` on any failure.
    """

    log = log or logger
    try:
        return read_rows_strict(path, sheet_name=sheet_name, log=log)
    except SourceReadError as exc:
        log.error("Failed to read %s: %s", path.name, exc)
        return []


def read_rows_strict(
    path: Path,
    *,
    sheet_name: str | None = None,
    log: logging.Logger | None = None,
) -> list[dict[str, CellValue]]:
    """
    Read *path* into rows, raising SourceReadError when it cannot be parsed.

    Unsupported extensions are not an error: they yield no rows.
    """

    log = log or logger
    extension = path.suffix.lower()
    if extension in CSV_EXTENSIONS:
        frame = _read_csv_frame(path, log)
    elif extension in EXCEL_EXTENSIONS:
        frame = _read_excel_frame(path, sheet_name, log)
    else:
        log.warning("Unsupported file extension %r for file %s", extension, path.name)
        return []

    rows = frame_to_rows(frame)
    if rows:
        log.debug("Columns in %s: %s", path.name, ", ".join(str(c) for c in frame.columns))
        log.debug("Total rows in %s: %d", path.name, len(rows))
    else:
        log.warning("File %s is empty or has no data rows", path.name)
    return rows


def _read_csv_frame(path: Path, log: logging.Logger) -> pd.DataFrame:
    log.debug("Reading CSV file: %s", path.name)
    try:
        return pd.read_csv(
            path,
            encoding="utf-8-sig",
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as exc:
        raise SourceReadError(path, f"CSV parsing failed: {exc}") from exc


def _read_excel_frame(path: Path, sheet_name: str | None, log: logging.Logger) -> pd.DataFrame:
    log.debug("Reading spreadsheet file: %s", path.name)
    try:
        with pd.ExcelFile(path) as workbook:
            sheets = list(workbook.sheet_names)
            if not sheets:
                raise SourceReadError(path, "workbook has no sheets")
            target = sheet_name if sheet_name in sheets else sheets[0]
            if sheet_name is not None and sheet_name not in sheets:
                log.warning(
                    "Sheet %r not found in %s; using %r", sheet_name, path.name, target
                )
            log.debug("Using sheet %r from %s", target, path.name)
            return workbook.parse(target)
    except SourceReadError:
        raise
    except Exception as exc:  # noqa: BLE001 - engines raise assorted zip/xml/format errors
        raise SourceReadError(path, f"spreadsheet parsing failed: {exc}") from exc


def frame_to_rows(frame: pd.DataFrame) -> list[dict[str, CellValue]]:
    """
    Convert a DataFrame into ``CellValue`` rows, dropping fully blank rows.
    """

    if frame.empty:
        return []
    frame = frame.dropna(how="all")
    columns = [str(column) for column in frame.columns]
    rows: list[dict[str, CellValue]] = []
    for record in frame.itertuples(index=False, name=None):
        rows.append({column: to_cell_value(value) for column, value in zip(columns, record)})
    return rows


def to_cell_value(value: Any) -> CellValue:
    """
    Normalise one pandas/numpy cell into a plain Python ``CellValue``.
    """

    if value is None or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, np.datetime64):
        return None if np.isnat(value) else pd.Timestamp(value).to_pydatetime()
    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, (float, np.floating)):
        number = float(value)
        return None if math.isnan(number) else number
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return value
    if pd.isna(value):
        return None
    return str(value)
