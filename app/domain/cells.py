"""
app/domain/cells.py

Cell values as they come out of a spreadsheet, and pure coercions over them.

Every reader hands rows to the pipelines as ``RawRow`` mappings whose values
are one of: text, number, boolean, calendar date, or missing (``None``).
Coercion helpers never raise; they return a numeric default instead.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Union

CellValue = Union[str, int, float, bool, date, datetime, None]
RawRow = Mapping[str, CellValue]

_NON_COUNT_CHARS = re.compile(r"[^0-9.]")
_NON_NUMBER_CHARS = re.compile(r"[^\d.-]")


def is_missing(value: CellValue) -> bool:
    """
    Return True for ``None``, NaN, and blank text.
    """

    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    return False


def _first_float(text: str) -> float:
    # float() rejects "1.2.3"; fall back to the leading well-formed number.
    try:
        return float(text)
    except ValueError:
        match = re.match(r"-?\d*\.?\d+", text)
        if match is None:
            return 0.0
        try:
            return float(match.group(0))
        except ValueError:
            return 0.0


def parse_count(value: CellValue) -> float:
    """
    Parse a licence/module count.

    Strings are stripped of every character other than digits and ``.``
    before parsing, so ``"25 users"`` becomes ``25.0``.  Anything that
    cannot be read as a number counts as ``0.0``.
    """

    if isinstance(value, bool) or is_missing(value):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = _NON_COUNT_CHARS.sub("", value)
        if not cleaned:
            return 0.0
        return _first_float(cleaned)
    return 0.0


def parse_amount(value: CellValue) -> float:
    """
    Parse a monetary amount; unparseable values are ``0.0``.
    """

    if isinstance(value, bool) or is_missing(value):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().replace(",", ""))
        except ValueError:
            return 0.0
    return 0.0


def parse_number(value: CellValue) -> float:
    """
    Parse a signed telemetry value; ``True`` counts as one event.
    """

    if value is True:
        return 1.0
    if value is False or is_missing(value):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = _NON_NUMBER_CHARS.sub("", value)
        if not cleaned or cleaned in {"-", ".", "-."}:
            return 0.0
        return _first_float(cleaned)
    return 0.0


def as_text(value: CellValue, default: str = "") -> str:
    """
    Return a trimmed string form of *value*, or *default* when missing.
    """

    if is_missing(value):
        return default
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def round_half_up(value: float, places: int = 2) -> float:
    """
    Round *value* to *places* decimals with ties away from zero.

    ``round()`` rounds ties to even, so ``1.125`` would become ``1.12``;
    dashboard figures are reported as ``1.13``.
    """

    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
