"""
app/validators/date_normalizer.py

Heterogeneous date parsing for spreadsheet cells.

Attempts, first success wins:

1. values the reader already materialised as dates;
2. standard date-time strings (ISO-8601 and common non-slash locale forms);
3. ``DD/MM/YYYY`` then ``MM/DD/YYYY``;
4. ``YYYY-MM-DD`` then ``DD-MM-YYYY``;
5. ``<MonthName> <YYYY>`` (day 1);
6. spreadsheet serial day numbers.

Anything else is unparseable: a warning is logged and ``None`` returned so
the caller skips the row.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime, timedelta

from app.domain.cells import CellValue

logger = logging.getLogger(__name__)

LOCALE_DATE_FORMATS: tuple[str, ...] = (
    "%d-%b-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%a %b %d %Y",
    "%A, %B %d, %Y",
)

MONTH_NAMES: tuple[tuple[str, str], ...] = (
    ("jan", "january"),
    ("feb", "february"),
    ("mar", "march"),
    ("apr", "april"),
    ("may", "may"),
    ("jun", "june"),
    ("jul", "july"),
    ("aug", "august"),
    ("sep", "september"),
    ("oct", "october"),
    ("nov", "november"),
    ("dec", "december"),
)

DISPLAY_MONTHS: tuple[str, ...] = tuple(short.capitalize() for short, _ in MONTH_NAMES)

SPREADSHEET_EPOCH = date(1900, 1, 1)
SERIAL_MIN_VALUE = 1000
SERIAL_YEAR_RANGE = (1950, 2100)

_MONTH_YEAR_RE = re.compile(r"([A-Za-z]+)\s+(\d{4})")
_LEADING_INT_RE = re.compile(r"\s*(\d+)")


def parse_date(raw: CellValue, log: logging.Logger | None = None) -> date | None:
    """
    Parse *raw* into a calendar date, or return None when unparseable.
    """

    log = log or logger
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, float) and math.isnan(raw):
        return None

    text = str(raw).strip()
    if not text:
        return None

    for attempt in (
        _parse_standard,
        _parse_slash_separated,
        _parse_dash_separated,
        _parse_month_year,
    ):
        parsed = attempt(text)
        if parsed is not None:
            return parsed

    serial = _parse_serial(raw, text)
    if serial is not None:
        return serial

    log.warning("Could not parse date from value: %r", text)
    return None


def _parse_standard(text: str) -> date | None:
    normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return datetime.fromisoformat(normalized).date()
    except ValueError:
        pass
    for fmt in LOCALE_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _leading_int(part: str) -> int | None:
    match = _LEADING_INT_RE.match(part)
    return int(match.group(1)) if match else None


def _safe_date(year: int | None, month: int | None, day: int | None) -> date | None:
    if year is None or month is None or day is None:
        return None
    try:
        return date(year, month, day)
    except (ValueError, OverflowError):
        return None


def _parse_slash_separated(text: str) -> date | None:
    if "/" not in text:
        return None
    parts = text.split("/")
    if len(parts) != 3:
        return None
    first, second, year = (_leading_int(part) for part in parts)
    # Day-first reflects the source locale; month-first is the fallback.
    return _safe_date(year, second, first) or _safe_date(year, first, second)


def _parse_dash_separated(text: str) -> date | None:
    if "-" not in text:
        return None
    parts = text.split("-")
    if len(parts) != 3:
        return None
    first, second, third = (_leading_int(part) for part in parts)
    return _safe_date(first, second, third) or _safe_date(third, second, first)


def _parse_month_year(text: str) -> date | None:
    match = _MONTH_YEAR_RE.search(text)
    if match is None:
        return None
    name = match.group(1).lower()
    year = int(match.group(2))
    for index, names in enumerate(MONTH_NAMES, start=1):
        if name in names:
            return _safe_date(year, index, 1)
    return None


def _parse_serial(raw: CellValue, text: str) -> date | None:
    if isinstance(raw, (int, float)):
        serial = float(raw)
    else:
        try:
            serial = float(text)
        except ValueError:
            return None
    if math.isnan(serial) or math.isinf(serial) or serial <= SERIAL_MIN_VALUE:
        return None
    decoded = serial_to_date(serial)
    low, high = SERIAL_YEAR_RANGE
    if decoded is None or not low <= decoded.year < high:
        return None
    return decoded


def serial_to_date(serial: float) -> date | None:
    """
    Decode a spreadsheet serial day number.

    Spreadsheets count from 1900-01-01 and treat 1900 as a leap year, so
    one day is subtracted up to serial 60 and two days after it.
    """

    offset = serial - (2 if serial > 60 else 1)
    try:
        return SPREADSHEET_EPOCH + timedelta(days=math.floor(offset))
    except OverflowError:
        return None


def format_date_iso(value: date | None) -> str:
    """Return ``YYYY-MM-DD`` or an empty string for None."""
    if value is None:
        return ""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def month_key(value: date) -> str:
    """Return the ``YYYY-MM`` bucket key for *value*."""
    return f"{value.year:04d}-{value.month:02d}"


def first_of_month(value: date) -> date:
    return value.replace(day=1)


def format_date_for_display(value: date | None) -> str:
    """Return a short label such as ``Jan 2025``."""
    if value is None:
        return ""
    return f"{DISPLAY_MONTHS[value.month - 1]} {value.year}"
