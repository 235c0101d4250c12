"""
app/services/product_pipeline.py

Product-usage aggregation pipeline.

Usage telemetry is exported once per month per surface into the customer
directory as ``Web App Stats - YY-MM``, ``Mobile App Stats - YY-MM`` and
``Timesheet Stats - YY-MM`` (``.xlsx`` or ``.csv``; ``.xlsx`` wins when
both exist for a month).  The month comes from the filename, not from the
rows.  Event counts are summed per month across all three surfaces.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Sequence

from app.config import DataDirectorySettings, get_data_directory_settings
from app.domain.cells import RawRow, parse_number
from app.errors import SourceReadError
from app.mappers.column_resolver import ColumnResolver
from app.readers.tabular_reader import list_directory, read_rows_strict
from app.schemas.dashboard import ProductDataPoint
from app.validators.date_normalizer import format_date_for_display, format_date_iso

_FILE_MONTH_RE = re.compile(r"(\d{2})-(\d{2})")
_PRODUCT_EXTENSIONS = (".xlsx", ".csv")

METRIC_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "web_logins": ("Login Success (Total Events)", "Web Login", "Web Logins", "Login Success"),
    "mobile_logins": (
        "Mobile App Login Success (Total Events)",
        "Mobile Login",
        "Mobile Logins",
        "Mobile App Login Success",
    ),
    "web_absences_booked": (
        "Created Absence (Total Events)",
        "Absence Created",
        "Web Absence",
        "Web Absences Booked",
        "Created Absence",
    ),
    "mobile_absences_booked": (
        "Mobile App Absence Booked (Total Events)",
        "Mobile Absence",
        "Mobile Absences Booked",
    ),
    "web_timesheets_submitted": (
        "Timesheet Submitted (Total Events)",
        "Web Timesheet",
        "Web Timesheets",
        "Timesheet Submitted",
    ),
    "mobile_timesheets_submitted": (
        "Mobile App Timesheet Submitted (Total Events)",
        "Mobile Timesheet",
        "Mobile Timesheets",
    ),
    "workflows_created": (
        "User impersonated (Total Events)",
        "Workflow Created",
        "Workflows Created",
        "User impersonated",
    ),
}


@dataclass(frozen=True)
class ProductSource:
    """
    One family of monthly exports and the metrics it contributes.
    """

    prefix: str
    metrics: tuple[str, ...]


PRODUCT_SOURCES: tuple[ProductSource, ...] = (
    ProductSource(
        "Web App Stats",
        ("web_logins", "web_absences_booked", "web_timesheets_submitted", "workflows_created"),
    ),
    ProductSource(
        "Mobile App Stats",
        ("mobile_logins", "mobile_absences_booked", "mobile_timesheets_submitted"),
    ),
    ProductSource(
        "Timesheet Stats",
        ("web_timesheets_submitted", "mobile_timesheets_submitted"),
    ),
)


def month_from_filename(filename: str) -> date | None:
    """
    ``"Web App Stats - 25-03.xlsx"`` -> ``date(2025, 3, 1)``.
    """

    match = _FILE_MONTH_RE.search(filename)
    if match is None:
        return None
    try:
        return date(2000 + int(match.group(1)), int(match.group(2)), 1)
    except ValueError:
        return None


def monthly_files(names: Sequence[str], prefix: str) -> list[str]:
    """
    Pick one export per ``YY-MM`` for *prefix*, preferring ``.xlsx``.
    """

    wanted = f"{prefix.lower()} - "
    by_month: dict[str, str] = {}
    for name in names:
        lower = name.lower()
        if not lower.startswith(wanted) or not lower.endswith(_PRODUCT_EXTENSIONS):
            continue
        match = _FILE_MONTH_RE.search(name)
        if match is None:
            continue
        key = match.group(0)
        if key not in by_month or lower.endswith(".xlsx"):
            by_month[key] = name
    return [by_month[key] for key in sorted(by_month)]


class ProductUsagePipeline:
    def __init__(
        self,
        *,
        data_dirs: DataDirectorySettings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._data_dirs = data_dirs or get_data_directory_settings()
        self._log = logger or logging.getLogger(__name__)

    def process(self) -> list[ProductDataPoint]:
        self._log.info("Processing product data...")
        names = list_directory(self._data_dirs.customer_dir, log=self._log)

        plan: list[tuple[ProductSource, list[str]]] = []
        for source in PRODUCT_SOURCES:
            files = monthly_files(names, source.prefix)
            self._log.info("Found %s files: %s", source.prefix, ", ".join(files))
            plan.append((source, files))

        if not any(files for _, files in plan):
            self._log.error("No monthly product data files found")
            return []

        totals: dict[date, dict[str, float]] = defaultdict(
            lambda: {metric: 0.0 for metric in METRIC_COLUMN_ALIASES}
        )
        for source, files in plan:
            for name in files:
                self._add_file(self._data_dirs.customer_dir / name, source, totals)

        points = [
            ProductDataPoint(
                date=format_date_iso(month),
                display_date=format_date_for_display(month),
                **metrics,
            )
            for month, metrics in sorted(totals.items())
        ]
        self._log.info("Processed %d product data points", len(points))
        return points

    def _add_file(
        self,
        path: Path,
        source: ProductSource,
        totals: dict[date, dict[str, float]],
    ) -> None:
        month = month_from_filename(path.name)
        if month is None:
            self._log.warning("Could not extract month from filename: %s", path.name)
            return
        self._log.info("File: %s => Date: %s", path.name, format_date_iso(month))

        try:
            rows = read_rows_strict(path, log=self._log)
        except SourceReadError as exc:
            self._log.error("Skipping unreadable product file %s: %s", path.name, exc)
            return
        if not rows:
            return

        resolver = ColumnResolver({metric: METRIC_COLUMN_ALIASES[metric] for metric in source.metrics})
        resolution = resolver.resolve(rows[0])
        if resolution.missing:
            self._log.debug("Unresolved metrics in %s: %s", path.name, ", ".join(resolution.missing))

        entry = totals[month]
        for row in rows:
            for metric in source.metrics:
                entry[metric] += _metric_value(row, resolution.get(metric))


def _metric_value(row: RawRow, column: str | None) -> float:
    if column is None:
        return 0.0
    return parse_number(row.get(column))


def process_product_data(
    data_dirs: DataDirectorySettings | None = None,
    logger: logging.Logger | None = None,
) -> list[ProductDataPoint]:
    return ProductUsagePipeline(data_dirs=data_dirs, logger=logger).process()
