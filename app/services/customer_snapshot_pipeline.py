"""
app/services/customer_snapshot_pipeline.py

Customer-snapshot aggregation pipeline.

Each ``<YYYY>-<MM> Customer Snapshot.csv`` file in the sales directory is a
point-in-time roster of clients for that month.  For every file the
pipeline counts, per client row, the distinct licensable modules present
and reports the average across clients.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Sequence

from app.config import DataDirectorySettings, get_data_directory_settings
from app.domain.cells import RawRow, round_half_up
from app.errors import SourceReadError
from app.readers.tabular_reader import list_directory, read_rows_strict
from app.schemas.dashboard import CustomerSnapshotDataPoint, SnapshotPeriodSummary
from app.services.modules import SNAPSHOT_MODULES, ModuleCounter
from app.validators.date_normalizer import format_date_iso

SNAPSHOT_FILE_PATTERN = re.compile(r"(\d{4})-(\d{2}) Customer Snapshot\.csv$")


@dataclass(frozen=True)
class SnapshotFile:
    path: Path
    snapshot_date: date

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class SnapshotStats:
    average_modules_per_client: float
    total_clients: int


def snapshot_date_from_filename(filename: str) -> date | None:
    """
    ``"2025-05 Customer Snapshot.csv"`` -> ``date(2025, 5, 1)``.
    """

    match = SNAPSHOT_FILE_PATTERN.search(filename)
    if match is None:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), 1)
    except ValueError:
        return None


def summarise_roster(rows: Sequence[RawRow]) -> SnapshotStats:
    """
    Average distinct modules per client row, rounded to two decimals.
    """

    if not rows:
        return SnapshotStats(average_modules_per_client=0.0, total_clients=0)
    counter = ModuleCounter(SNAPSHOT_MODULES, rows[0])
    total_modules = sum(counter.count(row) for row in rows)
    return SnapshotStats(
        average_modules_per_client=round_half_up(total_modules / len(rows)),
        total_clients=len(rows),
    )


class CustomerSnapshotPipeline:
    """
    Builds the monthly modules-per-client series from roster snapshots.
    """

    def __init__(
        self,
        *,
        data_dirs: DataDirectorySettings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._data_dirs = data_dirs or get_data_directory_settings()
        self._log = logger or logging.getLogger(__name__)

    def find_snapshot_files(self) -> list[SnapshotFile]:
        snapshots: list[SnapshotFile] = []
        for name in list_directory(self._data_dirs.sales_dir, log=self._log):
            if SNAPSHOT_FILE_PATTERN.search(name) is None:
                continue
            snapshot_date = snapshot_date_from_filename(name)
            if snapshot_date is None:
                self._log.warning("Could not extract date from filename: %s", name)
                continue
            snapshots.append(SnapshotFile(path=self._data_dirs.sales_dir / name, snapshot_date=snapshot_date))
        return snapshots

    def process(self) -> list[CustomerSnapshotDataPoint]:
        self._log.info("Processing customer snapshot files...")
        snapshots = self.find_snapshot_files()
        if not snapshots:
            self._log.warning("No customer snapshot files found")
            return []

        points: list[CustomerSnapshotDataPoint] = []
        for snapshot in snapshots:
            stats = self._read_stats(snapshot)
            if stats is None or stats.total_clients == 0:
                continue
            points.append(
                CustomerSnapshotDataPoint(
                    date=format_date_iso(snapshot.snapshot_date),
                    average_modules_per_client=stats.average_modules_per_client,
                    total_clients=stats.total_clients,
                )
            )

        points.sort(key=lambda point: point.date)
        self._log.info("Processed %d customer snapshot data points", len(points))
        return points

    def summary_for_period(self, start: date, end: date) -> SnapshotPeriodSummary:
        """
        Stats from the latest snapshot dated within ``[start, end]``.
        """

        in_window = [
            snapshot
            for snapshot in self.find_snapshot_files()
            if start <= snapshot.snapshot_date <= end
        ]
        if not in_window:
            return SnapshotPeriodSummary()

        latest = max(in_window, key=lambda snapshot: snapshot.snapshot_date)
        stats = self._read_stats(latest)
        if stats is None:
            return SnapshotPeriodSummary(file=latest.name)
        return SnapshotPeriodSummary(
            average_modules_per_client=stats.average_modules_per_client,
            total_clients=stats.total_clients,
            file=latest.name,
        )

    def _read_stats(self, snapshot: SnapshotFile) -> SnapshotStats | None:
        try:
            rows = read_rows_strict(snapshot.path, log=self._log)
        except SourceReadError as exc:
            self._log.error("Skipping unreadable snapshot file %s: %s", snapshot.name, exc)
            return None
        if not rows:
            self._log.warning("No data in snapshot file: %s", snapshot.name)
        return summarise_roster(rows)


def process_customer_snapshots(
    data_dirs: DataDirectorySettings | None = None,
    logger: logging.Logger | None = None,
) -> list[CustomerSnapshotDataPoint]:
    return CustomerSnapshotPipeline(data_dirs=data_dirs, logger=logger).process()


def get_snapshot_summary_for_period(
    start: date,
    end: date,
    data_dirs: DataDirectorySettings | None = None,
    logger: logging.Logger | None = None,
) -> SnapshotPeriodSummary:
    return CustomerSnapshotPipeline(data_dirs=data_dirs, logger=logger).summary_for_period(start, end)
