"""
app/services/csat_pipeline.py

Support ticket / CSAT aggregation pipeline.

Ticket exports are split by month, so every ``.xlsx`` file in the support
directory whose name contains ``freshdesk`` (any case) is read.  Each file
resolves its own columns and fails on its own; tickets from the files that
succeed are concatenated and folded into month buckets.

NPS and churn have no source column.  Every data point carries placeholder
values for both and flags them in ``synthetic``.  When no ticket at all can
be parsed, the whole series is fabricated and flagged as such.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Mapping, Sequence

import numpy as np

from app.config import (
    CSATSettings,
    DataDirectorySettings,
    get_csat_settings,
    get_data_directory_settings,
)
from app.domain.cells import CellValue, RawRow, as_text, is_missing
from app.domain.results import RealSeries, SeriesResult, SyntheticSeries
from app.errors import MissingRequiredColumnError, SourceReadError
from app.mappers.column_resolver import ColumnResolution, ColumnResolver
from app.readers.tabular_reader import list_directory, read_rows_strict
from app.schemas.dashboard import CSATDataPoint, CSATSyntheticFlags, SeverityHistogram
from app.services.monthly_aggregator import MonthlyAggregator
from app.validators.date_normalizer import month_key, parse_date


SUPPORT_FILE_MARKER = "freshdesk"
SUPPORT_FILE_EXTENSION = ".xlsx"

CSAT_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "date": ("Created Date", "CreatedDate", "Created time", "Created_at", "created_at", "Date"),
    "priority": ("Impact Level", "Priority", "priority", "Severity"),
    "topic": ("Help Topic", "Subject", "Topic", "topic", "Category", "category"),
    "ticket_type": ("Ticket Type", "Type", "type"),
    "group": ("Group", "group", "Group Name", "Agent Group"),
}

REQUIRED_CSAT_FIELDS: tuple[str, ...] = ("date",)

# Checked in order; the first rule with a matching substring wins.
SEVERITY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("low", ("low", "minor")),
    ("medium", ("medium", "normal")),
    ("high", ("high", "major")),
    ("urgent", ("urgent", "critical")),
)
DEFAULT_SEVERITY = "medium"

OTHER_TOPIC = "Other"
OTHER_TICKET_TYPE = "Other"
NO_GROUP = "No Group"
TOPIC_WORDS = 2


def classify_severity(value: CellValue) -> str:
    """
    Bucket a free-text priority/impact value into low/medium/high/urgent.
    """

    text = as_text(value).lower()
    for severity, needles in SEVERITY_RULES:
        if any(needle in text for needle in needles):
            return severity
    return DEFAULT_SEVERITY


def topic_label(value: CellValue) -> str:
    """
    Shorten a free-text topic to its first two words.
    """

    words = as_text(value).split()
    if not words:
        return OTHER_TOPIC
    return " ".join(words[:TOPIC_WORDS])


def verbatim_label(value: CellValue, default: str) -> str:
    """
    Ticket type and group are grouped on the exported text as-is.
    """

    if is_missing(value):
        return default
    return value if isinstance(value, str) else str(value)


def merge_topic_tail(counts: Mapping[str, int], threshold: float) -> dict[str, int]:
    """
    Fold topics whose share of the month's volume is below *threshold*
    into ``Other``.
    """

    total = sum(counts.values())
    merged: Counter[str] = Counter()
    for topic, count in counts.items():
        if total and count / total < threshold:
            merged[OTHER_TOPIC] += count
        else:
            merged[topic] += count
    return _ordered_counts(merged)


def _ordered_counts(counts: Mapping[str, int]) -> dict[str, int]:
    return dict(sorted(counts.items(), key=lambda item: (-item[1], item[0])))


# ---------------------------------------------------------------------------
# Tickets and month buckets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SupportTicket:
    created_on: date
    severity: str
    topic: str
    ticket_type: str
    group: str


@dataclass
class _TicketMonthBucket:
    severities: Counter[str] = field(default_factory=Counter)
    topics: Counter[str] = field(default_factory=Counter)
    ticket_types: Counter[str] = field(default_factory=Counter)
    groups: Counter[str] = field(default_factory=Counter)
    total: int = 0

    def add(self, ticket: SupportTicket) -> None:
        self.total += 1
        self.severities[ticket.severity] += 1
        self.topics[ticket.topic] += 1
        self.ticket_types[ticket.ticket_type] += 1
        self.groups[ticket.group] += 1

    def histogram(self) -> SeverityHistogram:
        return SeverityHistogram(
            low=self.severities["low"],
            medium=self.severities["medium"],
            high=self.severities["high"],
            urgent=self.severities["urgent"],
        )


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class CSATAggregationPipeline:
    """
    Builds the monthly support/CSAT series from ticket exports on disk.
    """

    def __init__(
        self,
        *,
        data_dirs: DataDirectorySettings | None = None,
        settings: CSATSettings | None = None,
        rng: np.random.Generator | None = None,
        today: date | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._data_dirs = data_dirs or get_data_directory_settings()
        self._settings = settings or get_csat_settings()
        self._rng = rng if rng is not None else np.random.default_rng(self._settings.random_seed)
        self._today = today
        self._log = logger or logging.getLogger(__name__)
        self._resolver = ColumnResolver(CSAT_COLUMN_ALIASES, required=REQUIRED_CSAT_FIELDS)

    def process(self) -> SeriesResult[CSATDataPoint]:
        """
        Return a real series, or a synthetic one when no ticket parses.
        """

        self._log.info("Processing CSAT data...")
        files = self.find_source_files()
        if not files:
            self._log.warning("No support ticket exports found in %s", self._data_dirs.support_dir)
            return self.synthetic_series("no support ticket files found")

        tickets: list[SupportTicket] = []
        for path in files:
            tickets.extend(self.read_tickets(path))

        if not tickets:
            self._log.warning("No parseable support tickets across %d file(s)", len(files))
            return self.synthetic_series("no parseable support tickets")

        points = self.aggregate_tickets(tickets)
        self._log.info("Processed %d CSAT data points", len(points))
        return RealSeries(points=points)

    def find_source_files(self) -> list[Path]:
        names = list_directory(self._data_dirs.support_dir, log=self._log)
        matched = [
            self._data_dirs.support_dir / name
            for name in names
            if SUPPORT_FILE_MARKER in name.lower() and name.lower().endswith(SUPPORT_FILE_EXTENSION)
        ]
        self._log.info("Found %d support ticket file(s)", len(matched))
        return matched

    def read_tickets(self, path: Path) -> list[SupportTicket]:
        """
        Read one export; failures are logged and yield no tickets.
        """

        try:
            rows = read_rows_strict(path, log=self._log)
        except SourceReadError as exc:
            self._log.error("Skipping unreadable support file %s: %s", path.name, exc)
            return []
        if not rows:
            return []

        try:
            resolution = self._resolver.resolve_required(rows[0])
        except MissingRequiredColumnError as exc:
            self._log.error("No date column in support file %s: %s", path.name, exc.to_dict())
            return []

        self._log.debug(
            "Support columns in %s - %s",
            path.name,
            ", ".join(f"{name}: {resolution.get(name)}" for name in CSAT_COLUMN_ALIASES),
        )

        tickets: list[SupportTicket] = []
        for index, row in enumerate(rows):
            ticket = self._ticket_from_row(row, resolution, index)
            if ticket is not None:
                tickets.append(ticket)
        self._log.info("Read %d ticket(s) from %s", len(tickets), path.name)
        return tickets

    def _ticket_from_row(
        self, row: RawRow, resolution: ColumnResolution, index: int
    ) -> SupportTicket | None:
        value = resolution.value
        raw_date = value(row, "date")
        if is_missing(raw_date):
            self._log.warning("Missing date in support ticket row %d", index)
            return None
        created_on = parse_date(raw_date, self._log)
        if created_on is None:
            self._log.warning("Invalid date in support data: %r", raw_date)
            return None
        return SupportTicket(
            created_on=created_on,
            severity=classify_severity(value(row, "priority")),
            topic=topic_label(value(row, "topic")),
            ticket_type=verbatim_label(value(row, "ticket_type"), OTHER_TICKET_TYPE),
            group=verbatim_label(value(row, "group"), NO_GROUP),
        )

    def aggregate_tickets(self, tickets: Sequence[SupportTicket]) -> list[CSATDataPoint]:
        months: MonthlyAggregator[_TicketMonthBucket] = MonthlyAggregator(_TicketMonthBucket)
        for ticket in tickets:
            months.bucket_for(ticket.created_on).add(ticket)

        points: list[CSATDataPoint] = []
        for key, bucket in months.sorted_items():
            points.append(
                CSATDataPoint(
                    date=key,
                    nps_score=self._draw_nps(),
                    churn_percentage=self._draw_churn(),
                    total_tickets=bucket.total,
                    support_tickets_by_severity=bucket.histogram(),
                    support_topics=merge_topic_tail(
                        bucket.topics, self._settings.topic_share_threshold
                    ),
                    ticket_types=_ordered_counts(bucket.ticket_types),
                    tickets_by_group=_ordered_counts(bucket.groups),
                    synthetic=CSATSyntheticFlags(nps=True, churn=True, tickets=False),
                )
            )
        return points

    def _draw_nps(self) -> float:
        return float(self._rng.uniform(self._settings.nps_min, self._settings.nps_max))

    def _draw_churn(self) -> float:
        return float(self._rng.uniform(self._settings.churn_min, self._settings.churn_max))

    # ------------------------------------------------------------------
    # Synthetic fallback
    # ------------------------------------------------------------------

    def synthetic_series(self, reason: str) -> SyntheticSeries[CSATDataPoint]:
        """
        Fabricate an improving-trend series ending at the current month.
        """

        self._log.info("Creating synthetic CSAT data (%s)", reason)
        today = self._today or date.today()
        count = self._settings.synthetic_months
        points = [
            _synthetic_point(_shift_month(today, offset - (count - 1)), offset)
            for offset in range(count)
        ]
        self._log.info("Created %d synthetic CSAT data points", len(points))
        return SyntheticSeries(points=points, reason=reason)


SYNTHETIC_TOPIC_WEIGHTS: tuple[tuple[str, int], ...] = (
    ("Login Issues", 40),
    ("Reporting", 35),
    ("Mobile App", 30),
    ("Integration", 28),
    ("Workflows", 20),
    (OTHER_TOPIC, 100),
)
SYNTHETIC_TYPE_WEIGHTS: tuple[tuple[str, int], ...] = (
    ("Question", 45),
    ("Incident", 30),
    ("Problem", 15),
    ("Feature Request", 10),
)
SYNTHETIC_GROUP_WEIGHTS: tuple[tuple[str, int], ...] = (
    ("Tier 1 Support", 55),
    ("Tier 2 Support", 30),
    ("Product Specialists", 15),
)


def _synthetic_point(month: date, step: int) -> CSATDataPoint:
    histogram = SeverityHistogram(
        low=max(1, 140 - step * 10),
        medium=max(1, 85 - step * 5),
        high=max(1, 30 - step * 2),
        urgent=max(5, 12 - step * 2),
    )
    total = histogram.total
    return CSATDataPoint(
        date=month_key(month),
        nps_score=round(7.5 + step * 0.3, 2),
        churn_percentage=round(max(1.0, 2.8 - step * 0.4), 2),
        total_tickets=total,
        support_tickets_by_severity=histogram,
        support_topics=_split_by_weight(total, SYNTHETIC_TOPIC_WEIGHTS),
        ticket_types=_split_by_weight(total, SYNTHETIC_TYPE_WEIGHTS),
        tickets_by_group=_split_by_weight(total, SYNTHETIC_GROUP_WEIGHTS),
        synthetic=CSATSyntheticFlags(nps=True, churn=True, tickets=True),
    )


def _split_by_weight(total: int, weights: Sequence[tuple[str, int]]) -> dict[str, int]:
    """
    Apportion *total* across labels; the last label absorbs rounding.
    """

    weight_sum = sum(weight for _, weight in weights)
    shares: dict[str, int] = {}
    allocated = 0
    for label, weight in weights[:-1]:
        share = total * weight // weight_sum
        shares[label] = share
        allocated += share
    last_label = weights[-1][0]
    shares[last_label] = total - allocated
    return shares


def _shift_month(value: date, offset: int) -> date:
    index = value.year * 12 + (value.month - 1) + offset
    return date(index // 12, index % 12 + 1, 1)


def load_csat_series(
    data_dirs: DataDirectorySettings | None = None,
    settings: CSATSettings | None = None,
    logger: logging.Logger | None = None,
) -> SeriesResult[CSATDataPoint]:
    return CSATAggregationPipeline(data_dirs=data_dirs, settings=settings, logger=logger).process()


def process_csat_data(
    data_dirs: DataDirectorySettings | None = None,
    settings: CSATSettings | None = None,
    logger: logging.Logger | None = None,
) -> list[CSATDataPoint]:
    """
    Convenience wrapper returning only the data points.

    Synthetic points remain identifiable through their ``synthetic`` flags.
    """

    return load_csat_series(data_dirs=data_dirs, settings=settings, logger=logger).points
