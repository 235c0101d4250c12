"""
app/services/sales_pipeline.py

Sales aggregation pipeline.

Reads the CRM won-deal export (the first file in the sales directory whose
name contains ``salesforce``), classifies each deal into a channel
category, folds deals into month buckets and derives monthly sales KPIs.

Channel classification
----------------------
The trimmed, case-sensitive value of the channel column decides the
category:

    "Direct Sale"                 -> new-direct
    "Partner Sale (Partner)"      -> new-partner
    "Customer Sale"               -> existing-client-upsell
    "Customer Sale (Partner)"     -> existing-partner
    "Self-Service System Order"   -> self-service

Any other value is unclassified.  Unclassified deals count toward the
month's total count and value (and therefore ARR) but toward no named
category.

Failure contract
----------------
- No matching file, unreadable file      -> ``[]``
- Date or amount column unresolvable     -> ``[]``
- Row with a missing/unparseable date    -> row skipped, WARNING logged
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Mapping, Sequence

from app.config import DataDirectorySettings, get_data_directory_settings
from app.domain.cells import (
    RawRow,
    as_text,
    is_missing,
    parse_amount,
    parse_count,
    round_half_up,
)
from app.domain.results import ChannelClassification, Classified, SalesCategory, Unclassified
from app.errors import MissingRequiredColumnError, MissingSourceError, SourceReadError
from app.mappers.column_resolver import ColumnResolution, ColumnResolver, find_columns
from app.readers.tabular_reader import list_directory, read_rows_strict
from app.schemas.dashboard import SalesDataPoint, SalesPeriodSummary
from app.services.modules import DEAL_MODULES, ModuleCounter
from app.services.monthly_aggregator import MonthlyAggregator
from app.validators.date_normalizer import parse_date
from kpi.sales import SalesKPIFormula, average_order_value


SALES_FILE_MARKER = "salesforce"

SALES_COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "date": ("CloseDate", "closeDate", "Close_Date", "Date"),
    "amount": ("Amount", "amount", "deal_amount", "value", "ARR__c"),
    "channel": ("Channel__c", "channel", "Channel"),
    "account_id": ("AccountId", "Account ID", "Account Id", "Account"),
    "deal_id": ("Id", "ID", "Opportunity ID"),
    "module_count": ("NumberOfModules", "Number_of_Modules__c", "Number of Modules"),
}

REQUIRED_SALES_FIELDS: tuple[str, ...] = ("date", "amount")

LICENSE_COLUMN_CANDIDATES: dict[str, tuple[str, ...]] = {
    "user": ("User_licenses1__c", "User_Licenses_Total__c"),
    "leaver": ("Leavers_Licenses__c",),
    "timesheet": ("Time_Submission_Licenses__c", "Time_Tracking_Licenses__c"),
    "directory": ("Directory_Licenses__c",),
    "workflow": ("Workflow_Builder_Pro_Licenses__c",),
    "other": ("Other_Licenses__c",),
}

CHANNEL_CATEGORIES: dict[str, SalesCategory] = {
    "Direct Sale": SalesCategory.NEW_DIRECT,
    "Partner Sale (Partner)": SalesCategory.NEW_PARTNER,
    "Customer Sale": SalesCategory.EXISTING_CLIENT_UPSELL,
    "Customer Sale (Partner)": SalesCategory.EXISTING_PARTNER,
    "Self-Service System Order": SalesCategory.SELF_SERVICE,
}

NEW_BUSINESS_CATEGORIES: frozenset[SalesCategory] = frozenset(
    {SalesCategory.NEW_DIRECT, SalesCategory.NEW_PARTNER}
)


def classify_channel(value: object) -> ChannelClassification:
    """
    Map a raw channel cell onto a sales category by exact value.
    """

    text = as_text(value)
    category = CHANNEL_CATEGORIES.get(text)
    if category is None:
        return Unclassified(raw_value=text)
    return Classified(category=category)


# ---------------------------------------------------------------------------
# Month accumulators
# ---------------------------------------------------------------------------


@dataclass
class _DealList:
    amounts: list[float] = field(default_factory=list)
    modules: list[float] = field(default_factory=list)

    def add(self, amount: float, modules: float) -> None:
        self.amounts.append(amount)
        self.modules.append(modules)

    @property
    def count(self) -> int:
        return len(self.amounts)

    @property
    def value(self) -> float:
        # fsum is exactly rounded, so totals do not depend on row order.
        return math.fsum(self.amounts)

    @property
    def module_total(self) -> float:
        return math.fsum(self.modules)


@dataclass
class _SalesMonthBucket:
    categories: dict[SalesCategory, _DealList] = field(
        default_factory=lambda: {category: _DealList() for category in SalesCategory}
    )
    unknown: _DealList = field(default_factory=_DealList)
    licenses: dict[str, list[float]] = field(
        default_factory=lambda: {name: [] for name in LICENSE_COLUMN_CANDIDATES}
    )

    def all_deal_lists(self) -> list[_DealList]:
        return [*self.categories.values(), self.unknown]

    @property
    def total_count(self) -> int:
        return sum(deals.count for deals in self.all_deal_lists())

    @property
    def total_value(self) -> float:
        return math.fsum(amount for deals in self.all_deal_lists() for amount in deals.amounts)

    def license_total(self, name: str) -> float:
        return math.fsum(self.licenses[name])


@dataclass(frozen=True)
class _DealReader:
    """
    Per-file column bindings for reading deal rows.
    """

    resolution: ColumnResolution
    license_columns: Mapping[str, tuple[str, ...]]
    module_counter: ModuleCounter

    def licence_counts(self, row: RawRow) -> dict[str, float]:
        counts: dict[str, float] = {}
        for name, columns in self.license_columns.items():
            counts[name] = 0.0
            for column in columns:
                raw_value = row.get(column)
                if not is_missing(raw_value):
                    counts[name] = parse_count(raw_value)
                    break
        return counts

    def module_count(self, row: RawRow) -> float:
        declared = parse_count(self.resolution.value(row, "module_count"))
        if declared > 0:
            return declared
        return float(self.module_counter.count(row))

    def deal_label(self, row: RawRow, index: int) -> str:
        return as_text(self.resolution.value(row, "deal_id"), default=f"row {index}")


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class SalesAggregationPipeline:
    """
    Builds the monthly sales series from the CRM export on disk.

    Every call re-reads the source file; nothing is cached between calls.
    """

    def __init__(
        self,
        *,
        data_dirs: DataDirectorySettings | None = None,
        formula: SalesKPIFormula | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._data_dirs = data_dirs or get_data_directory_settings()
        self._formula = formula or SalesKPIFormula()
        self._log = logger or logging.getLogger(__name__)
        self._resolver = ColumnResolver(SALES_COLUMN_ALIASES, required=REQUIRED_SALES_FIELDS)

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def process(self) -> list[SalesDataPoint]:
        """
        Return monthly sales data points sorted by month, or ``[]``.
        """

        self._log.info("Processing sales data...")
        try:
            source = self.find_source_file()
            rows = read_rows_strict(source, log=self._log)
            points = self.aggregate_rows(rows)
        except MissingSourceError as exc:
            self._log.error("No sales source available: %s", exc)
            return []
        except SourceReadError as exc:
            self._log.error("Sales source could not be read: %s", exc)
            return []
        except MissingRequiredColumnError as exc:
            self._log.error("Missing required columns in sales data: %s", exc.to_dict())
            return []

        self._log.info("Processed %d sales data points", len(points))
        return points

    def summary_for_period(self, start: date, end: date) -> SalesPeriodSummary:
        """
        Summarise new-business deals closed within ``[start, end]``.
        """

        try:
            source = self.find_source_file()
        except MissingSourceError:
            return SalesPeriodSummary()
        try:
            rows = read_rows_strict(source, log=self._log)
        except SourceReadError as exc:
            self._log.error("Sales source could not be read: %s", exc)
            return SalesPeriodSummary(file=source.name)
        if not rows:
            return SalesPeriodSummary(file=source.name)

        try:
            resolution = self._resolver.resolve_required(rows[0])
        except MissingRequiredColumnError as exc:
            self._log.error("Missing required columns in sales data: %s", exc.to_dict())
            return SalesPeriodSummary(file=source.name)

        amounts: list[float] = []
        accounts: set[str] = set()
        for row in rows:
            closed_on = parse_date(resolution.value(row, "date"), self._log)
            if closed_on is None or not start <= closed_on <= end:
                continue
            classification = classify_channel(resolution.value(row, "channel"))
            if not isinstance(classification, Classified):
                continue
            if classification.category not in NEW_BUSINESS_CATEGORIES:
                continue
            amounts.append(parse_amount(resolution.value(row, "amount")))
            account = as_text(resolution.value(row, "account_id"))
            if account:
                accounts.add(account)

        total_value = math.fsum(amounts)
        return SalesPeriodSummary(
            total_sales_value=round_half_up(total_value),
            average_order_value=round_half_up(average_order_value(total_value, len(amounts))),
            new_clients=len(accounts),
            sales_count=len(amounts),
            file=source.name,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def find_source_file(self) -> Path:
        names = list_directory(self._data_dirs.sales_dir, log=self._log)
        for name in names:
            if SALES_FILE_MARKER in name:
                self._log.info("Found sales file: %s", name)
                return self._data_dirs.sales_dir / name
        raise MissingSourceError(
            f"no file containing {SALES_FILE_MARKER!r} in {self._data_dirs.sales_dir}"
        )

    def aggregate_rows(self, rows: Sequence[RawRow]) -> list[SalesDataPoint]:
        """
        Fold deal rows into monthly data points.

        Raises MissingRequiredColumnError when the date or amount column
        cannot be resolved from the first row.
        """

        if not rows:
            self._log.error("No data found in sales file")
            return []

        resolution = self._resolver.resolve_required(rows[0])
        self._log.info(
            "Sales columns - %s",
            ", ".join(f"{name}: {resolution.get(name)}" for name in SALES_COLUMN_ALIASES),
        )
        reader = _DealReader(
            resolution=resolution,
            license_columns={
                name: find_columns(resolution.source_headers, candidates)
                for name, candidates in LICENSE_COLUMN_CANDIDATES.items()
            },
            module_counter=ModuleCounter(DEAL_MODULES, resolution.source_headers),
        )

        months: MonthlyAggregator[_SalesMonthBucket] = MonthlyAggregator(_SalesMonthBucket)
        breakdown: dict[str, int] = {category.value: 0 for category in SalesCategory}
        breakdown["unknown"] = 0

        for index, row in enumerate(rows):
            raw_date = resolution.value(row, "date")
            if is_missing(raw_date):
                self._log.warning("Missing date in sales row %d", index)
                continue
            closed_on = parse_date(raw_date, self._log)
            if closed_on is None:
                self._log.warning("Invalid date in sales row %d: %r", index, raw_date)
                continue

            bucket = months.bucket_for(closed_on)
            amount = parse_amount(resolution.value(row, "amount"))
            modules = reader.module_count(row)

            classification = classify_channel(resolution.value(row, "channel"))
            if isinstance(classification, Classified):
                bucket.categories[classification.category].add(amount, modules)
                breakdown[classification.category.value] += 1
            else:
                self._log.warning(
                    "Unknown sales channel %r (deal %s)",
                    classification.raw_value,
                    reader.deal_label(row, index),
                )
                bucket.unknown.add(amount, modules)
                breakdown["unknown"] += 1

            for name, count in reader.licence_counts(row).items():
                bucket.licenses[name].append(count)

        self._log.info(
            "Channel-based sales breakdown - %s",
            ", ".join(f"{name}: {count}" for name, count in breakdown.items()),
        )
        return self._finalise(months)

    def _finalise(self, months: MonthlyAggregator[_SalesMonthBucket]) -> list[SalesDataPoint]:
        points: list[SalesDataPoint] = []
        previous_arr = 0.0
        previous_buffer: list[float] | None = None

        for key, bucket in months.sorted_items():
            total_value = bucket.total_value
            total_count = bucket.total_count
            metrics = self._formula.calculate(
                {
                    "total_value": total_value,
                    "total_count": total_count,
                    "previous_arr": previous_arr,
                    "previous_growth_buffer": previous_buffer,
                }
            )
            previous_arr = metrics["arr"]
            previous_buffer = metrics["arr_values"]

            new_deals = [bucket.categories[category] for category in NEW_BUSINESS_CATEGORIES]
            new_deal_count = sum(deals.count for deals in new_deals)
            new_deal_modules = math.fsum(deals.module_total for deals in new_deals)

            categories = bucket.categories
            points.append(
                SalesDataPoint(
                    date=key,
                    new_direct_sales_count=categories[SalesCategory.NEW_DIRECT].count,
                    new_direct_sales_value=categories[SalesCategory.NEW_DIRECT].value,
                    new_partner_sales_count=categories[SalesCategory.NEW_PARTNER].count,
                    new_partner_sales_value=categories[SalesCategory.NEW_PARTNER].value,
                    existing_client_upsell_count=categories[SalesCategory.EXISTING_CLIENT_UPSELL].count,
                    existing_client_upsell_value=categories[SalesCategory.EXISTING_CLIENT_UPSELL].value,
                    existing_partner_client_count=categories[SalesCategory.EXISTING_PARTNER].count,
                    existing_partner_client_value=categories[SalesCategory.EXISTING_PARTNER].value,
                    self_service_count=categories[SalesCategory.SELF_SERVICE].count,
                    self_service_value=categories[SalesCategory.SELF_SERVICE].value,
                    unknown_sales_count=bucket.unknown.count,
                    unknown_sales_value=bucket.unknown.value,
                    user_licenses_count=bucket.license_total("user"),
                    leaver_licenses_count=bucket.license_total("leaver"),
                    timesheet_licenses_count=bucket.license_total("timesheet"),
                    directory_licenses_count=bucket.license_total("directory"),
                    workflow_licenses_count=bucket.license_total("workflow"),
                    other_licenses_count=bucket.license_total("other"),
                    total_sales_count=total_count,
                    total_sales_value=total_value,
                    average_order_value=metrics["average_order_value"],
                    average_modules_per_client=(
                        new_deal_modules / new_deal_count if new_deal_count else 0.0
                    ),
                    avg_revenue_per_account=metrics["avg_revenue_per_account"],
                    arr_growth=metrics["arr_growth"],
                    arr_growth_smoothed=metrics["arr_growth_smoothed"],
                    arr_values=metrics["arr_values"],
                )
            )
        return points


def process_sales_data(
    data_dirs: DataDirectorySettings | None = None,
    logger: logging.Logger | None = None,
) -> list[SalesDataPoint]:
    """
    Convenience wrapper: run the sales pipeline once.
    """

    return SalesAggregationPipeline(data_dirs=data_dirs, logger=logger).process()


def get_sales_summary_for_period(
    start: date,
    end: date,
    data_dirs: DataDirectorySettings | None = None,
    logger: logging.Logger | None = None,
) -> SalesPeriodSummary:
    return SalesAggregationPipeline(data_dirs=data_dirs, logger=logger).summary_for_period(start, end)
