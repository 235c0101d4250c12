"""
app/services/dashboard_service.py

Entry point the HTTP layer calls to build dashboard datasets.

Every call re-reads the export directories and runs the relevant pipelines
from scratch.  When the combined payload is requested, each dataset is
built independently so one failing pipeline leaves the others intact.
"""

from __future__ import annotations

import logging
from datetime import date
from enum import Enum
from typing import Callable, Sequence, Union

from app.config import (
    CSATSettings,
    DataDirectorySettings,
    get_csat_settings,
    get_data_directory_settings,
)
from app.errors import UnknownDatasetError
from app.schemas.dashboard import (
    CSATDataPoint,
    CustomerSnapshotDataPoint,
    DashboardPayload,
    PeriodSummaryResponse,
    ProductDataPoint,
    SalesDataPoint,
)
from app.services.csat_pipeline import CSATAggregationPipeline
from app.services.customer_snapshot_pipeline import CustomerSnapshotPipeline
from app.services.product_pipeline import ProductUsagePipeline
from app.services.sales_pipeline import SalesAggregationPipeline


class DatasetKind(str, Enum):
    PRODUCT = "product"
    SALES = "sales"
    CSAT = "csat"
    SNAPSHOTS = "snapshots"
    ALL = "all"

    @classmethod
    def parse(cls, raw: str) -> "DatasetKind":
        normalized = (raw or "").strip().lower()
        for kind in cls:
            if kind.value == normalized:
                return kind
        supported = ", ".join(kind.value for kind in cls)
        raise UnknownDatasetError(f"Unsupported data type {raw!r}. Supported: {supported}.")


DatasetPoints = Union[
    list[ProductDataPoint],
    list[SalesDataPoint],
    list[CSATDataPoint],
    list[CustomerSnapshotDataPoint],
]


class DashboardDataService:
    """
    Runs the aggregation pipelines on demand.
    """

    def __init__(
        self,
        *,
        data_dirs: DataDirectorySettings | None = None,
        csat_settings: CSATSettings | None = None,
        today: date | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._data_dirs = data_dirs or get_data_directory_settings()
        self._csat_settings = csat_settings or get_csat_settings()
        self._today = today
        self._log = logger or logging.getLogger(__name__)

    def load(self, kind: DatasetKind | str) -> DatasetPoints | DashboardPayload:
        """
        Build one dataset, or all four when *kind* is ``all``.

        Raises UnknownDatasetError for an unsupported kind.
        """

        if not isinstance(kind, DatasetKind):
            kind = DatasetKind.parse(kind)

        if kind is DatasetKind.ALL:
            return DashboardPayload(
                product_data=self._isolated(DatasetKind.PRODUCT, self.product_data),
                sales_data=self._isolated(DatasetKind.SALES, self.sales_data),
                csat_data=self._isolated(DatasetKind.CSAT, self.csat_data),
                snapshot_data=self._isolated(DatasetKind.SNAPSHOTS, self.snapshot_data),
            )

        loaders: dict[DatasetKind, Callable[[], Sequence]] = {
            DatasetKind.PRODUCT: self.product_data,
            DatasetKind.SALES: self.sales_data,
            DatasetKind.CSAT: self.csat_data,
            DatasetKind.SNAPSHOTS: self.snapshot_data,
        }
        return list(loaders[kind]())

    def product_data(self) -> list[ProductDataPoint]:
        return ProductUsagePipeline(data_dirs=self._data_dirs, logger=self._log).process()

    def sales_data(self) -> list[SalesDataPoint]:
        return SalesAggregationPipeline(data_dirs=self._data_dirs, logger=self._log).process()

    def csat_data(self) -> list[CSATDataPoint]:
        series = CSATAggregationPipeline(
            data_dirs=self._data_dirs,
            settings=self._csat_settings,
            today=self._today,
            logger=self._log,
        ).process()
        if series.is_synthetic:
            self._log.warning("Serving synthetic CSAT data: %s", series.reason)
        return series.points

    def snapshot_data(self) -> list[CustomerSnapshotDataPoint]:
        return CustomerSnapshotPipeline(data_dirs=self._data_dirs, logger=self._log).process()

    def period_summary(self, start: date, end: date) -> PeriodSummaryResponse:
        """
        Sales and snapshot headline figures for the inclusive window.
        """

        if start > end:
            raise ValueError(f"start {start.isoformat()} is after end {end.isoformat()}")
        return PeriodSummaryResponse(
            sales=SalesAggregationPipeline(data_dirs=self._data_dirs, logger=self._log)
            .summary_for_period(start, end),
            snapshot=CustomerSnapshotPipeline(data_dirs=self._data_dirs, logger=self._log)
            .summary_for_period(start, end),
        )

    def _isolated(self, kind: DatasetKind, loader: Callable[[], list]) -> list:
        try:
            return loader()
        except Exception as exc:  # noqa: BLE001
            self._log.exception("Failed to build %s data: %s", kind.value, exc)
            return []
