"""
app/schemas package marker.
"""

from app.schemas.dashboard import (
    CSATDataPoint,
    CustomerSnapshotDataPoint,
    DashboardPayload,
    PeriodSummaryResponse,
    ProductDataPoint,
    SalesDataPoint,
    SalesPeriodSummary,
    SnapshotPeriodSummary,
)

__all__ = [
    "CSATDataPoint",
    "CustomerSnapshotDataPoint",
    "DashboardPayload",
    "PeriodSummaryResponse",
    "ProductDataPoint",
    "SalesDataPoint",
    "SalesPeriodSummary",
    "SnapshotPeriodSummary",
]
