"""
app/schemas/dashboard.py

Output contracts for the monthly data points consumed by the dashboard UI.

Field names are snake_case in Python and camelCase on the wire; chart
components key off the camelCase names, so serialise with
``model_dump(by_alias=True)`` (FastAPI does this by default).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DashboardModel(BaseModel):
    """Frozen base with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )


# ---------------------------------------------------------------------------
# Synthetic disclosure flags
# ---------------------------------------------------------------------------


class DataSyntheticFlags(DashboardModel):
    data: bool = False


class CSATSyntheticFlags(DashboardModel):
    """NPS and churn have no source column and are always synthetic."""

    nps: bool = True
    churn: bool = True
    tickets: bool = False


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------


class SalesDataPoint(DashboardModel):
    """
    One month of channel-categorised sales metrics.

    ``total_sales_count``/``total_sales_value`` include deals whose channel
    was not recognised; those deals appear only in the ``unknown_*`` fields,
    never in a named category.
    """

    date: str
    new_direct_sales_count: int = 0
    new_direct_sales_value: float = 0.0
    new_partner_sales_count: int = 0
    new_partner_sales_value: float = 0.0
    existing_client_upsell_count: int = 0
    existing_client_upsell_value: float = 0.0
    existing_partner_client_count: int = 0
    existing_partner_client_value: float = 0.0
    self_service_count: int = 0
    self_service_value: float = 0.0
    unknown_sales_count: int = 0
    unknown_sales_value: float = 0.0

    user_licenses_count: float = 0.0
    leaver_licenses_count: float = 0.0
    timesheet_licenses_count: float = 0.0
    directory_licenses_count: float = 0.0
    workflow_licenses_count: float = 0.0
    other_licenses_count: float = 0.0

    total_sales_count: int = 0
    total_sales_value: float = 0.0
    average_order_value: float = 0.0
    average_modules_per_client: float = 0.0
    avg_revenue_per_account: float = 0.0
    arr_growth: float = 0.0
    arr_growth_smoothed: float = 0.0
    arr_values: list[float] = Field(default_factory=lambda: [0.0, 0.0, 0.0])
    synthetic: DataSyntheticFlags = Field(default_factory=DataSyntheticFlags)


class SalesPeriodSummary(DashboardModel):
    total_sales_value: float = 0.0
    average_order_value: float = 0.0
    new_clients: int = 0
    sales_count: int = 0
    file: str | None = None


# ---------------------------------------------------------------------------
# Support / CSAT
# ---------------------------------------------------------------------------


class SeverityHistogram(DashboardModel):
    low: int = 0
    medium: int = 0
    high: int = 0
    urgent: int = 0

    @property
    def total(self) -> int:
        return self.low + self.medium + self.high + self.urgent


class CSATDataPoint(DashboardModel):
    """
    One month of support ticket metrics plus placeholder NPS/churn.
    """

    date: str
    nps_score: float
    churn_percentage: float
    total_tickets: int
    support_tickets_by_severity: SeverityHistogram
    support_topics: dict[str, int] = Field(default_factory=dict)
    ticket_types: dict[str, int] = Field(default_factory=dict)
    tickets_by_group: dict[str, int] = Field(default_factory=dict)
    synthetic: CSATSyntheticFlags = Field(default_factory=CSATSyntheticFlags)


# ---------------------------------------------------------------------------
# Customer snapshots
# ---------------------------------------------------------------------------


class CustomerSnapshotDataPoint(DashboardModel):
    date: str
    average_modules_per_client: float
    total_clients: int


class SnapshotPeriodSummary(DashboardModel):
    average_modules_per_client: float = 0.0
    total_clients: int = 0
    file: str | None = None


# ---------------------------------------------------------------------------
# Product usage
# ---------------------------------------------------------------------------


class ProductDataPoint(DashboardModel):
    date: str
    display_date: str
    web_logins: float = 0.0
    mobile_logins: float = 0.0
    web_absences_booked: float = 0.0
    mobile_absences_booked: float = 0.0
    web_timesheets_submitted: float = 0.0
    mobile_timesheets_submitted: float = 0.0
    workflows_created: float = 0.0
    synthetic: DataSyntheticFlags = Field(default_factory=DataSyntheticFlags)


# ---------------------------------------------------------------------------
# Combined payloads
# ---------------------------------------------------------------------------


class DashboardPayload(DashboardModel):
    product_data: list[ProductDataPoint] = Field(default_factory=list)
    sales_data: list[SalesDataPoint] = Field(default_factory=list)
    csat_data: list[CSATDataPoint] = Field(default_factory=list)
    snapshot_data: list[CustomerSnapshotDataPoint] = Field(default_factory=list)


class PeriodSummaryResponse(DashboardModel):
    sales: SalesPeriodSummary
    snapshot: SnapshotPeriodSummary
