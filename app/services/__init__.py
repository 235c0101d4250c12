"""
app/services package marker.
"""

from app.services.csat_pipeline import load_csat_series, process_csat_data
from app.services.customer_snapshot_pipeline import (
    get_snapshot_summary_for_period,
    process_customer_snapshots,
)
from app.services.dashboard_service import DashboardDataService, DatasetKind
from app.services.product_pipeline import process_product_data
from app.services.sales_pipeline import get_sales_summary_for_period, process_sales_data

__all__ = [
    "DashboardDataService",
    "DatasetKind",
    "get_sales_summary_for_period",
    "get_snapshot_summary_for_period",
    "load_csat_series",
    "process_csat_data",
    "process_customer_snapshots",
    "process_product_data",
    "process_sales_data",
]
