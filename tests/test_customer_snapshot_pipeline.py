"""
tests/test_customer_snapshot_pipeline.py

Pytest tests for the customer-snapshot pipeline.
"""

from __future__ import annotations

from datetime import date

import pytest

from app.config import DataDirectorySettings
from app.services.customer_snapshot_pipeline import (
    get_snapshot_summary_for_period,
    process_customer_snapshots,
    snapshot_date_from_filename,
    summarise_roster,
)

MAY_ROSTER = [
    {
        "Client": "Acme",
        "User Licenses": 10,
        "Leavers Licenses": 0,
        "Directory Licenses": 5,
        "EAP Licenses": "0",
        "ELMO Core HR License": "1 seat",
    },
    {
        "Client": "Globex",
        "User Licenses": 0,
        "Leavers Licenses": 2,
        "Directory Licenses": 0,
        "EAP Licenses": "n/a",
        "ELMO Core HR License": "0",
    },
    {
        "Client": "Initech",
        "User Licenses": 0,
        "Leavers Licenses": 0,
        "Directory Licenses": 0,
        "EAP Licenses": "0",
        "ELMO Core HR License": "0",
    },
]


@pytest.fixture()
def snapshots(data_dirs: DataDirectorySettings, write_csv) -> DataDirectorySettings:
    write_csv(data_dirs.sales_dir / "2025-05 Customer Snapshot.csv", MAY_ROSTER)
    write_csv(
        data_dirs.sales_dir / "2025-04 Customer Snapshot.csv",
        [{"Client": "Acme", "User Licenses": 1}],
    )
    write_csv(data_dirs.sales_dir / "salesforce.csv", [{"CloseDate": "2025-05-01", "Amount": 1}])
    return data_dirs


class TestFilenames:
    def test_date_comes_from_filename(self) -> None:
        assert snapshot_date_from_filename("2025-05 Customer Snapshot.csv") == date(2025, 5, 1)

    @pytest.mark.parametrize(
        "name",
        ["2025-13 Customer Snapshot.csv", "Customer Snapshot.csv", "2025-05 Customer Snapshot.xlsx"],
    )
    def test_unmatched_names(self, name: str) -> None:
        assert snapshot_date_from_filename(name) is None


class TestProcessCustomerSnapshots:
    def test_one_point_per_file_sorted(self, snapshots: DataDirectorySettings) -> None:
        points = process_customer_snapshots(data_dirs=snapshots)

        assert [point.date for point in points] == ["2025-04-01", "2025-05-01"]
        april, may = points
        assert april.total_clients == 1
        assert april.average_modules_per_client == 1.0
        assert may.total_clients == 3
        assert may.average_modules_per_client == 1.33

    def test_camel_case_payload(self, snapshots: DataDirectorySettings) -> None:
        payload = process_customer_snapshots(data_dirs=snapshots)[0].model_dump(by_alias=True)
        assert payload == {"date": "2025-04-01", "averageModulesPerClient": 1.0, "totalClients": 1}

    def test_no_snapshot_files(self, data_dirs: DataDirectorySettings) -> None:
        assert process_customer_snapshots(data_dirs=data_dirs) == []

    def test_unreadable_file_does_not_stop_others(self, snapshots: DataDirectorySettings) -> None:
        (snapshots.sales_dir / "2025-06 Customer Snapshot.csv").write_bytes(b"\xff\xfe\x00bad")
        points = process_customer_snapshots(data_dirs=snapshots)
        assert [point.date for point in points][:2] == ["2025-04-01", "2025-05-01"]

    def test_empty_roster_averages_to_zero(self) -> None:
        stats = summarise_roster([])
        assert stats.average_modules_per_client == 0.0
        assert stats.total_clients == 0

    def test_average_is_rounded_to_two_decimals(self) -> None:
        rows = [{"Directory Licenses": 1}, {"Directory Licenses": 1}, {"Directory Licenses": 0}]
        assert summarise_roster(rows).average_modules_per_client == 0.67

    def test_half_cent_average_rounds_up(self) -> None:
        rows = [{"Directory Licenses": 1, "EAP Licenses": 0} for _ in range(7)]
        rows.append({"Directory Licenses": 1, "EAP Licenses": 1})

        stats = summarise_roster(rows)

        assert stats.total_clients == 8
        assert stats.average_modules_per_client == 1.13


class TestSnapshotSummaryForPeriod:
    def test_latest_file_in_window(self, snapshots: DataDirectorySettings) -> None:
        summary = get_snapshot_summary_for_period(date(2025, 1, 1), date(2025, 12, 31), data_dirs=snapshots)
        assert summary.file == "2025-05 Customer Snapshot.csv"
        assert summary.total_clients == 3
        assert summary.average_modules_per_client == 1.33

    def test_window_bounds_are_inclusive(self, snapshots: DataDirectorySettings) -> None:
        summary = get_snapshot_summary_for_period(date(2025, 4, 1), date(2025, 4, 1), data_dirs=snapshots)
        assert summary.file == "2025-04 Customer Snapshot.csv"

    def test_nothing_in_window(self, snapshots: DataDirectorySettings) -> None:
        summary = get_snapshot_summary_for_period(date(2024, 1, 1), date(2024, 12, 31), data_dirs=snapshots)
        assert summary.file is None
        assert summary.total_clients == 0
        assert summary.average_modules_per_client == 0.0
