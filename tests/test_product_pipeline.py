"""
tests/test_product_pipeline.py

Pytest tests for the product-usage pipeline.
"""

from __future__ import annotations

from datetime import date

from app.config import DataDirectorySettings
from app.services.product_pipeline import month_from_filename, monthly_files, process_product_data


class TestFileSelection:
    def test_month_from_filename(self) -> None:
        assert month_from_filename("Web App Stats - 25-03.xlsx") == date(2025, 3, 1)
        assert month_from_filename("Web App Stats - 25-13.csv") is None
        assert month_from_filename("Web App Stats.xlsx") is None

    def test_xlsx_preferred_for_same_month(self) -> None:
        names = [
            "Web App Stats - 25-03.xlsx",
            "Web App Stats - 25-03.csv",
            "web app stats - 25-02.csv",
            "Web App Stats.xlsx",
            "Web App Stats - 25-04.txt",
            "Mobile App Stats - 25-03.xlsx",
        ]
        assert monthly_files(names, "Web App Stats") == [
            "web app stats - 25-02.csv",
            "Web App Stats - 25-03.xlsx",
        ]


class TestProcessProductData:
    def test_metrics_summed_per_month(self, data_dirs: DataDirectorySettings, write_csv, write_xlsx) -> None:
        customer = data_dirs.customer_dir
        write_csv(
            customer / "Web App Stats - 25-03.csv",
            [{"Login Success (Total Events)": 999}],
        )
        write_xlsx(
            customer / "Web App Stats - 25-03.xlsx",
            [
                {
                    "Login Success (Total Events)": 10,
                    "Created Absence (Total Events)": 2,
                    "Timesheet Submitted (Total Events)": 1,
                    "User impersonated (Total Events)": 3,
                },
                {
                    "Login Success (Total Events)": 5,
                    "Created Absence (Total Events)": None,
                    "Timesheet Submitted (Total Events)": 1,
                    "User impersonated (Total Events)": 0,
                },
            ],
        )
        write_xlsx(customer / "Mobile App Stats - 25-03.xlsx", [{"Mobile Logins": 7}])
        write_csv(customer / "Timesheet Stats - 25-04.csv", [{"Timesheet Submitted": 4, "Mobile Timesheet": 6}])

        points = process_product_data(data_dirs=data_dirs)

        assert [point.date for point in points] == ["2025-03-01", "2025-04-01"]
        march, april = points
        assert march.display_date == "Mar 2025"
        assert march.web_logins == 15
        assert march.web_absences_booked == 2
        assert march.web_timesheets_submitted == 2
        assert march.workflows_created == 3
        assert march.mobile_logins == 7
        assert april.web_timesheets_submitted == 4
        assert april.mobile_timesheets_submitted == 6
        assert april.web_logins == 0

    def test_no_files(self, data_dirs: DataDirectorySettings) -> None:
        assert process_product_data(data_dirs=data_dirs) == []

    def test_camel_case_payload(self, data_dirs: DataDirectorySettings, write_csv) -> None:
        write_csv(data_dirs.customer_dir / "Mobile App Stats - 24-12.csv", [{"Mobile Logins": 1}])

        (point,) = process_product_data(data_dirs=data_dirs)
        payload = point.model_dump(by_alias=True)

        assert payload["date"] == "2024-12-01"
        assert payload["displayDate"] == "Dec 2024"
        assert payload["mobileLogins"] == 1
        assert payload["synthetic"] == {"data": False}

    def test_corrupt_file_is_skipped(self, data_dirs: DataDirectorySettings) -> None:
        (data_dirs.customer_dir / "Web App Stats - 25-03.xlsx").write_bytes(b"garbage")
        assert process_product_data(data_dirs=data_dirs) == []
