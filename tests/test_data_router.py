"""
tests/test_data_router.py

HTTP-level tests for the dashboard data endpoints using FastAPI's
TestClient against a temporary export directory.
"""

from __future__ import annotations

from datetime import date

import pytest
from fastapi.testclient import TestClient

from app.api.routers.data_router import get_dashboard_service
from app.config import CSATSettings, DataDirectorySettings
from app.main import create_app
from app.services.dashboard_service import DashboardDataService


@pytest.fixture()
def client(data_dirs: DataDirectorySettings, write_csv) -> TestClient:
    write_csv(
        data_dirs.sales_dir / "salesforce_export.csv",
        [
            {"CloseDate": "2024-01-10", "Channel__c": "Direct Sale", "Amount": 1000, "AccountId": "A"},
            {"CloseDate": "2024-02-10", "Channel__c": "Customer Sale", "Amount": 400, "AccountId": "B"},
        ],
    )
    write_csv(
        data_dirs.sales_dir / "2024-01 Customer Snapshot.csv",
        [{"Client": "A", "Directory Licenses": 3}],
    )

    application = create_app()
    application.dependency_overrides[get_dashboard_service] = lambda: DashboardDataService(
        data_dirs=data_dirs,
        csat_settings=CSATSettings(random_seed=3),
        today=date(2024, 2, 15),
    )
    return TestClient(application)


class TestDataEndpoint:
    def test_sales_array(self, client: TestClient) -> None:
        response = client.get("/data", params={"type": "sales"})

        assert response.status_code == 200
        body = response.json()
        assert [point["date"] for point in body] == ["2024-01", "2024-02"]
        assert body[0]["newDirectSalesValue"] == 1000
        assert body[1]["existingClientUpsellCount"] == 1

    def test_all_payload(self, client: TestClient) -> None:
        response = client.get("/data", params={"type": "all"})

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"productData", "salesData", "csatData", "snapshotData"}
        assert body["productData"] == []
        assert len(body["salesData"]) == 2
        assert len(body["csatData"]) == 3
        assert all(point["synthetic"]["tickets"] for point in body["csatData"])
        assert body["snapshotData"] == [
            {"date": "2024-01-01", "averageModulesPerClient": 1.0, "totalClients": 1}
        ]

    def test_default_type_is_all(self, client: TestClient) -> None:
        assert "salesData" in client.get("/data").json()

    def test_unknown_type_is_bad_request(self, client: TestClient) -> None:
        response = client.get("/data", params={"type": "marketing"})
        assert response.status_code == 400
        assert "marketing" in response.json()["detail"]


class TestSummaryEndpoint:
    def test_period_summary(self, client: TestClient) -> None:
        response = client.get("/data/summary", params={"start": "2024-01-01", "end": "2024-01-31"})

        assert response.status_code == 200
        body = response.json()
        assert body["sales"]["totalSalesValue"] == 1000
        assert body["sales"]["newClients"] == 1
        assert body["snapshot"]["file"] == "2024-01 Customer Snapshot.csv"

    def test_inverted_window_is_bad_request(self, client: TestClient) -> None:
        response = client.get("/data/summary", params={"start": "2024-02-01", "end": "2024-01-01"})
        assert response.status_code == 400

    def test_malformed_date_is_rejected(self, client: TestClient) -> None:
        response = client.get("/data/summary", params={"start": "yesterday", "end": "2024-01-01"})
        assert response.status_code == 422


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
