"""
app/api/routers/data_router.py

Dashboard data endpoints.

    GET /data?type=product|sales|csat|snapshots|all
    GET /data/summary?start=YYYY-MM-DD&end=YYYY-MM-DD

Responses use camelCase field names.  Data is rebuilt from the export
directories on every request.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.errors import UnknownDatasetError
from app.schemas.dashboard import DashboardPayload, PeriodSummaryResponse
from app.services.dashboard_service import DashboardDataService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["data"])


def get_dashboard_service() -> DashboardDataService:
    return DashboardDataService()


@router.get("/data", status_code=status.HTTP_200_OK)
def get_data(
    dataset: str = Query(default="all", alias="type"),
    service: DashboardDataService = Depends(get_dashboard_service),
) -> Any:
    """
    Return one dataset as a JSON array, or all four as one object.

    Raises HTTP 400 for an unsupported ``type``.
    """
    try:
        result = service.load(dataset)
    except UnknownDatasetError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    if isinstance(result, DashboardPayload):
        return result.model_dump(by_alias=True)
    logger.info("Served %d %s data point(s)", len(result), dataset)
    return [point.model_dump(by_alias=True) for point in result]


@router.get(
    "/data/summary",
    response_model=PeriodSummaryResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
)
def get_period_summary(
    start: date = Query(...),
    end: date = Query(...),
    service: DashboardDataService = Depends(get_dashboard_service),
) -> PeriodSummaryResponse:
    """
    Sales and snapshot summary for the inclusive ``[start, end]`` window.

    Raises HTTP 400 when ``start`` is after ``end``.
    """
    try:
        return service.period_summary(start, end)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
