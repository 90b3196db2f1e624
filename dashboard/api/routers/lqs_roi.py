"""
LQS Analytics — ROI Router
============================
Lead-source ROI and producer drill-down endpoints.

Endpoints:
  GET /api/lqs/roi                - Agency ROI report (pipeline or activity)
  GET /api/lqs/producers/detail   - One producer's households and trends
"""
from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from models.lqs_models import ProducerViewMode
from scripts.lib.errors import AnalyticsError, LqsError
from scripts.lib.logger import setup_logger
from scripts.lqs.date_window import date_range_from_preset, make_date_range
from scripts.lqs.producer_detail import load_producer_detail
from scripts.lqs.roi_analytics import load_roi_analytics

logger = setup_logger("lqs_router")

router = APIRouter(prefix="/api/lqs", tags=["lqs"])

# team_member_id value that selects quotes/sales with no producer
UNASSIGNED_MEMBER = "unassigned"


def _resolve_window(start: Optional[str], end: Optional[str], preset: Optional[str]):
    if preset and (start or end):
        raise HTTPException(status_code=400, detail="Use either preset or start/end, not both")
    try:
        if preset:
            return date_range_from_preset(preset)
        return make_date_range(start, end)
    except AnalyticsError as e:
        raise HTTPException(status_code=400, detail=e.message)


@router.get("/roi")
async def roi_analytics(
    agency_id: str = Query(..., description="Agency to report on"),
    start: Optional[str] = Query(None, description="Window start (YYYY-MM-DD)"),
    end: Optional[str] = Query(None, description="Window end (YYYY-MM-DD)"),
    preset: Optional[str] = Query(None, description="last30, last60, last90, quarter, ytd, all"),
):
    """ROI per lead source. No window gives the pipeline snapshot."""
    date_range = _resolve_window(start, end, preset)
    try:
        report = await asyncio.to_thread(load_roi_analytics, agency_id, date_range)
        return report.model_dump(mode="json")
    except LqsError as e:
        logger.error("ROI analytics failed for %s: %s", agency_id, e)
        raise HTTPException(status_code=500, detail="Failed to load analytics")


@router.get("/producers/detail")
async def producer_detail(
    agency_id: str = Query(..., description="Agency the producer belongs to"),
    team_member_id: str = Query(..., description="Team member id, or 'unassigned'"),
    view_mode: ProducerViewMode = Query(ProducerViewMode.QUOTED_BY, description="quotedBy or soldBy"),
    start: Optional[str] = Query(None, description="Window start (YYYY-MM-DD)"),
    end: Optional[str] = Query(None, description="Window end (YYYY-MM-DD)"),
):
    """Households quoted or sold by one producer, with breakdowns."""
    date_range = _resolve_window(start, end, None)
    member_id = None if team_member_id == UNASSIGNED_MEMBER else team_member_id
    try:
        detail = await asyncio.to_thread(
            load_producer_detail, agency_id, member_id, view_mode, date_range,
        )
        return detail.model_dump(mode="json")
    except LqsError as e:
        logger.error("Producer detail failed for %s: %s", team_member_id, e)
        raise HTTPException(status_code=500, detail="Failed to load producer detail")
