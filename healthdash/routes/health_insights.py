"""
Health insight endpoints - trends and summaries over the caller's measurements
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from healthdash.database.connection import require_session
from healthdash.models.schemas import MEASUREMENT_TYPES
from healthdash.services.auth import get_current_user
from healthdash.services.insight_service import (
    ANALYSIS_DAYS,
    VITAL_TYPES,
    WELLNESS_TYPES,
    InsightService,
    daily_trends,
    generate_insights,
    vitals_summary,
    wellness_metrics,
)
from healthdash.utils.responses import server_error
from healthdash.utils.timeutils import utcnow
from healthdash.utils.validators import validate_choice

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/health-insights")


@router.get("")
async def health_insights(user: dict = Depends(get_current_user)):
    """Observations from the last 30 days of readings"""
    since = utcnow() - timedelta(days=ANALYSIS_DAYS)
    session_maker = require_session()
    try:
        async with session_maker() as session:
            rows = await InsightService.readings(session, user["id"], since)
        return {
            "success": True,
            "data": {
                "insights": generate_insights(rows),
                "dataPoints": len(rows),
                "analysisPeriod": f"{ANALYSIS_DAYS} days",
            },
        }
    except HTTPException:
        raise
    except Exception as e:
        return server_error("health_insights", e, "Failed to generate health insights")


@router.get("/trends")
async def trends(
    metric: Optional[str] = Query(None),
    days: int = Query(30, ge=1, le=365),
    user: dict = Depends(get_current_user),
):
    """Per-day avg/min/max/count for each metric over the last N days"""
    types = None
    if metric:
        types = [validate_choice(metric, MEASUREMENT_TYPES, "metric")]

    since = utcnow() - timedelta(days=days)
    session_maker = require_session()
    try:
        async with session_maker() as session:
            rows = await InsightService.readings(session, user["id"], since, types)
        return {"success": True, "data": daily_trends(rows)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("health_trends", e, "Failed to fetch trends")


@router.get("/vitals-summary")
async def vitals(user: dict = Depends(get_current_user)):
    session_maker = require_session()
    try:
        async with session_maker() as session:
            rows = await InsightService.readings(session, user["id"], types=VITAL_TYPES, newest_first=True)
        return {"success": True, "data": vitals_summary(rows)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("vitals_summary", e, "Failed to fetch vitals summary")


@router.get("/wellness")
async def wellness(days: int = Query(30, ge=1, le=365), user: dict = Depends(get_current_user)):
    since = utcnow() - timedelta(days=days)
    session_maker = require_session()
    try:
        async with session_maker() as session:
            rows = await InsightService.readings(session, user["id"], since, WELLNESS_TYPES)
        return {"success": True, "data": wellness_metrics(rows)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("wellness_metrics", e, "Failed to fetch wellness metrics")
