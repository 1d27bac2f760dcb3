"""
Measurement endpoints (glucose, blood pressure, heart rate, ...)
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy import func, select

from healthdash.database.connection import require_session
from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import measurements
from healthdash.models.schemas import MEASUREMENT_TYPES, MeasurementBatchPayload, MeasurementPayload
from healthdash.services.auth import get_current_user
from healthdash.services.measurement_service import (
    DASHBOARD_TYPES,
    MeasurementError,
    MeasurementService,
    compute_stats,
    serialize_measurement,
    validate_measurement,
)
from healthdash.utils.responses import server_error
from healthdash.utils.timeutils import parse_datetime, utcnow
from healthdash.utils.validators import pagination_meta, validate_choice, validate_id, validate_pagination

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/measurements")


@router.post("", status_code=201)
async def create_measurement(payload: MeasurementPayload, user: dict = Depends(get_current_user)):
    """Record one measurement"""
    try:
        values = validate_measurement(payload.model_dump())
    except MeasurementError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                saved = await MeasurementService.create(session, user["id"], values)
        logger.info("Measurement saved: %s for user %s", values["type"], user["id"])
        return {"success": True, "message": "Measurement saved successfully", "data": saved}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("create_measurement", e, "Error saving measurement")


@router.post("/batch")
async def create_measurements_batch(payload: MeasurementBatchPayload, user: dict = Depends(get_current_user)):
    """Record several measurements; invalid entries are reported by index"""
    if not isinstance(payload.measurements, list):
        raise HTTPException(status_code=400, detail="Measurements must be an array")

    valid = []
    errors = []
    for index, item in enumerate(payload.measurements):
        if not isinstance(item, dict):
            errors.append({"index": index, "error": "Measurement must be an object"})
            continue
        try:
            valid.append(validate_measurement(item))
        except MeasurementError as e:
            errors.append({"index": index, "error": str(e)})

    session_maker = require_session()
    try:
        saved = []
        if valid:
            async with session_maker() as session:
                async with session.begin():
                    for values in valid:
                        saved.append(await MeasurementService.create(session, user["id"], values))

        content = {
            "success": bool(saved),
            "message": f"Saved {len(saved)} of {len(payload.measurements)} measurements",
            "data": saved,
            "errors": errors,
        }
        return JSONResponse(status_code=201 if saved else 400, content=content)
    except HTTPException:
        raise
    except Exception as e:
        return server_error("create_measurements_batch", e, "Error saving measurements")


@router.get("")
async def list_measurements(
    type: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    limit: int = Query(100),
    page: int = Query(1),
    user: dict = Depends(get_current_user),
):
    """Measurements newest first, optionally filtered by type and date range"""
    limit, page, offset = validate_pagination(limit, page, max_limit=500)
    conditions = [measurements.c.user_id == user["id"]]
    if type:
        conditions.append(measurements.c.type == validate_choice(type, MEASUREMENT_TYPES, "measurement type"))
    try:
        start = parse_datetime(startDate)
        end = parse_datetime(endDate)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format")
    if start:
        conditions.append(measurements.c.timestamp >= start)
    if end:
        conditions.append(measurements.c.timestamp <= end)

    session_maker = require_session()
    try:
        async with session_maker() as session:
            result = await execute_with_retry(
                session,
                select(measurements)
                .where(*conditions)
                .order_by(measurements.c.timestamp.desc())
                .limit(limit)
                .offset(offset)
            )
            rows = [serialize_measurement(row) for row in result.mappings()]
            total = (await execute_with_retry(
                session, select(func.count()).select_from(measurements).where(*conditions)
            )).scalar_one()

        return {"success": True, "data": rows, "pagination": pagination_meta(total, page, limit)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("list_measurements", e, "Error fetching measurements")


@router.get("/latest")
async def latest_measurements(types: Optional[str] = Query(None), user: dict = Depends(get_current_user)):
    """Newest reading per type (comma-separated types, default dashboard set)"""
    wanted = [t.strip() for t in types.split(",") if t.strip()] if types else DASHBOARD_TYPES
    for t in wanted:
        validate_choice(t, MEASUREMENT_TYPES, "measurement type")

    session_maker = require_session()
    try:
        async with session_maker() as session:
            latest = await MeasurementService.latest_by_type(session, user["id"], wanted)
        return {"success": True, "data": latest}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("latest_measurements", e, "Error fetching latest measurements")


@router.get("/stats")
async def measurement_stats(
    type: Optional[str] = Query(None),
    days: int = Query(30, ge=1, le=3650),
    user: dict = Depends(get_current_user),
):
    """Count/average/min/max/trend for one type over the last N days"""
    if not type:
        raise HTTPException(status_code=400, detail="Measurement type is required")
    validate_choice(type, MEASUREMENT_TYPES, "measurement type")

    since = utcnow() - timedelta(days=days)
    session_maker = require_session()
    try:
        async with session_maker() as session:
            result = await execute_with_retry(
                session,
                select(measurements)
                .where(
                    measurements.c.user_id == user["id"],
                    measurements.c.type == type,
                    measurements.c.timestamp >= since,
                )
                .order_by(measurements.c.timestamp.asc())
            )
            rows = list(result.mappings())
        return {"success": True, "data": compute_stats(type, rows, days)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("measurement_stats", e, "Error calculating measurement statistics")


@router.delete("/{measurement_id}")
async def delete_measurement(measurement_id: str, user: dict = Depends(get_current_user)):
    measurement_id = validate_id(measurement_id, "Measurement ID")
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                deleted = await MeasurementService.delete(session, user["id"], measurement_id)
        if not deleted:
            raise HTTPException(status_code=404, detail="Measurement not found")
        return {"success": True, "message": "Measurement deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("delete_measurement", e, "Error deleting measurement")
