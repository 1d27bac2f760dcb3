"""
Measurement service - health readings behind the glucose/vitals widgets
"""
import math
from typing import Iterable, List, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import measurements, new_id
from healthdash.models.schemas import MEASUREMENT_SOURCES, MEASUREMENT_TYPES
from healthdash.utils.timeutils import isoformat, parse_datetime, utcnow

DASHBOARD_TYPES = ["glucose", "blood_pressure", "heart_rate", "weight", "sleep", "steps", "water"]

# type -> (min, max) for plain numeric readings
VALUE_RANGES = {
    "glucose": (20, 600),
    "weight": (20, 1000),
    "heart_rate": (30, 300),
}


class MeasurementError(ValueError):
    """A measurement failed validation"""


def _as_number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def reading_value(m_type: str, value, metadata: Optional[dict]) -> Optional[float]:
    """The number a reading contributes to statistics; systolic for blood pressure"""
    if m_type == "blood_pressure":
        return _as_number((metadata or {}).get("systolic"))
    return _as_number(value)


def validate_measurement(data: dict) -> dict:
    """
    Validate and normalise one measurement dict

    Returns:
        Column values ready to insert (without id/user_id)

    Raises:
        MeasurementError: with a client-facing message
    """
    m_type = data.get("type")
    if m_type not in MEASUREMENT_TYPES:
        raise MeasurementError("Invalid measurement type")

    value = data.get("value")
    if value is None or value == "":
        raise MeasurementError("Measurement value is required")

    source = data.get("source") or "manual"
    if source not in MEASUREMENT_SOURCES:
        raise MeasurementError("Invalid measurement source")

    notes = data.get("notes")
    if notes is not None and len(str(notes)) > 500:
        raise MeasurementError("Notes cannot exceed 500 characters")

    unit = data.get("unit")
    if unit is not None and len(str(unit).strip()) > 20:
        raise MeasurementError("Unit must be less than 20 characters")

    meta = data.get("metadata")
    if meta is not None and not isinstance(meta, dict):
        raise MeasurementError("Metadata must be an object")

    if m_type == "blood_pressure":
        systolic = (meta or {}).get("systolic")
        diastolic = (meta or {}).get("diastolic")
        if _as_number(systolic) is None or _as_number(diastolic) is None:
            raise MeasurementError(
                "Blood pressure measurements require systolic and diastolic values in metadata"
            )
        if not 50 <= float(systolic) <= 300:
            raise MeasurementError("Systolic pressure must be between 50 and 300")
        if not 30 <= float(diastolic) <= 200:
            raise MeasurementError("Diastolic pressure must be between 30 and 200")

    if m_type in VALUE_RANGES:
        low, high = VALUE_RANGES[m_type]
        number = _as_number(value)
        if number is None or number < low or number > high:
            raise MeasurementError(f"Invalid {m_type.replace('_', ' ')} value")

    try:
        timestamp = parse_datetime(data.get("timestamp")) or utcnow()
    except ValueError:
        raise MeasurementError("Invalid timestamp format")

    return {
        "type": m_type,
        "value": value,
        "unit": unit.strip() if isinstance(unit, str) else unit,
        "timestamp": timestamp,
        "notes": notes,
        "source": source,
        "metadata": meta,
    }


def serialize_measurement(row) -> dict:
    return {
        "id": row["id"],
        "userId": row["user_id"],
        "type": row["type"],
        "value": row["value"],
        "unit": row["unit"],
        "timestamp": isoformat(row["timestamp"]),
        "notes": row["notes"],
        "source": row["source"],
        "metadata": row["metadata"],
        "createdAt": isoformat(row["created_at"]),
    }


def compute_stats(m_type: str, rows: List[dict], days: int) -> dict:
    """
    Summary statistics over readings sorted oldest first

    Trend compares the mean of the first half against the second half:
    more than +5% is increasing, below -5% decreasing.
    """
    empty = {"count": 0, "average": None, "min": None, "max": None, "trend": None, "period": f"{days} days"}
    if not rows:
        return empty

    values = []
    for row in rows:
        number = reading_value(m_type, row.get("value"), row.get("metadata"))
        if number is not None and number > 0:
            values.append(number)

    if not values:
        return dict(empty, count=len(rows))

    midpoint = len(values) // 2
    first_half, second_half = values[:midpoint], values[midpoint:]
    trend = "stable"
    if first_half and second_half:
        first_avg = sum(first_half) / len(first_half)
        second_avg = sum(second_half) / len(second_half)
        change = (second_avg - first_avg) / first_avg * 100
        if change > 5:
            trend = "increasing"
        elif change < -5:
            trend = "decreasing"

    return {
        "count": len(rows),
        "average": round(sum(values) / len(values), 2),
        "min": min(values),
        "max": max(values),
        "trend": trend,
        "period": f"{days} days",
    }


class MeasurementService:
    """Service for measurement operations"""

    @staticmethod
    async def create(session: AsyncSession, user_id: str, values: dict) -> dict:
        """
        Insert a validated measurement

        Returns:
            The stored row, serialized
        """
        measurement_id = new_id()
        await execute_with_retry(
            session,
            insert(measurements).values(id=measurement_id, user_id=user_id, **values)
        )
        result = await execute_with_retry(
            session, select(measurements).where(measurements.c.id == measurement_id)
        )
        return serialize_measurement(result.mappings().first())

    @staticmethod
    async def latest_by_type(session: AsyncSession, user_id: str, types: Iterable[str]) -> List[dict]:
        """Newest measurement of each requested type"""
        types = list(types)
        result = await execute_with_retry(
            session,
            select(measurements)
            .where(measurements.c.user_id == user_id, measurements.c.type.in_(types))
            .order_by(measurements.c.timestamp.desc())
        )
        latest = {}
        for row in result.mappings():
            if row["type"] not in latest:
                latest[row["type"]] = serialize_measurement(row)
        return [latest[t] for t in types if t in latest]

    @staticmethod
    async def delete(session: AsyncSession, user_id: str, measurement_id: str) -> bool:
        result = await execute_with_retry(
            session,
            delete(measurements).where(
                measurements.c.id == measurement_id, measurements.c.user_id == user_id
            )
        )
        return result.rowcount > 0
