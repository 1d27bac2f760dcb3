"""
Health insight service - per-day trends, vitals and wellness summaries over measurements
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import measurements
from healthdash.services.measurement_service import reading_value
from healthdash.utils.timeutils import isoformat

VITAL_TYPES = ("blood_pressure", "heart_rate", "glucose", "weight")
WELLNESS_TYPES = ("sleep", "steps", "water", "exercise")

ANALYSIS_DAYS = 30
# Fewer readings than this in the analysis window earns a "track more" hint
MIN_DATA_POINTS = 10


def _daily_values(rows: Iterable) -> Dict[str, Dict[str, List[float]]]:
    """type -> day (YYYY-MM-DD) -> numeric readings, in row order"""
    grouped: Dict[str, Dict[str, List[float]]] = {}
    for row in rows:
        number = reading_value(row["type"], row["value"], row["metadata"])
        if number is None:
            continue
        day = row["timestamp"].date().isoformat()
        grouped.setdefault(row["type"], {}).setdefault(day, []).append(number)
    return grouped


def daily_trends(rows: Iterable) -> List[dict]:
    """
    Per-day average, min, max and count for each measurement type

    Rows must be sorted oldest first; readings without a numeric value are
    skipped (blood pressure uses systolic).
    """
    trends = []
    for m_type, days in _daily_values(rows).items():
        trends.append({
            "metric": m_type,
            "data": [
                {
                    "date": day,
                    "avgValue": round(sum(values) / len(values), 2),
                    "minValue": min(values),
                    "maxValue": max(values),
                    "count": len(values),
                }
                for day, values in days.items()
            ],
        })
    return trends


def wellness_metrics(rows: Iterable) -> List[dict]:
    return [
        {
            "metric": trend["metric"],
            "dailyData": [{"date": day["date"], "avgValue": day["avgValue"]} for day in trend["data"]],
        }
        for trend in daily_trends(row for row in rows if row["type"] in WELLNESS_TYPES)
    ]


def vitals_summary(rows: Iterable) -> List[dict]:
    """Latest reading and total count per vital type; rows newest first"""
    summary = {}
    for row in rows:
        if row["type"] not in VITAL_TYPES:
            continue
        entry = summary.get(row["type"])
        if entry is None:
            summary[row["type"]] = {
                "metric": row["type"],
                "latestValue": row["value"],
                "latestDate": isoformat(row["timestamp"]),
                "unit": row["unit"],
                "metadata": row["metadata"],
                "totalMeasurements": 1,
            }
        else:
            entry["totalMeasurements"] += 1
    return list(summary.values())


def _mean(values: List[float]) -> float:
    return sum(values) / len(values)


def generate_insights(rows: List) -> List[str]:
    """
    Plain-language observations from recent readings (oldest first)

    Blood pressure uses the average systolic value, weight the change between
    the first and last reading, sleep the average hours per reading.
    """
    insights = []
    by_type = {}
    for row in rows:
        number = reading_value(row["type"], row["value"], row["metadata"])
        if number is not None:
            by_type.setdefault(row["type"], []).append(number)

    systolic = by_type.get("blood_pressure")
    if systolic:
        average = _mean(systolic)
        if average > 140:
            insights.append("Your average systolic blood pressure is elevated. "
                            "Consider consulting your healthcare provider.")
        elif average < 90:
            insights.append("Your average systolic blood pressure is low. "
                            "Monitor for symptoms of hypotension.")
        else:
            insights.append("Your blood pressure readings are within a healthy range. Keep up the good work!")

    weights = by_type.get("weight") or []
    if len(weights) > 1:
        change = weights[-1] - weights[0]
        if abs(change) > 2:
            direction = "increased" if change > 0 else "decreased"
            insights.append(f"Your weight has {direction} by {abs(change):.1f} kg over the past month.")

    sleep = by_type.get("sleep")
    if sleep:
        average = _mean(sleep)
        if average < 7:
            insights.append("Your average sleep duration is below the recommended 7-9 hours. "
                            "Consider improving your sleep hygiene.")
        elif average > 9:
            insights.append("You're getting plenty of sleep! This is great for your overall health.")

    if len(rows) < MIN_DATA_POINTS:
        insights.append("Consider tracking more health metrics regularly for better insights.")

    return insights or ["Keep tracking your health metrics for personalized insights!"]


class InsightService:
    """Service for reading measurements behind the insight views"""

    @staticmethod
    async def readings(
        session: AsyncSession,
        user_id: str,
        since: Optional[datetime] = None,
        types: Optional[Iterable[str]] = None,
        newest_first: bool = False,
    ) -> list:
        conditions = [measurements.c.user_id == user_id]
        if since is not None:
            conditions.append(measurements.c.timestamp >= since)
        if types is not None:
            conditions.append(measurements.c.type.in_(list(types)))
        order = measurements.c.timestamp.desc() if newest_first else measurements.c.timestamp.asc()
        result = await execute_with_retry(
            session, select(measurements).where(*conditions).order_by(order)
        )
        return list(result.mappings())
