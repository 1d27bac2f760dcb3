"""
Medication service - suggestions, schedules and intake logging

Scheduled times are "HH:MM" strings interpreted as UTC, like every other
timestamp the API stores.
"""
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import doctors, medication_logs, medications, new_id
from healthdash.utils.timeutils import isoformat, utcnow

ON_TIME_WINDOW = timedelta(minutes=30)
ACTIVE_STATUSES = ("accepted", "scheduled")


def slot_datetime(day: date, hhmm: str) -> datetime:
    hour, minute = (int(part) for part in hhmm.split(":"))
    return datetime.combine(day, time(hour, minute))


def nearest_slot(scheduled_times: Iterable[str], now: datetime) -> Optional[str]:
    """Scheduled time of day closest to now (earliest wins a tie)"""
    best = None
    best_distance = None
    for hhmm in sorted(scheduled_times):
        distance = abs(slot_datetime(now.date(), hhmm) - now)
        if best_distance is None or distance < best_distance:
            best, best_distance = hhmm, distance
    return best


def is_on_time(log) -> bool:
    """Taken within 30 minutes either side of the scheduled time"""
    if log["status"] != "taken" or log["taken_time"] is None:
        return False
    return abs(log["taken_time"] - log["scheduled_time"]) <= ON_TIME_WINDOW


def adherence(logs: Iterable) -> dict:
    counts = {"taken": 0, "missed": 0, "skipped": 0}
    for log in logs:
        if log["status"] in counts:
            counts[log["status"]] += 1
    total = sum(counts.values())
    counts["adherenceRate"] = round(counts["taken"] / total * 100) if total else 0
    return counts


def build_today_schedule(meds: Iterable, logs: Iterable, now: datetime) -> List[dict]:
    """
    One entry per scheduled time of each active medication, earliest first

    A logged slot shows its logged status; otherwise a slot whose time has
    passed is Missed and a later one Upcoming.
    """
    logged: Dict[tuple, dict] = {
        (log["medication_id"], log["scheduled_time"]): log for log in logs
    }
    entries = []
    for med in meds:
        for hhmm in sorted(set(med["scheduled_times"] or [])):
            slot = slot_datetime(now.date(), hhmm)
            log = logged.get((med["id"], slot))
            if log is not None:
                status = log["status"].capitalize()
            else:
                status = "Missed" if slot < now else "Upcoming"
            entries.append({
                "medicationId": med["id"],
                "name": med["name"],
                "dosage": med["dosage"],
                "instructions": med["instructions"],
                "time": hhmm,
                "scheduledTime": isoformat(slot),
                "status": status,
                "takenTime": isoformat(log["taken_time"]) if log is not None else None,
                "notes": log["notes"] if log is not None else None,
            })
    entries.sort(key=lambda entry: (entry["time"], entry["name"]))
    return entries


def serialize_medication(row) -> dict:
    doctor = None
    if row["doctor_id"] and row["doctor_name"]:
        doctor = {
            "id": row["doctor_id"],
            "name": row["doctor_name"],
            "specialization": row["doctor_specialization"],
        }
    return {
        "id": row["id"],
        "userId": row["user_id"],
        "doctorId": row["doctor_id"],
        "doctor": doctor,
        "name": row["name"],
        "dosage": row["dosage"],
        "frequency": row["frequency"],
        "instructions": row["instructions"],
        "status": row["status"],
        "suggestedAt": isoformat(row["suggested_at"]),
        "acceptedAt": isoformat(row["accepted_at"]),
        "scheduledTimes": row["scheduled_times"] or [],
        "createdAt": isoformat(row["created_at"]),
        "updatedAt": isoformat(row["updated_at"]),
    }


def serialize_log(row) -> dict:
    return {
        "id": row["id"],
        "medicationId": row["medication_id"],
        "medicationName": row.get("medication_name"),
        "dosage": row.get("medication_dosage"),
        "scheduledTime": isoformat(row["scheduled_time"]),
        "takenTime": isoformat(row["taken_time"]),
        "status": row["status"],
        "notes": row["notes"],
        "isOnTime": is_on_time(row),
    }


def _with_doctor():
    return select(
        medications,
        doctors.c.name.label("doctor_name"),
        doctors.c.specialization.label("doctor_specialization"),
    ).select_from(medications.outerjoin(doctors, doctors.c.id == medications.c.doctor_id))


class MedicationService:
    """Service for medication queries"""

    @staticmethod
    async def get(session: AsyncSession, user_id: str, medication_id: str):
        """The caller's medication row (with doctor summary), or None"""
        result = await execute_with_retry(
            session,
            _with_doctor().where(medications.c.id == medication_id, medications.c.user_id == user_id)
        )
        return result.mappings().first()

    @staticmethod
    async def find_by_name(session: AsyncSession, user_id: str, name: str, dosage: str):
        result = await execute_with_retry(
            session,
            _with_doctor().where(
                medications.c.user_id == user_id,
                medications.c.name == name,
                medications.c.dosage == dosage,
            )
        )
        return result.mappings().first()

    @staticmethod
    async def find(session: AsyncSession, user_id: str, statuses: Optional[Iterable[str]] = None) -> list:
        """The user's medications, newest first"""
        query = _with_doctor().where(medications.c.user_id == user_id)
        if statuses:
            query = query.where(medications.c.status.in_(list(statuses)))
        result = await execute_with_retry(session, query.order_by(medications.c.created_at.desc()))
        return list(result.mappings())

    @staticmethod
    async def create(session: AsyncSession, user_id: str, values: dict):
        medication_id = new_id()
        await execute_with_retry(
            session, insert(medications).values(id=medication_id, user_id=user_id, **values)
        )
        return await MedicationService.get(session, user_id, medication_id)

    @staticmethod
    async def update(session: AsyncSession, user_id: str, medication_id: str, values: dict):
        await execute_with_retry(
            session,
            update(medications)
            .where(medications.c.id == medication_id, medications.c.user_id == user_id)
            .values(**values, updated_at=utcnow())
        )
        return await MedicationService.get(session, user_id, medication_id)

    @staticmethod
    async def logs_between(session: AsyncSession, user_id: str, start: datetime, end: datetime) -> list:
        """Intake logs with scheduled time in [start, end), newest first"""
        result = await execute_with_retry(
            session,
            select(
                medication_logs,
                medications.c.name.label("medication_name"),
                medications.c.dosage.label("medication_dosage"),
            )
            .select_from(medication_logs.join(medications, medications.c.id == medication_logs.c.medication_id))
            .where(
                medication_logs.c.user_id == user_id,
                medication_logs.c.scheduled_time >= start,
                medication_logs.c.scheduled_time < end,
            )
            .order_by(medication_logs.c.scheduled_time.desc())
        )
        return list(result.mappings())

    @staticmethod
    async def record_intake(session: AsyncSession, user_id: str, medication_id: str, slot: datetime,
                            status: str, notes: Optional[str] = None):
        """
        Insert or update the log for one medication slot

        Returns:
            The log row
        """
        now = utcnow()
        values = {
            "status": status,
            "taken_time": now if status == "taken" else None,
            "notes": notes,
        }
        result = await execute_with_retry(
            session,
            update(medication_logs)
            .where(medication_logs.c.medication_id == medication_id, medication_logs.c.scheduled_time == slot)
            .values(**values, updated_at=now)
        )
        if result.rowcount == 0:
            await execute_with_retry(
                session,
                insert(medication_logs).values(
                    id=new_id(), user_id=user_id, medication_id=medication_id, scheduled_time=slot, **values
                )
            )
        result = await execute_with_retry(
            session,
            select(medication_logs).where(
                medication_logs.c.medication_id == medication_id, medication_logs.c.scheduled_time == slot
            )
        )
        return result.mappings().first()
