"""
Appointment service - booking and listing the caller's appointments
"""
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import appointments, doctors
from healthdash.utils.timeutils import isoformat

CLOSED_STATUSES = ("completed", "cancelled", "no-show")

# Request field -> column, for create and partial update
EDITABLE_FIELDS = {
    "title": "title",
    "doctorId": "doctor_id",
    "description": "description",
    "date": "date",
    "time": "time",
    "duration": "duration",
    "type": "type",
    "location": "location",
    "notes": "notes",
}


def _with_doctor():
    """Appointments left-joined with the doctor summary"""
    return select(
        appointments,
        doctors.c.name.label("doctor_name"),
        doctors.c.specialization.label("doctor_specialization"),
        doctors.c.photo.label("doctor_photo"),
    ).select_from(appointments.outerjoin(doctors, doctors.c.id == appointments.c.doctor_id))


def serialize_appointment(row) -> dict:
    doctor = None
    if row["doctor_id"] and row["doctor_name"]:
        doctor = {
            "id": row["doctor_id"],
            "name": row["doctor_name"],
            "specialization": row["doctor_specialization"],
            "photo": row["doctor_photo"],
        }
    return {
        "id": row["id"],
        "userId": row["user_id"],
        "doctorId": row["doctor_id"],
        "doctor": doctor,
        "title": row["title"],
        "description": row["description"],
        "date": isoformat(row["date"]),
        "time": row["time"],
        "duration": row["duration"],
        "type": row["type"],
        "status": row["status"],
        "location": row["location"],
        "notes": row["notes"],
        "reminderSent": bool(row["reminder_sent"]),
        "createdAt": isoformat(row["created_at"]),
        "updatedAt": isoformat(row["updated_at"]),
    }


def appointment_columns(data: dict) -> dict:
    """Map the non-null request fields to column values"""
    return {
        column: data[field]
        for field, column in EDITABLE_FIELDS.items()
        if data.get(field) is not None
    }


class AppointmentService:
    """Service for appointment queries"""

    @staticmethod
    async def get(session: AsyncSession, user_id: str, appointment_id: str) -> Optional[dict]:
        """The caller's appointment with its doctor, or None"""
        result = await execute_with_retry(
            session,
            _with_doctor().where(appointments.c.id == appointment_id, appointments.c.user_id == user_id)
        )
        row = result.mappings().first()
        return serialize_appointment(row) if row else None

    @staticmethod
    async def find(session: AsyncSession, conditions: list, order_by: list,
                   limit: Optional[int] = None, offset: int = 0) -> List[dict]:
        query = _with_doctor().where(*conditions).order_by(*order_by).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        result = await execute_with_retry(session, query)
        return [serialize_appointment(row) for row in result.mappings()]

    @staticmethod
    async def count(session: AsyncSession, conditions: list) -> int:
        result = await execute_with_retry(
            session, select(func.count()).select_from(appointments).where(*conditions)
        )
        return result.scalar_one()
