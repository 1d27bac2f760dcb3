"""
Care team service - doctors and the per-user care team
"""
from typing import List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import care_team, doctors, new_id
from healthdash.utils.timeutils import isoformat, utcnow


def serialize_doctor(row) -> Optional[dict]:
    if row is None:
        return None
    return {
        "id": row["id"],
        "name": row["name"],
        "email": row["email"],
        "specialization": row["specialization"],
        "photo": row["photo"],
        "rating": row["rating"],
        "experience": row["experience"],
        "isSystemApproved": bool(row["is_system_approved"]),
    }


def serialize_member(entry, doctor) -> dict:
    return {
        "id": entry["id"],
        "userId": entry["user_id"],
        "doctor": serialize_doctor(doctor),
        "accepted": bool(entry["accepted"]),
        "isActive": bool(entry["is_active"]),
        "createdAt": isoformat(entry["created_at"]),
        "updatedAt": isoformat(entry["updated_at"]),
    }


class CareTeamService:
    """Service for doctors and care team membership"""

    @staticmethod
    async def get_doctor(session: AsyncSession, doctor_id: str):
        result = await execute_with_retry(session, select(doctors).where(doctors.c.id == doctor_id))
        return result.mappings().first()

    @staticmethod
    async def system_doctors(session: AsyncSession, ranked: bool = False) -> List[dict]:
        """
        System-approved doctors

        Args:
            ranked: Order by rating then experience (best first) instead of name
        """
        query = select(doctors).where(doctors.c.is_system_approved.is_(True))
        if ranked:
            query = query.order_by(doctors.c.rating.desc(), doctors.c.experience.desc())
        else:
            query = query.order_by(doctors.c.name.asc())
        result = await execute_with_retry(session, query)
        return [serialize_doctor(row) for row in result.mappings()]

    @staticmethod
    async def doctors_by_ids(session: AsyncSession, doctor_ids: List[str]) -> List[dict]:
        if not doctor_ids:
            return []
        result = await execute_with_retry(session, select(doctors).where(doctors.c.id.in_(doctor_ids)))
        found = {row["id"]: serialize_doctor(row) for row in result.mappings()}
        return [found[doctor_id] for doctor_id in doctor_ids if doctor_id in found]

    @staticmethod
    async def create_personal_doctor(session: AsyncSession, user_id: str, data: dict):
        """Doctor entered by a user; not system-approved"""
        doctor_id = new_id()
        values = {
            "id": doctor_id,
            "name": data["name"],
            "specialization": data["specialization"],
            "email": data.get("email"),
            "photo": data.get("photo"),
            "is_system_approved": False,
            "added_by": user_id,
        }
        if data.get("rating") is not None:
            values["rating"] = data["rating"]
        if data.get("experience") is not None:
            values["experience"] = data["experience"]
        await execute_with_retry(session, insert(doctors).values(**values))
        return await CareTeamService.get_doctor(session, doctor_id)

    @staticmethod
    async def get_entry(session: AsyncSession, user_id: str, doctor_id: str):
        result = await execute_with_retry(
            session,
            select(care_team).where(care_team.c.user_id == user_id, care_team.c.doctor_id == doctor_id)
        )
        return result.mappings().first()

    @staticmethod
    async def add_member(session: AsyncSession, user_id: str, doctor_id: str):
        """
        Put a doctor on the user's care team as accepted and active

        An existing entry is accepted and reactivated in place.
        """
        existing = await CareTeamService.get_entry(session, user_id, doctor_id)
        if existing is None:
            await execute_with_retry(
                session,
                insert(care_team).values(
                    id=new_id(), user_id=user_id, doctor_id=doctor_id, accepted=True, is_active=True
                )
            )
        else:
            await execute_with_retry(
                session,
                update(care_team)
                .where(care_team.c.id == existing["id"])
                .values(accepted=True, is_active=True, updated_at=utcnow())
            )
        return await CareTeamService.get_entry(session, user_id, doctor_id)

    @staticmethod
    async def members(session: AsyncSession, user_id: str) -> List[dict]:
        """Accepted, active members with their doctor"""
        result = await execute_with_retry(
            session,
            select(care_team, *[c.label(f"dr_{c.name}") for c in doctors.c])
            .join(doctors, doctors.c.id == care_team.c.doctor_id)
            .where(
                care_team.c.user_id == user_id,
                care_team.c.accepted.is_(True),
                care_team.c.is_active.is_(True),
            )
            .order_by(care_team.c.created_at.asc())
        )
        members = []
        for row in result.mappings():
            doctor = {c.name: row[f"dr_{c.name}"] for c in doctors.c}
            members.append(serialize_member(row, doctor))
        return members

    @staticmethod
    async def deactivate(session: AsyncSession, user_id: str, doctor_id: str) -> bool:
        result = await execute_with_retry(
            session,
            update(care_team)
            .where(
                care_team.c.user_id == user_id,
                care_team.c.doctor_id == doctor_id,
                care_team.c.is_active.is_(True),
            )
            .values(is_active=False, updated_at=utcnow())
        )
        return result.rowcount > 0
