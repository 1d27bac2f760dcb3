"""
Profile service - onboarding quiz and dashboard preference persistence
"""
from typing import Any, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import user_profiles
from healthdash.utils.timeutils import isoformat, utcnow
from healthdash.utils.validators import canonical_ids

QUIZ_FIELDS = (
    "age", "gender", "weight", "height", "conditions", "allergies", "smoker", "alcohol",
    "sleepHours", "exercise", "exerciseTypes", "exerciseDuration", "fitnessGoals",
    "waterIntake", "stepGoal", "trackGlucose", "trackBP", "trackHR", "trackSleep",
    "trackWeight", "takeMeds", "prescriptionFile", "medicationReminders",
    "joinChallenges", "challengeDifficulty", "rewardType", "notificationsEnabled",
    "notificationTiming", "pushNotifications", "emailNotifications", "smsNotifications",
    "units", "careTeam", "selectedDoctors", "initialMeasurements",
)


def sanitize_quiz_payload(payload: Any) -> dict:
    """Keep only the known quiz fields; selectedDoctors is reduced to canonical ids"""
    if not isinstance(payload, dict):
        return {}
    sanitized = {key: payload[key] for key in QUIZ_FIELDS if key in payload}
    if sanitized.get("selectedDoctors") is not None:
        sanitized["selectedDoctors"] = canonical_ids(sanitized["selectedDoctors"])
    return sanitized


def merge_profile_data(current: Optional[dict], updates: dict) -> dict:
    """
    Merge non-null fields into the stored profile data

    Null or missing fields keep their previous value, so the client can
    submit the quiz step by step.
    """
    merged = dict(current or {})
    for key, value in updates.items():
        if value is not None:
            merged[key] = value
    return merged


def serialize_profile(row) -> Optional[dict]:
    if row is None:
        return None
    profile = dict(row["data"] or {})
    profile.update({
        "dashboardPreferences": row["dashboard_preferences"],
        "dashboardQuizCompleted": bool(row["dashboard_quiz_completed"]),
        "dashboardQuizCompletedAt": isoformat(row["dashboard_quiz_completed_at"]),
        "completedAt": isoformat(row["completed_at"]),
        "lastUpdated": isoformat(row["last_updated"]),
    })
    return profile


class ProfileService:
    """Service for profile operations"""

    @staticmethod
    async def get_row(session: AsyncSession, user_id: str):
        result = await execute_with_retry(
            session, select(user_profiles).where(user_profiles.c.user_id == user_id)
        )
        return result.mappings().first()

    @staticmethod
    async def ensure_row(session: AsyncSession, user_id: str):
        """Get the profile row, creating an empty one when missing"""
        row = await ProfileService.get_row(session, user_id)
        if row is None:
            await execute_with_retry(
                session,
                insert(user_profiles).values(user_id=user_id, data={}, last_updated=utcnow())
            )
            row = await ProfileService.get_row(session, user_id)
        return row

    @staticmethod
    async def merge(session: AsyncSession, user_id: str, updates: dict, completed: bool = False):
        """
        Merge quiz/profile fields into the stored profile

        Args:
            session: Database session (caller manages the transaction)
            user_id: Owner
            updates: Sanitized fields
            completed: Stamp completed_at (quiz submission)

        Returns:
            Updated profile row
        """
        row = await ProfileService.ensure_row(session, user_id)
        now = utcnow()
        values = {
            "data": merge_profile_data(row["data"], updates),
            "last_updated": now,
            "updated_at": now,
        }
        if completed:
            values["completed_at"] = now
        await execute_with_retry(
            session,
            update(user_profiles).where(user_profiles.c.user_id == user_id).values(**values)
        )
        return await ProfileService.get_row(session, user_id)

    @staticmethod
    async def save_dashboard_preferences(session: AsyncSession, user_id: str, preferences: Any):
        await ProfileService.ensure_row(session, user_id)
        now = utcnow()
        await execute_with_retry(
            session,
            update(user_profiles)
            .where(user_profiles.c.user_id == user_id)
            .values(
                dashboard_preferences=preferences,
                dashboard_quiz_completed=True,
                dashboard_quiz_completed_at=now,
                last_updated=now,
                updated_at=now,
            )
        )
        return await ProfileService.get_row(session, user_id)
