"""
Challenge service - participation, progress and the leaderboard
"""
import math
from datetime import datetime
from typing import List, Optional
from urllib.parse import quote

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import challenges, user_challenges, users
from healthdash.utils.timeutils import isoformat, utcnow

AVATAR_URL = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"


class ProgressError(ValueError):
    """Progress value is not a non-negative number"""


def parse_progress(value) -> float:
    """
    Validate a progress value from the request body

    Raises:
        ProgressError: for booleans, non-numbers, NaN and negatives
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProgressError("Progress must be a non-negative number")
    if math.isnan(value) or value < 0:
        raise ProgressError("Progress must be a non-negative number")
    return float(value)


def apply_progress(progress: float, target: float) -> dict:
    """
    New participation state for a progress report

    current is clamped to the target; reaching it completes the challenge.
    """
    current = min(progress, target)
    state = {"current": current, "last_updated": utcnow()}
    if current >= target:
        state["status"] = "completed"
        state["completed_at"] = state["last_updated"]
    return state


def progress_percentage(current: float, target: float) -> float:
    if not target:
        return 0
    return min(100, round(current / target * 100, 2))


def days_since(moment: Optional[datetime], now: Optional[datetime] = None) -> int:
    if moment is None:
        return 0
    now = now or utcnow()
    return max(0, (now - moment).days)


def leaderboard_avatar(name: str) -> str:
    return AVATAR_URL.format(seed=quote(name or ""))


def serialize_challenge(row) -> dict:
    return {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "type": row["type"],
        "difficulty": row["difficulty"],
        "target": row["target"],
        "unit": row["unit"],
        "duration": row["duration"],
        "points": row["points"],
        "icon": row["icon"],
        "tip": row["tip"],
        "isActive": bool(row["is_active"]),
        "participants": row["participants"],
        "createdAt": isoformat(row["created_at"]),
    }


def serialize_participation(entry, challenge, now: Optional[datetime] = None) -> dict:
    return {
        "id": entry["id"],
        "userId": entry["user_id"],
        "challengeId": entry["challenge_id"],
        "challenge": serialize_challenge(challenge),
        "current": entry["current"],
        "status": entry["status"],
        "joinedAt": isoformat(entry["joined_at"]),
        "completedAt": isoformat(entry["completed_at"]),
        "lastUpdated": isoformat(entry["last_updated"]),
        "progressPercentage": progress_percentage(entry["current"], challenge["target"]),
        "daysSinceJoined": days_since(entry["joined_at"], now),
    }


def _challenge_labels():
    # prefixed so no label matches a user_challenges column
    return [c.label(f"ch_{c.name}") for c in challenges.c]


def _split(row):
    """Split a participation+challenge row into (entry, challenge) mappings"""
    challenge = {c.name: row[f"ch_{c.name}"] for c in challenges.c}
    return row, challenge


class ChallengeService:
    """Service for challenge queries"""

    @staticmethod
    async def get_challenge(session: AsyncSession, challenge_id: str):
        result = await execute_with_retry(
            session, select(challenges).where(challenges.c.id == challenge_id)
        )
        return result.mappings().first()

    @staticmethod
    async def get_participation(session: AsyncSession, user_id: str, challenge_id: str):
        result = await execute_with_retry(
            session,
            select(user_challenges).where(
                user_challenges.c.user_id == user_id, user_challenges.c.challenge_id == challenge_id
            )
        )
        return result.mappings().first()

    @staticmethod
    async def participations(session: AsyncSession, conditions: list, limit: int, offset: int) -> List[dict]:
        """Participations with their challenge, newest joined first"""
        result = await execute_with_retry(
            session,
            select(user_challenges, *_challenge_labels())
            .join(challenges, challenges.c.id == user_challenges.c.challenge_id)
            .where(*conditions)
            .order_by(user_challenges.c.joined_at.desc())
            .limit(limit)
            .offset(offset)
        )
        now = utcnow()
        return [serialize_participation(*_split(row), now) for row in result.mappings()]

    @staticmethod
    async def stats(session: AsyncSession, user_id: str) -> dict:
        """Status breakdown and points earned from completed challenges"""
        result = await execute_with_retry(
            session,
            select(user_challenges.c.status, func.count().label("count"))
            .where(user_challenges.c.user_id == user_id)
            .group_by(user_challenges.c.status)
        )
        breakdown = [{"_id": row["status"], "count": row["count"]} for row in result.mappings()]

        result = await execute_with_retry(
            session,
            select(func.coalesce(func.sum(challenges.c.points), 0))
            .select_from(user_challenges.join(challenges, challenges.c.id == user_challenges.c.challenge_id))
            .where(user_challenges.c.user_id == user_id, user_challenges.c.status == "completed")
        )
        return {"statusBreakdown": breakdown, "totalPoints": int(result.scalar_one())}

    @staticmethod
    async def leaderboard(session: AsyncSession, limit: int, offset: int) -> List[dict]:
        """
        Users ranked by points from completed challenges

        Ties on points are broken by the number of completed challenges.
        """
        total_points = func.sum(challenges.c.points).label("totalPoints")
        completed = func.count(user_challenges.c.id).label("challengesCompleted")
        result = await execute_with_retry(
            session,
            select(
                users.c.id,
                users.c.name,
                users.c.email,
                total_points,
                completed,
                func.max(user_challenges.c.completed_at).label("lastActivity"),
            )
            .select_from(
                user_challenges
                .join(challenges, challenges.c.id == user_challenges.c.challenge_id)
                .join(users, users.c.id == user_challenges.c.user_id)
            )
            .where(user_challenges.c.status == "completed")
            .group_by(users.c.id, users.c.name, users.c.email)
            .order_by(total_points.desc(), completed.desc())
            .limit(limit)
            .offset(offset)
        )

        board = []
        for index, row in enumerate(result.mappings()):
            board.append({
                "userId": row["id"],
                "name": row["name"],
                "email": row["email"],
                "totalPoints": int(row["totalPoints"] or 0),
                "challengesCompleted": row["challengesCompleted"],
                "lastActivity": isoformat(row["lastActivity"]),
                "rank": offset + index + 1,
                "avatar": leaderboard_avatar(row["name"]),
            })
        return board
