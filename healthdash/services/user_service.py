"""
User service - business logic for user accounts
"""
from typing import Optional
from urllib.parse import quote

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import new_id, users
from healthdash.utils.timeutils import isoformat, utcnow


def avatar_url(name: str, profile_photo: Optional[str] = None) -> str:
    """Uploaded photo, or a generated initials avatar"""
    if profile_photo:
        return profile_photo
    return f"https://ui-avatars.com/api/?name={quote(name or '')}"


class UserService:
    """Service for user-related operations"""

    @staticmethod
    async def get_by_id(session: AsyncSession, user_id: str) -> Optional[dict]:
        """
        Get user by id

        Args:
            session: Database session
            user_id: User id

        Returns:
            User row as a dict without the password hash, or None
        """
        result = await execute_with_retry(session, select(users).where(users.c.id == user_id))
        row = result.mappings().first()
        if not row:
            return None
        user = dict(row)
        user.pop("password_hash", None)
        return user

    @staticmethod
    async def get_by_email(session: AsyncSession, email: str) -> Optional[dict]:
        """
        Get user by email, case-insensitively

        Returns:
            Full user row (including password hash) or None
        """
        result = await execute_with_retry(
            session,
            select(users).where(func.lower(users.c.email) == email.strip().lower())
        )
        row = result.mappings().first()
        return dict(row) if row else None

    @staticmethod
    async def create(
        session: AsyncSession,
        name: str,
        email: str,
        password_hash: str,
        age: Optional[int] = None,
        gender: Optional[str] = None,
        conditions: Optional[list] = None,
        goals: Optional[list] = None,
    ) -> str:
        """
        Create a user

        Returns:
            New user id
        """
        user_id = new_id()
        await execute_with_retry(
            session,
            insert(users).values(
                id=user_id,
                name=name.strip(),
                email=email.strip().lower(),
                password_hash=password_hash,
                age=age,
                gender=gender,
                conditions=conditions or [],
                goals=goals or [],
                is_verified=True,
            )
        )
        return user_id

    @staticmethod
    async def set_profile_photo(session: AsyncSession, user_id: str, url: str) -> None:
        await execute_with_retry(
            session,
            update(users).where(users.c.id == user_id).values(profile_photo=url, updated_at=utcnow())
        )

    @staticmethod
    def public_user(user: dict) -> dict:
        """User fields safe to return to the client"""
        return {
            "id": user["id"],
            "name": user["name"],
            "email": user["email"],
            "age": user.get("age"),
            "gender": user.get("gender"),
            "conditions": user.get("conditions") or [],
            "goals": user.get("goals") or [],
            "avatar": avatar_url(user["name"], user.get("profile_photo")),
            "isVerified": bool(user.get("is_verified", True)),
            "createdAt": isoformat(user.get("created_at")),
        }
