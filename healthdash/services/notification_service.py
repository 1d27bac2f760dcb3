"""
Notification service - in-app notifications and their expiry
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import and_, delete, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import new_id, notifications
from healthdash.utils.timeutils import isoformat, time_ago, utcnow

logger = logging.getLogger(__name__)

EXPIRY_DAYS = {"urgent": 1, "high": 7}
DEFAULT_EXPIRY_DAYS = 30


def default_expiry(priority: str, now: Optional[datetime] = None) -> datetime:
    """Expiry for a notification created without one: 1d urgent, 7d high, else 30d"""
    now = now or utcnow()
    return now + timedelta(days=EXPIRY_DAYS.get(priority, DEFAULT_EXPIRY_DAYS))


def not_expired(now: Optional[datetime] = None):
    """WHERE clause hiding expired notifications"""
    now = now or utcnow()
    return or_(notifications.c.expires_at.is_(None), notifications.c.expires_at > now)


def visible_to(user_id: str, now: Optional[datetime] = None):
    return and_(notifications.c.user_id == user_id, not_expired(now))


async def purge_expired(session: AsyncSession, user_id: Optional[str] = None,
                        now: Optional[datetime] = None) -> int:
    """Delete expired notifications, for one user or for everyone"""
    now = now or utcnow()
    query = delete(notifications).where(notifications.c.expires_at <= now)
    if user_id is not None:
        query = query.where(notifications.c.user_id == user_id)
    result = await execute_with_retry(session, query)
    return result.rowcount


async def purge_all_expired(session_maker) -> int:
    async with session_maker() as session:
        async with session.begin():
            removed = await purge_expired(session)
    if removed:
        logger.info("Purged %d expired notifications", removed)
    return removed


def serialize_notification(row, now: Optional[datetime] = None) -> dict:
    return {
        "id": row["id"],
        "userId": row["user_id"],
        "type": row["type"],
        "title": row["title"],
        "message": row["message"],
        "isRead": bool(row["is_read"]),
        "priority": row["priority"],
        "actionUrl": row["action_url"],
        "actionText": row["action_text"],
        "metadata": row["metadata"],
        "expiresAt": isoformat(row["expires_at"]),
        "createdAt": isoformat(row["created_at"]),
        "timeAgo": time_ago(row["created_at"], now),
    }


async def create_notification(
    session: AsyncSession,
    user_id: str,
    title: str,
    message: str,
    type: str = "system",
    priority: str = "medium",
    action_url: Optional[str] = None,
    action_text: Optional[str] = None,
    metadata: Optional[dict] = None,
    expires_at: Optional[datetime] = None,
) -> dict:
    """
    Insert a notification for a user

    Used by the notifications API and by other modules (appointment booked,
    challenge completed). The caller owns the transaction.

    Returns:
        The serialized notification
    """
    now = utcnow()
    notification_id = new_id()
    await execute_with_retry(
        session,
        insert(notifications).values(
            id=notification_id,
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            priority=priority,
            action_url=action_url,
            action_text=action_text,
            metadata=metadata,
            expires_at=expires_at or default_expiry(priority, now),
            created_at=now,
            updated_at=now,
        )
    )
    result = await execute_with_retry(
        session, select(notifications).where(notifications.c.id == notification_id)
    )
    logger.info("Notification created for user %s: %s (%s)", user_id, title, type)
    return serialize_notification(result.mappings().first(), now)
