"""
Notification endpoints
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import delete, func, select, update

from healthdash.database.connection import require_session
from healthdash.database.queries import execute_with_retry
from healthdash.database.tables import notifications
from healthdash.models.schemas import NOTIFICATION_PRIORITIES, NOTIFICATION_TYPES, NotificationCreate
from healthdash.services.auth import get_current_user
from healthdash.services.notification_service import (
    create_notification,
    purge_expired,
    serialize_notification,
    visible_to,
)
from healthdash.utils.responses import server_error
from healthdash.utils.timeutils import parse_datetime, utcnow
from healthdash.utils.validators import pagination_meta, validate_choice, validate_id, validate_pagination

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications")


async def _unread_count(session, user_id: str) -> int:
    result = await execute_with_retry(
        session,
        select(func.count())
        .select_from(notifications)
        .where(visible_to(user_id), notifications.c.is_read.is_(False))
    )
    return result.scalar_one()


@router.get("")
async def list_notifications(
    unreadOnly: bool = Query(False),
    type: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    limit: int = Query(50),
    page: int = Query(1),
    user: dict = Depends(get_current_user),
):
    """Unexpired notifications, newest first; the caller's expired ones are deleted"""
    limit, page, offset = validate_pagination(limit, page)
    now = utcnow()
    conditions = [visible_to(user["id"], now)]
    if unreadOnly:
        conditions.append(notifications.c.is_read.is_(False))
    if type:
        conditions.append(notifications.c.type == validate_choice(type, NOTIFICATION_TYPES, "notification type"))
    if priority:
        conditions.append(
            notifications.c.priority == validate_choice(priority, NOTIFICATION_PRIORITIES, "priority")
        )

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                await purge_expired(session, user["id"], now)
                result = await execute_with_retry(
                    session,
                    select(notifications)
                    .where(*conditions)
                    .order_by(notifications.c.created_at.desc())
                    .limit(limit)
                    .offset(offset)
                )
                rows = [serialize_notification(row, now) for row in result.mappings()]
                total = (await execute_with_retry(
                    session, select(func.count()).select_from(notifications).where(*conditions)
                )).scalar_one()
                unread = await _unread_count(session, user["id"])

        meta = pagination_meta(total, page, limit)
        meta["unreadCount"] = unread
        return {"success": True, "data": rows, "meta": meta}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("list_notifications", e, "Failed to fetch notifications")


@router.get("/unread-count")
async def unread_count(user: dict = Depends(get_current_user)):
    session_maker = require_session()
    try:
        async with session_maker() as session:
            count = await _unread_count(session, user["id"])
        return {"success": True, "data": {"unreadCount": count}}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("unread_count", e, "Failed to fetch unread count")


@router.get("/stats")
async def notification_stats(user: dict = Depends(get_current_user)):
    """Counts grouped by read state and type"""
    session_maker = require_session()
    try:
        async with session_maker() as session:
            result = await execute_with_retry(
                session,
                select(notifications.c.is_read, notifications.c.type, func.count().label("count"))
                .where(visible_to(user["id"]))
                .group_by(notifications.c.is_read, notifications.c.type)
            )
            breakdown = {}
            for row in result.mappings():
                group = breakdown.setdefault(bool(row["is_read"]), {"_id": bool(row["is_read"]), "types": [], "total": 0})
                group["types"].append({"type": row["type"], "count": row["count"]})
                group["total"] += row["count"]
            unread = await _unread_count(session, user["id"])

        return {"success": True, "data": {"unreadCount": unread, "breakdown": list(breakdown.values())}}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("notification_stats", e, "Failed to fetch notification statistics")


@router.post("", status_code=201)
async def create_user_notification(payload: NotificationCreate, user: dict = Depends(get_current_user)):
    """Create a notification for the caller (client-side reminders)"""
    try:
        expires_at = parse_datetime(payload.expiresAt)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid expiresAt format")

    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                notification = await create_notification(
                    session,
                    user["id"],
                    payload.title,
                    payload.message,
                    type=payload.type,
                    priority=payload.priority,
                    action_url=payload.actionUrl,
                    action_text=payload.actionText,
                    metadata=payload.metadata,
                    expires_at=expires_at,
                )
        return {"success": True, "message": "Notification created successfully", "data": notification}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("create_notification", e, "Failed to create notification")


@router.patch("/mark-all-read")
async def mark_all_read(user: dict = Depends(get_current_user)):
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                result = await execute_with_retry(
                    session,
                    update(notifications)
                    .where(notifications.c.user_id == user["id"], notifications.c.is_read.is_(False))
                    .values(is_read=True, updated_at=utcnow())
                )
        return {"success": True, "message": f"{result.rowcount} notifications marked as read"}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("mark_all_read", e, "Failed to mark notifications as read")


@router.patch("/{notification_id}/read")
async def mark_read(notification_id: str, user: dict = Depends(get_current_user)):
    notification_id = validate_id(notification_id, "Notification ID")
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                result = await execute_with_retry(
                    session,
                    update(notifications)
                    .where(notifications.c.id == notification_id, notifications.c.user_id == user["id"])
                    .values(is_read=True, updated_at=utcnow())
                )
                if result.rowcount == 0:
                    raise HTTPException(status_code=404, detail="Notification not found")
                row = (await execute_with_retry(
                    session, select(notifications).where(notifications.c.id == notification_id)
                )).mappings().first()
        return {"success": True, "message": "Notification marked as read", "data": serialize_notification(row)}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("mark_read", e, "Failed to mark notification as read")


@router.delete("/{notification_id}")
async def delete_notification(notification_id: str, user: dict = Depends(get_current_user)):
    notification_id = validate_id(notification_id, "Notification ID")
    session_maker = require_session()
    try:
        async with session_maker() as session:
            async with session.begin():
                result = await execute_with_retry(
                    session,
                    delete(notifications)
                    .where(notifications.c.id == notification_id, notifications.c.user_id == user["id"])
                )
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Notification not found")
        return {"success": True, "message": "Notification deleted successfully"}
    except HTTPException:
        raise
    except Exception as e:
        return server_error("delete_notification", e, "Failed to delete notification")
