"""Notification creation and delivery service.

Notifications are:
1. Persisted in the database
2. Pushed to the user's websocket connections (``notifications:<user_id>`` topic)
   once the caller has committed them

Types: friend_request, friend_accepted, quiz_reminder, league_invitation,
achievement, streak_warning, league_position
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trivia.db.models import Notification
from trivia.realtime.publisher import notifications_topic, publish_event

logger = logging.getLogger(__name__)

VALID_TYPES = {
    "friend_request",
    "friend_accepted",
    "quiz_reminder",
    "league_invitation",
    "achievement",
    "streak_warning",
    "league_position",
}


def notification_payload(notification: Notification) -> dict[str, Any]:
    return {
        "event": "notification",
        "data": {
            "id": notification.id,
            "type": notification.type,
            "title": notification.title,
            "message": notification.message,
            "data": notification.data,
            "is_read": notification.is_read,
            "created_at": notification.created_at.isoformat() if notification.created_at else None,
        },
    }


async def create_notification(
    db: AsyncSession,
    user_id: str,
    type_: str,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
) -> Notification:
    """Persist a notification. The caller commits, then calls ``push_notification``."""
    if type_ not in VALID_TYPES:
        raise ValueError(f"Invalid notification type: {type_}. Must be one of {VALID_TYPES}")

    notification = Notification(
        user_id=user_id,
        type=type_,
        title=title,
        message=message,
        data=data or {},
        is_read=False,
        created_at=datetime.now(timezone.utc),
    )
    db.add(notification)
    await db.flush()
    return notification


async def push_notification(redis: Any | None, notification: Notification) -> None:
    """Push a committed notification to its owner's websocket connections."""
    await publish_event(redis, notifications_topic(notification.user_id), notification_payload(notification))


async def get_notifications(db: AsyncSession, user_id: str, limit: int = 50) -> list[Notification]:
    """Most recent notifications first."""
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def mark_as_read(db: AsyncSession, user_id: str, notification_id: str) -> bool:
    """Mark one of the user's notifications as read. Returns True if found."""
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(is_read=True)
    )
    await db.flush()
    return result.rowcount > 0


async def mark_all_as_read(db: AsyncSession, user_id: str) -> int:
    """Mark all unread notifications as read. Returns count updated."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    await db.flush()
    return result.rowcount


async def get_unread_count(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
    )
    return result.scalar_one()
