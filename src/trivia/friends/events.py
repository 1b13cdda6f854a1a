"""Notifications and feed entries emitted by friendship transitions."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trivia.db.models import Friendship, UserProfile
from trivia.social.activity_service import publish_activity, record_activity
from trivia.social.notification_service import create_notification, push_notification

logger = structlog.get_logger()


class NotifyingFriendshipEvents:
    """FriendshipEvents that notify the other party and post a feed entry.

    Best effort: a failure here is logged and rolled back, the transition
    itself is already committed. The friendship is detached first so the
    caller's copy keeps its loaded state through a rollback.
    """

    def __init__(self, db: AsyncSession, redis: Any | None = None) -> None:
        self.db = db
        self.redis = redis

    async def _display_name(self, user_id: str) -> str:
        result = await self.db.execute(select(UserProfile.display_name).where(UserProfile.id == user_id))
        return result.scalar_one_or_none() or "Someone"

    async def request_sent(self, friendship: Friendship) -> None:
        self.db.expunge(friendship)
        try:
            name = await self._display_name(friendship.requester_id)
            notification = await create_notification(
                self.db,
                friendship.addressee_id,
                "friend_request",
                "New friend request",
                f"{name} wants to be your friend",
                data={"friendship_id": friendship.id, "requester_id": friendship.requester_id},
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.warning("friend_request_notification_failed", friendship_id=friendship.id, exc_info=True)
        else:
            await push_notification(self.redis, notification)

    async def request_accepted(self, friendship: Friendship) -> None:
        self.db.expunge(friendship)
        try:
            name = await self._display_name(friendship.addressee_id)
            notification = await create_notification(
                self.db,
                friendship.requester_id,
                "friend_accepted",
                "Friend request accepted",
                f"{name} accepted your friend request",
                data={"friendship_id": friendship.id, "addressee_id": friendship.addressee_id},
            )
            activity = await record_activity(
                self.db,
                friendship.addressee_id,
                "friend_added",
                f"{name} made a new friend",
                metadata={"friend_id": friendship.requester_id},
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.warning("friend_accepted_notification_failed", friendship_id=friendship.id, exc_info=True)
        else:
            await push_notification(self.redis, notification)
            await publish_activity(self.redis, activity)
