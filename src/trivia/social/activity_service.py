"""User activity feed: recording, friend feed, likes and comments."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from trivia.db.models import ActivityComment, ActivityLike, Friendship, UserActivity
from trivia.errors import ActivityNotFound, NotFound, PermissionDenied
from trivia.realtime.publisher import publish_event
from trivia.store import is_unique_violation
from trivia.users.service import require_profile

logger = structlog.get_logger()

ACTIVITIES_TOPIC = "activities"

VALID_ACTIVITY_TYPES = {
    "quiz_completed",
    "perfect_score",
    "streak_milestone",
    "league_joined",
    "achievement_unlocked",
    "friend_added",
    "trash_talk",
}


@dataclass
class FeedItem:
    activity: UserActivity
    likes_count: int
    comments_count: int
    user_liked: bool


def activity_payload(activity: UserActivity) -> dict[str, Any]:
    return {
        "event": "activity",
        "data": {
            "id": activity.id,
            "user_id": activity.user_id,
            "activity_type": activity.activity_type,
            "content": activity.content,
            "metadata": activity.activity_metadata,
            "created_at": activity.created_at.isoformat() if activity.created_at else None,
        },
    }


async def record_activity(
    db: AsyncSession,
    user_id: str,
    activity_type: str,
    content: str,
    metadata: dict[str, Any] | None = None,
    is_public: bool = True,
) -> UserActivity:
    """Record a user activity for the feed.

    The caller commits, then hands the activity to ``publish_activity``.
    """
    if activity_type not in VALID_ACTIVITY_TYPES:
        raise ValueError(f"Invalid activity type: {activity_type}")
    await require_profile(db, user_id)

    activity = UserActivity(
        user_id=user_id,
        activity_type=activity_type,
        content=content,
        activity_metadata=metadata or {},
        is_public=is_public,
        created_at=datetime.now(timezone.utc),
    )
    db.add(activity)
    await db.flush()
    return activity


async def publish_activity(redis: Any | None, *activities: UserActivity) -> None:
    """Announce committed public activities on the activities topic."""
    for activity in activities:
        if activity.is_public:
            await publish_event(redis, ACTIVITIES_TOPIC, activity_payload(activity))


def _friend_ids(user_id: str):
    """Subquery of the ids of the user's accepted friends."""
    other = case(
        (Friendship.requester_id == user_id, Friendship.addressee_id),
        else_=Friendship.requester_id,
    )
    return select(other).where(
        Friendship.status == "accepted",
        or_(Friendship.requester_id == user_id, Friendship.addressee_id == user_id),
    )


async def get_friend_activities(db: AsyncSession, user_id: str, limit: int = 20) -> list[FeedItem]:
    """Public activities of accepted friends, newest first, with like/comment counts."""
    likes_count = (
        select(func.count(ActivityLike.id))
        .where(ActivityLike.activity_id == UserActivity.id)
        .correlate(UserActivity)
        .scalar_subquery()
    )
    comments_count = (
        select(func.count(ActivityComment.id))
        .where(ActivityComment.activity_id == UserActivity.id)
        .correlate(UserActivity)
        .scalar_subquery()
    )
    result = await db.execute(
        select(UserActivity, likes_count, comments_count)
        .options(selectinload(UserActivity.user_profile))
        .where(
            UserActivity.is_public.is_(True),
            UserActivity.user_id.in_(_friend_ids(user_id)),
        )
        .order_by(UserActivity.created_at.desc())
        .limit(limit)
    )
    rows = result.all()
    if not rows:
        return []

    liked_result = await db.execute(
        select(ActivityLike.activity_id).where(
            ActivityLike.user_id == user_id,
            ActivityLike.activity_id.in_([row[0].id for row in rows]),
        )
    )
    liked = set(liked_result.scalars().all())

    return [
        FeedItem(
            activity=activity,
            likes_count=likes or 0,
            comments_count=comments or 0,
            user_liked=activity.id in liked,
        )
        for activity, likes, comments in rows
    ]


async def _get_activity(db: AsyncSession, activity_id: str) -> UserActivity:
    result = await db.execute(select(UserActivity).where(UserActivity.id == activity_id))
    activity = result.scalar_one_or_none()
    if activity is None:
        raise ActivityNotFound()
    return activity


async def like_activity(db: AsyncSession, user_id: str, activity_id: str) -> ActivityLike:
    """Like an activity. Liking twice returns the existing like."""
    await _get_activity(db, activity_id)
    await require_profile(db, user_id)

    existing = await db.execute(
        select(ActivityLike).where(ActivityLike.activity_id == activity_id, ActivityLike.user_id == user_id)
    )
    like = existing.scalar_one_or_none()
    if like is not None:
        return like

    like = ActivityLike(activity_id=activity_id, user_id=user_id)
    db.add(like)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if not is_unique_violation(exc, "activity_likes_activity_user_key", "activity_likes", ("activity_id", "user_id")):
            raise
        # A concurrent like from the same user won the insert.
        existing = await db.execute(
            select(ActivityLike).where(ActivityLike.activity_id == activity_id, ActivityLike.user_id == user_id)
        )
        return existing.scalar_one()
    return like


async def unlike_activity(db: AsyncSession, user_id: str, activity_id: str) -> None:
    await db.execute(
        delete(ActivityLike).where(ActivityLike.activity_id == activity_id, ActivityLike.user_id == user_id)
    )
    await db.commit()


async def comment_on_activity(db: AsyncSession, user_id: str, activity_id: str, content: str) -> ActivityComment:
    await _get_activity(db, activity_id)
    await require_profile(db, user_id)

    comment = ActivityComment(activity_id=activity_id, user_id=user_id, content=content)
    db.add(comment)
    await db.commit()

    result = await db.execute(
        select(ActivityComment)
        .options(selectinload(ActivityComment.user_profile))
        .where(ActivityComment.id == comment.id)
    )
    return result.scalar_one()


async def get_activity_comments(db: AsyncSession, activity_id: str) -> list[ActivityComment]:
    """Comments on an activity, oldest first."""
    result = await db.execute(
        select(ActivityComment)
        .options(selectinload(ActivityComment.user_profile))
        .where(ActivityComment.activity_id == activity_id)
        .order_by(ActivityComment.created_at.asc())
    )
    return list(result.scalars().all())


async def delete_comment(db: AsyncSession, user_id: str, comment_id: str) -> None:
    """Delete a comment. Only its author may delete it."""
    result = await db.execute(select(ActivityComment).where(ActivityComment.id == comment_id))
    comment = result.scalar_one_or_none()
    if comment is None:
        raise NotFound("Comment not found")
    if comment.user_id != user_id:
        raise PermissionDenied("Only the author can delete a comment")

    await db.delete(comment)
    await db.commit()
    logger.info("comment_deleted", comment_id=comment_id, user_id=user_id)
