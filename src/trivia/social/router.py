"""Social API endpoints: friend activity feed and notifications."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from trivia.auth.dependencies import get_current_user_id
from trivia.config import get_settings
from trivia.database import get_session
from trivia.db.models import UserActivity
from trivia.errors import NotFound
from trivia.friends.schemas import ProfileSummary
from trivia.redis_client import get_optional_redis
from trivia.social import activity_service, notification_service
from trivia.social.schemas import (
    ActivityCreate,
    ActivityFeedResponse,
    ActivityResponse,
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    LikeResponse,
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Social"])


def _build_activity_response(
    activity: UserActivity,
    likes_count: int = 0,
    comments_count: int = 0,
    user_liked: bool = False,
    include_profile: bool = True,
) -> ActivityResponse:
    profile = activity.user_profile if include_profile else None
    return ActivityResponse(
        id=activity.id,
        user_id=activity.user_id,
        activity_type=activity.activity_type,
        content=activity.content,
        metadata=activity.activity_metadata,
        is_public=activity.is_public,
        created_at=activity.created_at,
        user_profile=ProfileSummary.model_validate(profile) if profile is not None else None,
        likes_count=likes_count,
        comments_count=comments_count,
        user_liked=user_liked,
    )


# ── Activity feed ──


@router.get("/activities/feed", response_model=ActivityFeedResponse)
async def friend_activities(
    limit: int | None = Query(None, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> ActivityFeedResponse:
    limit = limit or get_settings().activity_feed_default_limit
    items = await activity_service.get_friend_activities(db, user_id, limit=limit)
    return ActivityFeedResponse(activities=[
        _build_activity_response(item.activity, item.likes_count, item.comments_count, item.user_liked)
        for item in items
    ])


@router.post("/activities", response_model=ActivityResponse, status_code=status.HTTP_201_CREATED)
async def create_activity(
    body: ActivityCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: Any = Depends(get_optional_redis),
) -> ActivityResponse:
    activity = await activity_service.record_activity(
        db,
        user_id,
        body.activity_type,
        body.content,
        metadata=body.metadata,
        is_public=body.is_public,
    )
    await db.commit()
    await activity_service.publish_activity(redis, activity)
    return _build_activity_response(activity, include_profile=False)


@router.post("/activities/{activity_id}/like", response_model=LikeResponse)
async def like_activity(
    activity_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> LikeResponse:
    like = await activity_service.like_activity(db, user_id, activity_id)
    return LikeResponse.model_validate(like)


@router.delete("/activities/{activity_id}/like", status_code=status.HTTP_204_NO_CONTENT)
async def unlike_activity(
    activity_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> None:
    await activity_service.unlike_activity(db, user_id, activity_id)


@router.get("/activities/{activity_id}/comments", response_model=CommentListResponse)
async def activity_comments(
    activity_id: str,
    _user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> CommentListResponse:
    comments = await activity_service.get_activity_comments(db, activity_id)
    return CommentListResponse(comments=[CommentResponse.model_validate(c) for c in comments])


@router.post(
    "/activities/{activity_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def comment_on_activity(
    activity_id: str,
    body: CommentCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> CommentResponse:
    comment = await activity_service.comment_on_activity(db, user_id, activity_id, body.content)
    return CommentResponse.model_validate(comment)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> None:
    await activity_service.delete_comment(db, user_id, comment_id)


# ── Notifications ──


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    limit: int | None = Query(None, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> NotificationListResponse:
    limit = limit or get_settings().notifications_default_limit
    notifications = await notification_service.get_notifications(db, user_id, limit=limit)
    unread = await notification_service.get_unread_count(db, user_id)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=unread,
    )


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> UnreadCountResponse:
    return UnreadCountResponse(count=await notification_service.get_unread_count(db, user_id))


@router.post("/notifications/{notification_id}/read", response_model=MarkReadResponse)
async def mark_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> MarkReadResponse:
    found = await notification_service.mark_as_read(db, user_id, notification_id)
    if not found:
        raise NotFound("Notification not found")
    await db.commit()
    return MarkReadResponse(updated=1)


@router.post("/notifications/read-all", response_model=MarkReadResponse)
async def mark_all_read(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> MarkReadResponse:
    updated = await notification_service.mark_all_as_read(db, user_id)
    await db.commit()
    return MarkReadResponse(updated=updated)
