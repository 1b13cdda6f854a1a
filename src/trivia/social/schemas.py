"""Pydantic schemas for social endpoints (activity feed and notifications)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from trivia.friends.schemas import ProfileSummary

ActivityType = Literal[
    "quiz_completed",
    "perfect_score",
    "streak_milestone",
    "league_joined",
    "achievement_unlocked",
    "friend_added",
    "trash_talk",
]


# --- Activities ---


class ActivityCreate(BaseModel):
    activity_type: ActivityType
    content: str = Field(..., min_length=1, max_length=500)
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_public: bool = True


class ActivityResponse(BaseModel):
    id: str
    user_id: str
    activity_type: str
    content: str
    metadata: dict[str, Any]
    is_public: bool
    created_at: datetime
    user_profile: ProfileSummary | None = None
    likes_count: int = 0
    comments_count: int = 0
    user_liked: bool = False


class ActivityFeedResponse(BaseModel):
    activities: list[ActivityResponse]


class LikeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    activity_id: str
    user_id: str
    created_at: datetime


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    activity_id: str
    user_id: str
    content: str
    created_at: datetime
    user_profile: ProfileSummary | None = None


class CommentListResponse(BaseModel):
    comments: list[CommentResponse]


# --- Notifications ---


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    title: str
    message: str
    data: dict[str, Any]
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


class UnreadCountResponse(BaseModel):
    count: int


class MarkReadResponse(BaseModel):
    updated: int
