"""Pydantic schemas for friends endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

FriendshipStatus = Literal["pending", "accepted", "declined", "blocked"]


class FriendRequestCreate(BaseModel):
    addressee_id: str


class FriendshipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    requester_id: str
    addressee_id: str
    status: FriendshipStatus
    created_at: datetime
    updated_at: datetime


class FriendshipStatusResponse(BaseModel):
    """Relationship between the caller and another user; status 'none' when no row exists."""

    status: Literal["none", "pending", "accepted", "declined", "blocked"]
    friendship: FriendshipResponse | None = None


class ProfileSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    display_name: str
    avatar_url: str | None = None
    level: int
    total_points: int
    current_streak: int


class FriendEntry(BaseModel):
    """One accepted friendship seen from one side."""

    friendship_id: str
    friend_id: str
    friend_username: str
    friend_display_name: str
    friend_avatar_url: str | None = None
    friend_streak: int
    friend_points: int
    status: Literal["online", "offline"] = "offline"
    created_at: datetime
    updated_at: datetime


class FriendListResponse(BaseModel):
    friends: list[FriendEntry]


class FriendRequestEntry(FriendshipResponse):
    requester: ProfileSummary | None = None
    addressee: ProfileSummary | None = None


class FriendRequestListResponse(BaseModel):
    requests: list[FriendRequestEntry]
