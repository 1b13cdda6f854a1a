"""Pydantic schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

USERNAME_PATTERN = r"^[A-Za-z0-9_]{3,32}$"


class ProfileCreate(BaseModel):
    username: str = Field(..., pattern=USERNAME_PATTERN)
    display_name: str = Field(..., min_length=1, max_length=64)
    avatar_url: str | None = Field(None, max_length=2048)


class ProfileUpdate(BaseModel):
    username: str | None = Field(None, pattern=USERNAME_PATTERN)
    display_name: str | None = Field(None, min_length=1, max_length=64)
    avatar_url: str | None = Field(None, max_length=2048)


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    display_name: str
    avatar_url: str | None = None
    level: int
    total_points: int
    current_streak: int
    longest_streak: int
    perfect_scores: int
    total_quizzes: int
    created_at: datetime
    updated_at: datetime


class LevelInfo(BaseModel):
    level: int
    title: str
    points_into_level: int
    points_for_level: int | None = None
    next_level: int | None = None
    next_title: str | None = None


class MyProfileResponse(ProfileResponse):
    level_info: LevelInfo


class ProfileListResponse(BaseModel):
    users: list[ProfileResponse]
