"""Pydantic schemas for league endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from trivia.friends.schemas import ProfileSummary


class LeagueCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=64)
    description: str | None = Field(None, max_length=500)
    icon: str | None = Field(None, max_length=16)
    is_private: bool = False
    max_members: int | None = Field(None, ge=2, le=500)
    season_end: date | None = None


class LeagueUpdate(BaseModel):
    name: str | None = Field(None, min_length=3, max_length=64)
    description: str | None = Field(None, max_length=500)
    icon: str | None = Field(None, max_length=16)
    is_private: bool | None = None
    max_members: int | None = Field(None, ge=2, le=500)
    season_end: date | None = None


class JoinByCodeRequest(BaseModel):
    invite_code: str = Field(..., min_length=8, max_length=8)


class LeagueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    creator_id: str
    icon: str
    is_private: bool
    max_members: int
    member_count: int = 0
    season_start: date
    season_end: date | None = None
    is_active: bool
    created_at: datetime
    invite_code: str | None = None  # Only shown to members


class LeagueListResponse(BaseModel):
    leagues: list[LeagueResponse]


class MembershipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    league_id: str
    user_id: str
    joined_at: datetime
    is_active: bool


class LeagueMemberResponse(MembershipResponse):
    user_profile: ProfileSummary


class LeagueMemberListResponse(BaseModel):
    members: list[LeagueMemberResponse]


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    total_points: int
    perfect_scores: int
    current_streak: int
    quizzes_completed: int
    average_score: float
    user_profile: ProfileSummary


class LeagueLeaderboardResponse(BaseModel):
    league_id: str
    entries: list[LeaderboardEntry]
