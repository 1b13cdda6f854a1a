"""User profile API endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from trivia.auth.dependencies import get_current_user_id
from trivia.config import get_settings
from trivia.database import get_session
from trivia.db.models import UserProfile
from trivia.quiz.engine import ScoringEngine
from trivia.quiz.levels import compute_level
from trivia.store import SqlTriviaStore
from trivia.users import service
from trivia.users.schemas import (
    LevelInfo,
    MyProfileResponse,
    ProfileCreate,
    ProfileListResponse,
    ProfileResponse,
    ProfileUpdate,
)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


def _my_profile_response(profile: UserProfile) -> MyProfileResponse:
    return MyProfileResponse(
        **ProfileResponse.model_validate(profile).model_dump(),
        level_info=LevelInfo(**asdict(compute_level(profile.total_points))),
    )


@router.get("/me", response_model=MyProfileResponse)
async def get_my_profile(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> MyProfileResponse:
    return _my_profile_response(await service.get_profile(db, user_id))


@router.post("/me", response_model=MyProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_my_profile(
    body: ProfileCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> MyProfileResponse:
    profile = await service.create_profile(db, user_id, body.username, body.display_name, body.avatar_url)
    return _my_profile_response(profile)


@router.patch("/me", response_model=MyProfileResponse)
async def update_my_profile(
    body: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> MyProfileResponse:
    profile = await service.update_profile(
        db,
        user_id,
        display_name=body.display_name,
        username=body.username,
        avatar_url=body.avatar_url,
    )
    return _my_profile_response(profile)


@router.post("/me/stats/reconcile", response_model=MyProfileResponse)
async def reconcile_my_stats(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> MyProfileResponse:
    """Recompute the caller's stats from their attempt history."""
    profile = await ScoringEngine(SqlTriviaStore(db)).reconcile_stats(user_id)
    return _my_profile_response(profile)


@router.get("/search", response_model=ProfileListResponse)
async def search_users(
    q: str = Query("", max_length=64),
    limit: int | None = Query(None, ge=1, le=50),
    _user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> ProfileListResponse:
    limit = limit or get_settings().search_result_limit
    users = await service.search_users(db, q, limit=limit)
    return ProfileListResponse(users=[ProfileResponse.model_validate(u) for u in users])


@router.get("/leaderboard", response_model=ProfileListResponse)
async def leaderboard(
    limit: int | None = Query(None, ge=1, le=200),
    db: AsyncSession = Depends(get_session),
) -> ProfileListResponse:
    limit = limit or get_settings().leaderboard_default_limit
    users = await service.get_leaderboard(db, limit=limit)
    return ProfileListResponse(users=[ProfileResponse.model_validate(u) for u in users])


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_user_profile(
    user_id: str,
    _caller_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    return ProfileResponse.model_validate(await service.get_profile(db, user_id))
