"""League API endpoints."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from trivia.auth.dependencies import get_current_user_id
from trivia.config import get_settings
from trivia.database import get_session
from trivia.db.models import League
from trivia.friends.schemas import ProfileSummary
from trivia.leagues import service
from trivia.leagues.schemas import (
    JoinByCodeRequest,
    LeaderboardEntry,
    LeagueCreate,
    LeagueLeaderboardResponse,
    LeagueListResponse,
    LeagueMemberListResponse,
    LeagueMemberResponse,
    LeagueResponse,
    LeagueUpdate,
    MembershipResponse,
)
from trivia.redis_client import get_optional_redis
from trivia.social.activity_service import publish_activity, record_activity

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/leagues", tags=["Leagues"])


# ── Helpers ──


def _build_league_response(league: League, member_count: int = 0, show_invite: bool = False) -> LeagueResponse:
    return LeagueResponse(
        id=league.id,
        name=league.name,
        description=league.description,
        creator_id=league.creator_id,
        icon=league.icon,
        is_private=league.is_private,
        max_members=league.max_members,
        member_count=member_count,
        season_start=league.season_start,
        season_end=league.season_end,
        is_active=league.is_active,
        created_at=league.created_at,
        invite_code=league.invite_code if show_invite else None,
    )


async def _announce_join(db: AsyncSession, redis: Any, user_id: str, league: League) -> None:
    """Post a league_joined feed entry. Failures never undo the join."""
    league_id = league.id
    try:
        activity = await record_activity(
            db,
            user_id,
            "league_joined",
            f"Joined the league {league.name}",
            metadata={"league_id": league.id, "league_name": league.name},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        logger.warning("league_joined_activity_failed", league_id=league_id, user_id=user_id, exc_info=True)
    else:
        await publish_activity(redis, activity)


# ── Endpoints ──


@router.get("", response_model=LeagueListResponse)
async def my_leagues(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> LeagueListResponse:
    leagues = await service.list_user_leagues(db, user_id)
    counts = await service.member_counts(db, [league.id for league in leagues])
    return LeagueListResponse(leagues=[
        _build_league_response(league, counts.get(league.id, 0), show_invite=True) for league in leagues
    ])


@router.get("/public", response_model=LeagueListResponse)
async def search_public_leagues(
    q: str | None = Query(None, max_length=64),
    _user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> LeagueListResponse:
    leagues = await service.search_public_leagues(db, q)
    counts = await service.member_counts(db, [league.id for league in leagues]) if leagues else {}
    return LeagueListResponse(leagues=[
        _build_league_response(league, counts.get(league.id, 0)) for league in leagues
    ])


@router.post("", response_model=LeagueResponse, status_code=status.HTTP_201_CREATED)
async def create_league(
    body: LeagueCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> LeagueResponse:
    league = await service.create_league(
        db,
        creator_id=user_id,
        name=body.name,
        description=body.description,
        icon=body.icon,
        is_private=body.is_private,
        max_members=body.max_members or get_settings().league_default_max_members,
        season_end=body.season_end,
    )
    return _build_league_response(league, member_count=1, show_invite=True)


@router.post("/join", response_model=MembershipResponse, status_code=status.HTTP_201_CREATED)
async def join_by_code(
    body: JoinByCodeRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: Any = Depends(get_optional_redis),
) -> MembershipResponse:
    league, membership = await service.join_by_code(db, user_id, body.invite_code)
    response = MembershipResponse.model_validate(membership)
    await _announce_join(db, redis, user_id, league)
    return response


@router.post("/{league_id}/join", response_model=MembershipResponse, status_code=status.HTTP_201_CREATED)
async def join_league(
    league_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: Any = Depends(get_optional_redis),
) -> MembershipResponse:
    league = await service.get_league(db, league_id)
    membership = await service.join_league(db, user_id, league_id)
    response = MembershipResponse.model_validate(membership)
    await _announce_join(db, redis, user_id, league)
    return response


@router.post("/{league_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_league(
    league_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> None:
    await service.leave_league(db, user_id, league_id)


@router.get("/{league_id}/members", response_model=LeagueMemberListResponse)
async def league_members(
    league_id: str,
    _user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> LeagueMemberListResponse:
    await service.get_league(db, league_id)
    rows = await service.get_league_members(db, league_id)
    return LeagueMemberListResponse(members=[
        LeagueMemberResponse(
            **MembershipResponse.model_validate(membership).model_dump(),
            user_profile=ProfileSummary.model_validate(profile),
        )
        for membership, profile in rows
    ])


@router.get("/{league_id}/leaderboard", response_model=LeagueLeaderboardResponse)
async def league_leaderboard(
    league_id: str,
    _user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> LeagueLeaderboardResponse:
    standings = await service.get_league_leaderboard(db, league_id)
    return LeagueLeaderboardResponse(
        league_id=league_id,
        entries=[
            LeaderboardEntry(
                rank=s.rank,
                user_id=s.user_profile.id,
                total_points=s.user_profile.total_points,
                perfect_scores=s.user_profile.perfect_scores,
                current_streak=s.user_profile.current_streak,
                quizzes_completed=s.user_profile.total_quizzes,
                average_score=s.average_score,
                user_profile=ProfileSummary.model_validate(s.user_profile),
            )
            for s in standings
        ],
    )


@router.patch("/{league_id}", response_model=LeagueResponse)
async def update_league(
    league_id: str,
    body: LeagueUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> LeagueResponse:
    league = await service.update_league(db, user_id, league_id, body.model_dump(exclude_unset=True))
    count = await service.count_active_members(db, league_id)
    return _build_league_response(league, count, show_invite=True)


@router.delete("/{league_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_league(
    league_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> None:
    await service.delete_league(db, user_id, league_id)
