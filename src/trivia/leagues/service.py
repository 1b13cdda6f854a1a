"""League business logic.

Rules:
- The creator joins their league on creation
- max_members caps active memberships (LeagueFull)
- Invite codes are server-generated, 8-char A-Z0-9, matched case-insensitively
- Leaving deactivates the membership; rejoining reactivates it
- Only the creator may update or delete a league; delete is a soft delete
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from trivia.db.models import League, LeagueMembership, UserProfile
from trivia.errors import AlreadyMember, LeagueFull, LeagueNotFound, NotFound, PermissionDenied
from trivia.leagues.invite_codes import generate_unique_invite_code, normalize_invite_code
from trivia.store import is_unique_violation
from trivia.users.service import require_profile

logger = logging.getLogger(__name__)

DEFAULT_ICON = "\U0001f3c6"
PUBLIC_SEARCH_LIMIT = 20

UPDATABLE_FIELDS = {"name", "description", "icon", "is_private", "max_members", "season_end"}


@dataclass
class LeagueStanding:
    user_profile: UserProfile
    joined_at: datetime
    rank: int

    @property
    def average_score(self) -> float:
        quizzes = self.user_profile.total_quizzes
        return round(self.user_profile.total_points / quizzes, 2) if quizzes else 0.0


async def get_league(db: AsyncSession, league_id: str, active_only: bool = True) -> League:
    query = select(League).where(League.id == league_id)
    if active_only:
        query = query.where(League.is_active.is_(True))
    result = await db.execute(query)
    league = result.scalar_one_or_none()
    if league is None:
        raise LeagueNotFound()
    return league


async def count_active_members(db: AsyncSession, league_id: str) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(LeagueMembership)
        .where(LeagueMembership.league_id == league_id, LeagueMembership.is_active.is_(True))
    )
    return result.scalar_one()


async def member_counts(db: AsyncSession, league_ids: list[str]) -> dict[str, int]:
    if not league_ids:
        return {}
    result = await db.execute(
        select(LeagueMembership.league_id, func.count())
        .where(LeagueMembership.league_id.in_(league_ids), LeagueMembership.is_active.is_(True))
        .group_by(LeagueMembership.league_id)
    )
    return {league_id: count for league_id, count in result.all()}


async def list_user_leagues(db: AsyncSession, user_id: str) -> list[League]:
    """Active leagues the user is an active member of, newest first."""
    result = await db.execute(
        select(League)
        .join(LeagueMembership, LeagueMembership.league_id == League.id)
        .where(
            LeagueMembership.user_id == user_id,
            LeagueMembership.is_active.is_(True),
            League.is_active.is_(True),
        )
        .order_by(League.created_at.desc())
    )
    return list(result.scalars().all())


async def create_league(
    db: AsyncSession,
    creator_id: str,
    name: str,
    description: str | None = None,
    icon: str | None = None,
    is_private: bool = False,
    max_members: int = 50,
    season_end: date | None = None,
) -> League:
    """Create a league; the creator becomes its first member."""
    await require_profile(db, creator_id)
    now = datetime.now(timezone.utc)
    league = League(
        name=name,
        description=description,
        creator_id=creator_id,
        icon=icon or DEFAULT_ICON,
        is_private=is_private,
        invite_code=await generate_unique_invite_code(db),
        max_members=max_members,
        season_start=now.date(),
        season_end=season_end,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(league)
    await db.flush()

    db.add(LeagueMembership(league_id=league.id, user_id=creator_id, joined_at=now, is_active=True))
    await db.commit()

    logger.info("League created: %s (id=%s, creator=%s)", name, league.id, creator_id)
    return league


async def join_league(db: AsyncSession, user_id: str, league_id: str) -> LeagueMembership:
    """Join an active league.

    Raises:
        LeagueNotFound: League missing or inactive.
        AlreadyMember: The user has an active membership.
        LeagueFull: Active memberships reached max_members.
        ProfileNotFound: The user has no profile.
    """
    league = await get_league(db, league_id)
    await require_profile(db, user_id)

    result = await db.execute(
        select(LeagueMembership).where(
            LeagueMembership.league_id == league_id,
            LeagueMembership.user_id == user_id,
        )
    )
    membership = result.scalar_one_or_none()
    if membership is not None and membership.is_active:
        raise AlreadyMember()

    if await count_active_members(db, league_id) >= league.max_members:
        raise LeagueFull()

    now = datetime.now(timezone.utc)
    if membership is None:
        membership = LeagueMembership(league_id=league_id, user_id=user_id, joined_at=now, is_active=True)
        db.add(membership)
    else:
        membership.is_active = True
        membership.joined_at = now

    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if not is_unique_violation(
            exc, "league_memberships_league_user_key", "league_memberships", ("league_id", "user_id")
        ):
            raise
        raise AlreadyMember() from exc

    logger.info("User %s joined league %s", user_id, league_id)
    return membership


async def join_by_code(db: AsyncSession, user_id: str, invite_code: str) -> tuple[League, LeagueMembership]:
    code = normalize_invite_code(invite_code)
    result = await db.execute(
        select(League).where(League.invite_code == code, League.is_active.is_(True))
    )
    league = result.scalar_one_or_none()
    if league is None:
        raise LeagueNotFound("Invalid invite code")
    return league, await join_league(db, user_id, league.id)


async def leave_league(db: AsyncSession, user_id: str, league_id: str) -> None:
    result = await db.execute(
        select(LeagueMembership).where(
            LeagueMembership.league_id == league_id,
            LeagueMembership.user_id == user_id,
            LeagueMembership.is_active.is_(True),
        )
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        raise NotFound("You are not a member of this league")

    membership.is_active = False
    await db.commit()
    logger.info("User %s left league %s", user_id, league_id)


async def get_league_members(db: AsyncSession, league_id: str) -> list[tuple[LeagueMembership, UserProfile]]:
    """Active members with profiles, in join order."""
    result = await db.execute(
        select(LeagueMembership, UserProfile)
        .join(UserProfile, UserProfile.id == LeagueMembership.user_id)
        .where(LeagueMembership.league_id == league_id, LeagueMembership.is_active.is_(True))
        .order_by(LeagueMembership.joined_at.asc())
    )
    return [(row.LeagueMembership, row.UserProfile) for row in result]


async def get_league_leaderboard(db: AsyncSession, league_id: str) -> list[LeagueStanding]:
    """Active members ranked by total points, then current streak."""
    await get_league(db, league_id)
    result = await db.execute(
        select(UserProfile, LeagueMembership.joined_at)
        .join(LeagueMembership, LeagueMembership.user_id == UserProfile.id)
        .where(LeagueMembership.league_id == league_id, LeagueMembership.is_active.is_(True))
        .order_by(
            UserProfile.total_points.desc(),
            UserProfile.current_streak.desc(),
            UserProfile.username.asc(),
        )
    )
    return [
        LeagueStanding(user_profile=profile, joined_at=joined_at, rank=rank)
        for rank, (profile, joined_at) in enumerate(result.all(), start=1)
    ]


async def search_public_leagues(db: AsyncSession, query: str | None = None) -> list[League]:
    """Public active leagues matching the name, newest first. Degrades to [] when the store is down."""
    stmt = select(League).where(League.is_private.is_(False), League.is_active.is_(True))
    if query and query.strip():
        stmt = stmt.where(League.name.ilike(f"%{query.strip()}%"))

    try:
        result = await db.execute(stmt.order_by(League.created_at.desc()).limit(PUBLIC_SEARCH_LIMIT))
    except (OperationalError, InterfaceError):
        logger.warning("League search degraded to empty result", exc_info=True)
        return []
    return list(result.scalars().all())


async def update_league(db: AsyncSession, user_id: str, league_id: str, updates: dict[str, Any]) -> League:
    """Apply creator edits. Unknown keys are ignored."""
    league = await get_league(db, league_id)
    if league.creator_id != user_id:
        raise PermissionDenied("Only the league creator can update it")

    for key, value in updates.items():
        if key in UPDATABLE_FIELDS:
            setattr(league, key, value)
    league.updated_at = datetime.now(timezone.utc)
    await db.commit()
    return league


async def delete_league(db: AsyncSession, user_id: str, league_id: str) -> None:
    league = await get_league(db, league_id)
    if league.creator_id != user_id:
        raise PermissionDenied("Only the league creator can delete it")

    league.is_active = False
    league.updated_at = datetime.now(timezone.utc)
    await db.commit()
    logger.info("League %s deleted by %s", league_id, user_id)
