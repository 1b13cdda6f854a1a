"""User profile business logic."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from trivia.db.models import UserProfile
from trivia.errors import ProfileNotFound, UsernameTaken

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def get_profile(db: AsyncSession, user_id: str) -> UserProfile:
    result = await db.execute(select(UserProfile).where(UserProfile.id == user_id))
    profile = result.scalar_one_or_none()
    if profile is None:
        raise ProfileNotFound()
    return profile


async def require_profile(db: AsyncSession, user_id: str) -> None:
    """Raise ProfileNotFound unless the user has signed up. Rows owned by a user need one."""
    result = await db.execute(select(UserProfile.id).where(UserProfile.id == user_id))
    if result.first() is None:
        raise ProfileNotFound("Create a profile first")


async def _username_taken(db: AsyncSession, username: str, exclude_user_id: str | None = None) -> bool:
    query = select(UserProfile.id).where(func.lower(UserProfile.username) == username.lower())
    if exclude_user_id is not None:
        query = query.where(UserProfile.id != exclude_user_id)
    result = await db.execute(query)
    return result.first() is not None


async def create_profile(
    db: AsyncSession,
    user_id: str,
    username: str,
    display_name: str,
    avatar_url: str | None = None,
) -> UserProfile:
    """
    Create the profile row for a newly signed-up user.

    Raises:
        UsernameTaken: If the username is in use (case-insensitive) or the
            user already has a profile.
    """
    if await db.get(UserProfile, user_id) is not None:
        raise UsernameTaken("Profile already exists")
    if await _username_taken(db, username):
        raise UsernameTaken()

    profile = UserProfile(
        id=user_id,
        username=username,
        display_name=display_name,
        avatar_url=avatar_url,
    )
    db.add(profile)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise UsernameTaken("Profile or username already exists") from exc

    logger.info("profile_created", user_id=user_id, username=username)
    return profile


async def update_profile(
    db: AsyncSession,
    user_id: str,
    display_name: str | None = None,
    username: str | None = None,
    avatar_url: str | None = None,
) -> UserProfile:
    """
    Update user-editable profile fields. Quiz stats are never client-updatable.

    Raises:
        UsernameTaken: If the username is already taken (case-insensitive).
    """
    profile = await get_profile(db, user_id)

    if username is not None and username != profile.username:
        if await _username_taken(db, username, exclude_user_id=user_id):
            raise UsernameTaken()
        profile.username = username

    if display_name is not None:
        profile.display_name = display_name
    if avatar_url is not None:
        profile.avatar_url = avatar_url

    profile.updated_at = datetime.now(timezone.utc)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise UsernameTaken() from exc
    return profile


async def search_users(db: AsyncSession, query: str, limit: int = 20) -> list[UserProfile]:
    """Match username or display name (case-insensitive substring).

    Degrades to an empty list when the store is unreachable; clients fire
    this on every debounced keystroke.
    """
    query = query.strip()
    if not query:
        return []

    pattern = f"%{query}%"
    try:
        result = await db.execute(
            select(UserProfile)
            .where(or_(UserProfile.username.ilike(pattern), UserProfile.display_name.ilike(pattern)))
            .order_by(UserProfile.username.asc())
            .limit(limit)
        )
    except (OperationalError, InterfaceError):
        logger.warning("user_search_degraded", query=query, exc_info=True)
        return []
    return list(result.scalars().all())


async def get_leaderboard(db: AsyncSession, limit: int = 50) -> list[UserProfile]:
    """Global leaderboard by total points."""
    result = await db.execute(
        select(UserProfile)
        .order_by(UserProfile.total_points.desc(), UserProfile.current_streak.desc(), UserProfile.username.asc())
        .limit(limit)
    )
    return list(result.scalars().all())
