"""SQLAlchemy implementation of the TriviaStore capability."""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timezone
from typing import Any, ParamSpec, TypeVar

import structlog
from sqlalchemy import case, delete, or_, select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from trivia.db.models import (
    DailyQuiz,
    Friendship,
    QuizQuestion,
    UserProfile,
    UserQuestionAnswer,
    UserQuizAttempt,
)
from trivia.errors import AlreadyCompleted, DuplicateRequest, FriendshipNotFound, ProfileNotFound, StoreUnavailable
from trivia.store.protocol import RequestDirection

logger = structlog.get_logger()

P = ParamSpec("P")
T = TypeVar("T")


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    """Order a user pair so (a, b) and (b, a) map to the same key."""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


def is_unique_violation(exc: IntegrityError, constraint: str, table: str, columns: tuple[str, ...]) -> bool:
    """Whether ``exc`` comes from the named unique constraint.

    PostgreSQL reports the constraint name; SQLite only lists the columns.
    """
    message = str(exc.orig)
    if constraint in message:
        return True
    return "UNIQUE constraint failed" in message and all(f"{table}.{column}" in message for column in columns)


def _translate_errors(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
    """Surface driver/transport failures as StoreUnavailable."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return await func(*args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            logger.error("store_unavailable", operation=func.__name__, error=str(exc))
            raise StoreUnavailable() from exc

    return wrapper


class SqlTriviaStore:
    """TriviaStore backed by a request-scoped AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # --- Quizzes ---

    @_translate_errors
    async def get_active_quiz_by_date(self, quiz_date: date) -> DailyQuiz | None:
        result = await self.session.execute(
            select(DailyQuiz).where(DailyQuiz.quiz_date == quiz_date, DailyQuiz.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    @_translate_errors
    async def get_quiz(self, quiz_id: str) -> DailyQuiz | None:
        result = await self.session.execute(select(DailyQuiz).where(DailyQuiz.id == quiz_id))
        return result.scalar_one_or_none()

    @_translate_errors
    async def get_questions_with_options(self, quiz_id: str) -> list[QuizQuestion]:
        result = await self.session.execute(
            select(QuizQuestion)
            .where(QuizQuestion.daily_quiz_id == quiz_id)
            .options(selectinload(QuizQuestion.options), selectinload(QuizQuestion.category))
            .order_by(QuizQuestion.question_order)
        )
        return list(result.scalars().all())

    # --- Attempts ---

    @_translate_errors
    async def get_attempt(self, user_id: str, quiz_id: str) -> UserQuizAttempt | None:
        result = await self.session.execute(
            select(UserQuizAttempt).where(
                UserQuizAttempt.user_id == user_id,
                UserQuizAttempt.daily_quiz_id == quiz_id,
            )
        )
        return result.scalar_one_or_none()

    @_translate_errors
    async def list_attempts(self, user_id: str) -> list[UserQuizAttempt]:
        """All attempts of a user, oldest first."""
        result = await self.session.execute(
            select(UserQuizAttempt)
            .where(UserQuizAttempt.user_id == user_id)
            .order_by(UserQuizAttempt.completed_at.asc(), UserQuizAttempt.created_at.asc())
        )
        return list(result.scalars().all())

    @_translate_errors
    async def insert_attempt(self, attempt: UserQuizAttempt) -> UserQuizAttempt:
        """Insert an attempt; the (user_id, daily_quiz_id) constraint rejects duplicates."""
        user_id, quiz_id = attempt.user_id, attempt.daily_quiz_id
        self.session.add(attempt)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            if not is_unique_violation(
                exc, "user_quiz_attempts_user_quiz_key", "user_quiz_attempts", ("user_id", "daily_quiz_id")
            ):
                raise
            logger.warning("attempt_conflict", user_id=user_id, quiz_id=quiz_id)
            raise AlreadyCompleted() from exc
        return attempt

    @_translate_errors
    async def insert_answers(self, answers: list[UserQuestionAnswer]) -> None:
        self.session.add_all(answers)
        await self.session.flush()

    # --- Profiles ---

    @_translate_errors
    async def get_profile(self, user_id: str) -> UserProfile | None:
        result = await self.session.execute(select(UserProfile).where(UserProfile.id == user_id))
        return result.scalar_one_or_none()

    @_translate_errors
    async def update_profile(self, user_id: str, patch: dict[str, Any]) -> UserProfile:
        profile = await self.get_profile(user_id)
        if profile is None:
            raise ProfileNotFound()
        for key, value in patch.items():
            setattr(profile, key, value)
        profile.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return profile

    # --- Friendships ---

    @_translate_errors
    async def find_friendship(self, user_a: str, user_b: str) -> Friendship | None:
        """Symmetric lookup: the row for {user_a, user_b} in either direction."""
        low, high = canonical_pair(user_a, user_b)
        result = await self.session.execute(
            select(Friendship).where(Friendship.user_low_id == low, Friendship.user_high_id == high)
        )
        return result.scalar_one_or_none()

    @_translate_errors
    async def get_friendship(self, friendship_id: str) -> Friendship | None:
        result = await self.session.execute(select(Friendship).where(Friendship.id == friendship_id))
        return result.scalar_one_or_none()

    @_translate_errors
    async def insert_friendship(self, requester_id: str, addressee_id: str, status: str) -> Friendship:
        """Insert a friendship; the canonical pair constraint rejects a second row for the pair."""
        low, high = canonical_pair(requester_id, addressee_id)
        friendship = Friendship(
            requester_id=requester_id,
            addressee_id=addressee_id,
            user_low_id=low,
            user_high_id=high,
            status=status,
        )
        self.session.add(friendship)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            if not is_unique_violation(exc, "friendships_pair_key", "friendships", ("user_low_id", "user_high_id")):
                raise
            logger.warning("friendship_conflict", requester_id=requester_id, addressee_id=addressee_id)
            raise DuplicateRequest() from exc
        return friendship

    @_translate_errors
    async def update_friendship_status(self, friendship_id: str, status: str) -> Friendship:
        friendship = await self.get_friendship(friendship_id)
        if friendship is None:
            raise FriendshipNotFound()
        friendship.status = status
        friendship.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return friendship

    @_translate_errors
    async def delete_friendship(self, friendship_id: str) -> None:
        await self.session.execute(delete(Friendship).where(Friendship.id == friendship_id))
        await self.session.flush()

    @_translate_errors
    async def list_friends(self, user_id: str) -> list[tuple[Friendship, UserProfile]]:
        """Accepted friendships of a user, each joined with the other side's profile."""
        friend_id = case(
            (Friendship.requester_id == user_id, Friendship.addressee_id),
            else_=Friendship.requester_id,
        )
        result = await self.session.execute(
            select(Friendship, UserProfile)
            .join(UserProfile, UserProfile.id == friend_id)
            .where(
                Friendship.status == "accepted",
                or_(Friendship.requester_id == user_id, Friendship.addressee_id == user_id),
            )
            .order_by(UserProfile.display_name.asc())
        )
        return [(row.Friendship, row.UserProfile) for row in result]

    @_translate_errors
    async def list_pending_requests(
        self, user_id: str, direction: RequestDirection
    ) -> list[tuple[Friendship, UserProfile]]:
        """Pending requests addressed to (received) or sent by (sent) the user, newest first."""
        if direction == "received":
            own_side, other_side = Friendship.addressee_id, Friendship.requester_id
        else:
            own_side, other_side = Friendship.requester_id, Friendship.addressee_id

        result = await self.session.execute(
            select(Friendship, UserProfile)
            .join(UserProfile, UserProfile.id == other_side)
            .where(own_side == user_id, Friendship.status == "pending")
            .order_by(Friendship.created_at.desc())
        )
        return [(row.Friendship, row.UserProfile) for row in result]

    # --- Unit of work ---

    @_translate_errors
    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
