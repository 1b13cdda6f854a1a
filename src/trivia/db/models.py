"""ORM models for the trivia schema.

Column defaults are set on the Python side as well as in the database so that
freshly flushed rows are fully populated without a refresh round trip (async
sessions cannot lazy-load expired attributes).
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
    true,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trivia.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _id_column() -> Mapped[str]:
    return mapped_column(String(36), primary_key=True, default=_uuid)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserProfile(Base):
    """Identity plus cumulative quiz stats. The id is the auth provider's user id."""

    __tablename__ = "user_profiles"

    id: Mapped[str] = _id_column()
    username: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(64), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    perfect_scores: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    total_quizzes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


# ---------------------------------------------------------------------------
# Quizzes
# ---------------------------------------------------------------------------


class QuizCategory(Base):
    __tablename__ = "quiz_categories"

    id: Mapped[str] = _id_column()
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(String(32), nullable=True)
    color: Mapped[str] = mapped_column(String(16), nullable=False, default="#6366F1")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class DailyQuiz(Base):
    """One quiz per calendar date. Immutable once published; is_active gates visibility."""

    __tablename__ = "daily_quizzes"

    id: Mapped[str] = _id_column()
    quiz_date: Mapped[date] = mapped_column(Date, unique=True, nullable=False)
    theme: Mapped[str | None] = mapped_column(String(128), nullable=True)
    difficulty_level: Mapped[str] = mapped_column(String(8), nullable=False, default="medium")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    questions: Mapped[list[QuizQuestion]] = relationship(
        "QuizQuestion", back_populates="quiz", order_by="QuizQuestion.question_order"
    )


class QuizQuestion(Base):
    __tablename__ = "quiz_questions"

    id: Mapped[str] = _id_column()
    daily_quiz_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("daily_quizzes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("quiz_categories.id", ondelete="SET NULL"), nullable=True
    )
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    question_order: Mapped[int] = mapped_column(Integer, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(8), nullable=False, default="medium")
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    quiz: Mapped[DailyQuiz] = relationship("DailyQuiz", back_populates="questions")
    category: Mapped[QuizCategory | None] = relationship("QuizCategory")
    options: Mapped[list[QuestionOption]] = relationship(
        "QuestionOption",
        back_populates="question",
        order_by="QuestionOption.option_order",
        cascade="all, delete-orphan",
    )


class QuestionOption(Base):
    __tablename__ = "question_options"

    id: Mapped[str] = _id_column()
    question_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    option_text: Mapped[str] = mapped_column(Text, nullable=False)
    option_order: Mapped[int] = mapped_column(Integer, nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    question: Mapped[QuizQuestion] = relationship("QuizQuestion", back_populates="options")


class UserQuizAttempt(Base):
    """A user's scored attempt at a daily quiz. At most one per (user, quiz)."""

    __tablename__ = "user_quiz_attempts"
    __table_args__ = (
        UniqueConstraint("user_id", "daily_quiz_id", name="user_quiz_attempts_user_quiz_key"),
    )

    id: Mapped[str] = _id_column()
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    daily_quiz_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("daily_quizzes.id", ondelete="CASCADE"), nullable=False
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    time_taken: Mapped[int | None] = mapped_column(Integer, nullable=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    daily_quiz: Mapped[DailyQuiz] = relationship("DailyQuiz")


class UserQuestionAnswer(Base):
    __tablename__ = "user_question_answers"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="user_question_answers_attempt_question_key"),
    )

    id: Mapped[str] = _id_column()
    attempt_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_quiz_attempts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False
    )
    selected_option_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("question_options.id", ondelete="SET NULL"), nullable=True
    )
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    time_taken: Mapped[int | None] = mapped_column(Integer, nullable=True)
    answered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    question: Mapped[QuizQuestion] = relationship("QuizQuestion")
    selected_option: Mapped[QuestionOption | None] = relationship("QuestionOption")


# ---------------------------------------------------------------------------
# Friends
# ---------------------------------------------------------------------------


class Friendship(Base):
    """Directed requester -> addressee edge.

    user_low_id/user_high_id hold the pair in canonical order; their unique
    constraint allows one row per unordered pair regardless of direction.
    """

    __tablename__ = "friendships"
    __table_args__ = (
        UniqueConstraint("user_low_id", "user_high_id", name="friendships_pair_key"),
    )

    id: Mapped[str] = _id_column()
    requester_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    addressee_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_low_id: Mapped[str] = mapped_column(String(36), nullable=False)
    user_high_id: Mapped[str] = mapped_column(String(36), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def other_party(self, user_id: str) -> str:
        return self.addressee_id if self.requester_id == user_id else self.requester_id

    def involves(self, user_id: str) -> bool:
        return user_id in (self.requester_id, self.addressee_id)


# ---------------------------------------------------------------------------
# Leagues
# ---------------------------------------------------------------------------


class League(Base):
    __tablename__ = "leagues"

    id: Mapped[str] = _id_column()
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    creator_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    icon: Mapped[str] = mapped_column(String(16), nullable=False, default="\U0001f3c6")
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    invite_code: Mapped[str] = mapped_column(String(8), unique=True, nullable=False)
    max_members: Mapped[int] = mapped_column(Integer, nullable=False, default=50, server_default="50")
    season_start: Mapped[date] = mapped_column(Date, nullable=False, default=lambda: _utcnow().date())
    season_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    creator: Mapped[UserProfile] = relationship("UserProfile")


class LeagueMembership(Base):
    __tablename__ = "league_memberships"
    __table_args__ = (
        UniqueConstraint("league_id", "user_id", name="league_memberships_league_user_key"),
    )

    id: Mapped[str] = _id_column()
    league_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("leagues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())


# ---------------------------------------------------------------------------
# Social
# ---------------------------------------------------------------------------


class UserActivity(Base):
    """Feed item shown to the user's friends."""

    __tablename__ = "user_activities"

    id: Mapped[str] = _id_column()
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    activity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    activity_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSONType, nullable=False, default=dict)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user_profile: Mapped[UserProfile] = relationship("UserProfile")


class ActivityLike(Base):
    __tablename__ = "activity_likes"
    __table_args__ = (
        UniqueConstraint("activity_id", "user_id", name="activity_likes_activity_user_key"),
    )

    id: Mapped[str] = _id_column()
    activity_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_activities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class ActivityComment(Base):
    __tablename__ = "activity_comments"

    id: Mapped[str] = _id_column()
    activity_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_activities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user_profile: Mapped[UserProfile] = relationship("UserProfile")


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    """Persisted user notifications."""

    __tablename__ = "notifications"

    id: Mapped[str] = _id_column()
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
