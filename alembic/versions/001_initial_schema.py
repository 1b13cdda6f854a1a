"""Initial schema: profiles, quizzes, attempts, friendships, leagues, feed, notifications.

Ids are UUID strings (the profile id is the auth provider's user id).

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def _fk(name: str, target: str, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(name, sa.String(36), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def _timestamp(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def upgrade() -> None:
    # --- Users ---
    op.create_table(
        "user_profiles",
        _id(),
        sa.Column("username", sa.String(32), nullable=False, unique=True),
        sa.Column("display_name", sa.String(64), nullable=False),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("level", sa.Integer(), server_default="1", nullable=False),
        sa.Column("total_points", sa.Integer(), server_default="0", nullable=False),
        sa.Column("current_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("longest_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("perfect_scores", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_quizzes", sa.Integer(), server_default="0", nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.execute("CREATE UNIQUE INDEX ix_user_profiles_username_lower ON user_profiles (lower(username))")
    op.create_index("ix_user_profiles_total_points", "user_profiles", [sa.text("total_points DESC")])

    # --- Quizzes ---
    op.create_table(
        "quiz_categories",
        _id(),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(32), nullable=True),
        sa.Column("color", sa.String(16), server_default="#6366F1", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        _timestamp("created_at"),
    )
    op.create_table(
        "daily_quizzes",
        _id(),
        sa.Column("quiz_date", sa.Date(), nullable=False, unique=True),
        sa.Column("theme", sa.String(128), nullable=True),
        sa.Column("difficulty_level", sa.String(8), server_default="medium", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        _timestamp("created_at"),
    )
    op.execute(
        "ALTER TABLE daily_quizzes ADD CONSTRAINT ck_daily_quizzes_difficulty "
        "CHECK (difficulty_level IN ('easy', 'medium', 'hard'))"
    )
    op.create_table(
        "quiz_questions",
        _id(),
        _fk("daily_quiz_id", "daily_quizzes.id"),
        _fk("category_id", "quiz_categories.id", nullable=True, ondelete="SET NULL"),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("question_order", sa.Integer(), nullable=False),
        sa.Column("difficulty", sa.String(8), server_default="medium", nullable=False),
        sa.Column("explanation", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.UniqueConstraint("daily_quiz_id", "question_order", name="quiz_questions_quiz_order_key"),
    )
    op.create_index("ix_quiz_questions_daily_quiz_id", "quiz_questions", ["daily_quiz_id"])
    op.create_table(
        "question_options",
        _id(),
        _fk("question_id", "quiz_questions.id"),
        sa.Column("option_text", sa.Text(), nullable=False),
        sa.Column("option_order", sa.Integer(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), server_default="false", nullable=False),
    )
    op.create_index("ix_question_options_question_id", "question_options", ["question_id"])
    # At most one correct option per question; "exactly one" is verified when grading
    op.create_index(
        "ix_question_options_one_correct",
        "question_options",
        ["question_id"],
        unique=True,
        postgresql_where=sa.text("is_correct"),
    )

    # --- Attempts ---
    op.create_table(
        "user_quiz_attempts",
        _id(),
        _fk("user_id", "user_profiles.id"),
        _fk("daily_quiz_id", "daily_quizzes.id"),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("time_taken", sa.Integer(), nullable=True),
        _timestamp("completed_at"),
        _timestamp("created_at"),
        sa.UniqueConstraint("user_id", "daily_quiz_id", name="user_quiz_attempts_user_quiz_key"),
        sa.CheckConstraint("score >= 0 AND score <= total_questions", name="ck_user_quiz_attempts_score"),
    )
    op.create_index("ix_user_quiz_attempts_user_id", "user_quiz_attempts", ["user_id"])
    op.create_table(
        "user_question_answers",
        _id(),
        _fk("attempt_id", "user_quiz_attempts.id"),
        _fk("question_id", "quiz_questions.id"),
        _fk("selected_option_id", "question_options.id", nullable=True, ondelete="SET NULL"),
        sa.Column("is_correct", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("time_taken", sa.Integer(), nullable=True),
        _timestamp("answered_at"),
        sa.UniqueConstraint("attempt_id", "question_id", name="user_question_answers_attempt_question_key"),
    )
    op.create_index("ix_user_question_answers_attempt_id", "user_question_answers", ["attempt_id"])

    # --- Friendships ---
    op.create_table(
        "friendships",
        _id(),
        _fk("requester_id", "user_profiles.id"),
        _fk("addressee_id", "user_profiles.id"),
        sa.Column("user_low_id", sa.String(36), nullable=False),
        sa.Column("user_high_id", sa.String(36), nullable=False),
        sa.Column("status", sa.String(16), server_default="pending", nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("user_low_id", "user_high_id", name="friendships_pair_key"),
        sa.CheckConstraint("requester_id <> addressee_id", name="ck_friendships_not_self"),
        sa.CheckConstraint("user_low_id < user_high_id", name="ck_friendships_canonical_pair"),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'blocked')", name="ck_friendships_status"
        ),
    )
    op.create_index("ix_friendships_requester_id", "friendships", ["requester_id"])
    op.create_index("ix_friendships_addressee_id", "friendships", ["addressee_id"])

    # --- Leagues ---
    op.create_table(
        "leagues",
        _id(),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _fk("creator_id", "user_profiles.id"),
        sa.Column("icon", sa.String(16), server_default="\U0001f3c6", nullable=False),
        sa.Column("is_private", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("invite_code", sa.String(8), nullable=False, unique=True),
        sa.Column("max_members", sa.Integer(), server_default="50", nullable=False),
        sa.Column("season_start", sa.Date(), server_default=sa.text("CURRENT_DATE"), nullable=False),
        sa.Column("season_end", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_table(
        "league_memberships",
        _id(),
        _fk("league_id", "leagues.id"),
        _fk("user_id", "user_profiles.id"),
        _timestamp("joined_at"),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.UniqueConstraint("league_id", "user_id", name="league_memberships_league_user_key"),
    )
    op.create_index("ix_league_memberships_league_id", "league_memberships", ["league_id"])
    op.create_index("ix_league_memberships_user_id", "league_memberships", ["user_id"])

    # --- Social ---
    op.create_table(
        "user_activities",
        _id(),
        _fk("user_id", "user_profiles.id"),
        sa.Column("activity_type", sa.String(32), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("metadata", postgresql.JSONB(), server_default="{}", nullable=False),
        sa.Column("is_public", sa.Boolean(), server_default="true", nullable=False),
        _timestamp("created_at"),
    )
    op.create_index("ix_user_activities_user_created", "user_activities", ["user_id", sa.text("created_at DESC")])
    op.create_table(
        "activity_likes",
        _id(),
        _fk("activity_id", "user_activities.id"),
        _fk("user_id", "user_profiles.id"),
        _timestamp("created_at"),
        sa.UniqueConstraint("activity_id", "user_id", name="activity_likes_activity_user_key"),
    )
    op.create_index("ix_activity_likes_activity_id", "activity_likes", ["activity_id"])
    op.create_table(
        "activity_comments",
        _id(),
        _fk("activity_id", "user_activities.id"),
        _fk("user_id", "user_profiles.id"),
        sa.Column("content", sa.Text(), nullable=False),
        _timestamp("created_at"),
    )
    op.create_index("ix_activity_comments_activity_id", "activity_comments", ["activity_id"])

    # --- Notifications ---
    op.create_table(
        "notifications",
        _id(),
        _fk("user_id", "user_profiles.id"),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", postgresql.JSONB(), server_default="{}", nullable=False),
        sa.Column("is_read", sa.Boolean(), server_default="false", nullable=False),
        _timestamp("created_at"),
    )
    op.create_index(
        "ix_notifications_user_unread",
        "notifications",
        ["user_id"],
        postgresql_where=sa.text("is_read = false"),
    )


def downgrade() -> None:
    for table in (
        "notifications",
        "activity_comments",
        "activity_likes",
        "user_activities",
        "league_memberships",
        "leagues",
        "friendships",
        "user_question_answers",
        "user_quiz_attempts",
        "question_options",
        "quiz_questions",
        "daily_quizzes",
        "quiz_categories",
        "user_profiles",
    ):
        op.drop_table(table)
