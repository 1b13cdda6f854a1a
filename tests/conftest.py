"""Shared test fixtures.

Store-backed tests run against an in-memory SQLite database (aiosqlite) with
the schema created from the ORM metadata for every test and foreign keys
enforced. Redis is never initialised: rate limiting passes requests through
and realtime events are delivered on the in-process hub.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import date, datetime, timedelta, timezone

os.environ.setdefault("TRIVIA_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TRIVIA_JWT_SECRET", "test-secret-for-trivia-api-tests-0123456789")
os.environ.setdefault("TRIVIA_LOG_FORMAT", "console")

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from trivia.config import get_settings
from trivia.database import enable_sqlite_foreign_keys, get_session
from trivia.db import models  # noqa: F401
from trivia.db.base import Base
from trivia.db.models import DailyQuiz, QuestionOption, QuizCategory, QuizQuestion, UserProfile

get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(eng)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for service calls and assertions."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, sessions bound to the test database."""
    from trivia.main import create_app

    app = create_app()

    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def auth_headers(user_id: str) -> dict[str, str]:
    from trivia.auth.jwt import create_access_token

    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


# ---------------------------------------------------------------------------
# Data builders
# ---------------------------------------------------------------------------


async def make_profile(
    db: AsyncSession,
    username: str,
    display_name: str | None = None,
    **stats: int,
) -> UserProfile:
    profile = UserProfile(username=username, display_name=display_name or username.title(), **stats)
    db.add(profile)
    await db.commit()
    return profile


async def make_quiz(
    db: AsyncSession,
    quiz_date: date | None = None,
    num_questions: int = 5,
    correct_index: int = 0,
    is_active: bool = True,
) -> tuple[DailyQuiz, list[QuizQuestion]]:
    """A quiz whose questions each have four options, option `correct_index` being right."""
    category = QuizCategory(name="General", color="#10B981")
    quiz = DailyQuiz(
        quiz_date=quiz_date or datetime.now(timezone.utc).date(),
        theme="Mixed bag",
        is_active=is_active,
    )
    questions = [
        QuizQuestion(
            quiz=quiz,
            category=category,
            question_text=f"Question {order}?",
            question_order=order,
            explanation=f"Because {order}.",
            options=[
                QuestionOption(option_text=f"Option {order}.{i}", option_order=i, is_correct=i == correct_index)
                for i in range(4)
            ],
        )
        for order in range(1, num_questions + 1)
    ]
    db.add_all([category, quiz, *questions])
    await db.commit()
    return quiz, questions


def correct_id(question: QuizQuestion) -> str:
    return next(o.id for o in question.options if o.is_correct)


def wrong_id(question: QuizQuestion) -> str:
    return next(o.id for o in question.options if not o.is_correct)


def days_ago(n: int) -> date:
    return datetime.now(timezone.utc).date() - timedelta(days=n)
