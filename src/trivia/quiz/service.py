"""Read-side quiz queries: today's quiz, questions, attempts and answers."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from trivia.db.models import DailyQuiz, QuizQuestion, UserQuestionAnswer, UserQuizAttempt
from trivia.errors import AttemptNotFound, QuizNotFound
from trivia.store import SqlTriviaStore

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


async def get_todays_quiz(db: AsyncSession, today: date | None = None) -> DailyQuiz:
    """The active quiz for the given (default: current UTC) date."""
    quiz = await SqlTriviaStore(db).get_active_quiz_by_date(today or utc_today())
    if quiz is None:
        raise QuizNotFound("No quiz available today")
    return quiz


async def get_quiz_questions(db: AsyncSession, quiz_id: str, user_id: str) -> tuple[list[QuizQuestion], bool]:
    """Questions in order with options and category.

    Returns (questions, answers_revealed); correctness is only revealed once
    the caller has an attempt for the quiz.
    """
    store = SqlTriviaStore(db)
    quiz = await store.get_quiz(quiz_id)
    if quiz is None or not quiz.is_active:
        raise QuizNotFound()

    questions = await store.get_questions_with_options(quiz_id)
    revealed = await store.get_attempt(user_id, quiz_id) is not None
    return questions, revealed


async def get_user_attempt(db: AsyncSession, user_id: str, quiz_id: str) -> UserQuizAttempt | None:
    return await SqlTriviaStore(db).get_attempt(user_id, quiz_id)


async def get_quiz_history(db: AsyncSession, user_id: str, limit: int = 10) -> list[UserQuizAttempt]:
    """The user's most recent attempts with their quiz, newest first."""
    result = await db.execute(
        select(UserQuizAttempt)
        .options(selectinload(UserQuizAttempt.daily_quiz))
        .where(UserQuizAttempt.user_id == user_id)
        .order_by(UserQuizAttempt.completed_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_attempt_answers(db: AsyncSession, user_id: str, attempt_id: str) -> list[UserQuestionAnswer]:
    """Answers of one of the caller's attempts, in question order."""
    result = await db.execute(
        select(UserQuizAttempt.id).where(UserQuizAttempt.id == attempt_id, UserQuizAttempt.user_id == user_id)
    )
    if result.first() is None:
        raise AttemptNotFound()

    answers = await db.execute(
        select(UserQuestionAnswer)
        .join(QuizQuestion, QuizQuestion.id == UserQuestionAnswer.question_id)
        .options(selectinload(UserQuestionAnswer.question), selectinload(UserQuestionAnswer.selected_option))
        .where(UserQuestionAnswer.attempt_id == attempt_id)
        .order_by(QuizQuestion.question_order.asc())
    )
    return list(answers.scalars().all())
