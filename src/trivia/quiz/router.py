"""Quiz API endpoints."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from trivia.auth.dependencies import get_current_user_id
from trivia.config import get_settings
from trivia.database import get_session
from trivia.db.models import QuizQuestion, UserQuizAttempt
from trivia.errors import AttemptNotFound
from trivia.quiz import service
from trivia.quiz.engine import ScoringEngine
from trivia.quiz.schemas import (
    AnswerListResponse,
    AnswerResponse,
    AttemptHistoryItem,
    AttemptHistoryResponse,
    AttemptResponse,
    CategoryResponse,
    OptionResponse,
    QuestionListResponse,
    QuestionResponse,
    QuizResponse,
    QuizSubmission,
)
from trivia.redis_client import get_optional_redis
from trivia.social.activity_service import publish_activity, record_activity
from trivia.store import SqlTriviaStore

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/quizzes", tags=["Quiz"])


def _question_response(question: QuizQuestion, reveal: bool) -> QuestionResponse:
    return QuestionResponse(
        id=question.id,
        daily_quiz_id=question.daily_quiz_id,
        question_text=question.question_text,
        question_order=question.question_order,
        difficulty=question.difficulty,
        explanation=question.explanation if reveal else None,
        category=CategoryResponse.model_validate(question.category) if question.category else None,
        options=[
            OptionResponse(
                id=option.id,
                option_text=option.option_text,
                option_order=option.option_order,
                is_correct=option.is_correct if reveal else None,
            )
            for option in question.options
        ],
    )


async def _record_completion(db: AsyncSession, redis: Any, attempt: UserQuizAttempt) -> None:
    """Feed entries for a finished quiz. Failures never affect the submission."""
    attempt_id = attempt.id
    try:
        metadata = {
            "quiz_id": attempt.daily_quiz_id,
            "score": attempt.score,
            "total_questions": attempt.total_questions,
        }
        activities = [await record_activity(
            db,
            attempt.user_id,
            "quiz_completed",
            f"Scored {attempt.score}/{attempt.total_questions} on today's quiz",
            metadata=metadata,
        )]
        if attempt.total_questions > 0 and attempt.score == attempt.total_questions:
            activities.append(await record_activity(
                db,
                attempt.user_id,
                "perfect_score",
                f"Perfect score: {attempt.score}/{attempt.total_questions}!",
                metadata=metadata,
            ))
        await db.commit()
    except Exception:
        await db.rollback()
        logger.warning("quiz_activity_failed", attempt_id=attempt_id, exc_info=True)
    else:
        await publish_activity(redis, *activities)


@router.get("/today", response_model=QuizResponse)
async def todays_quiz(
    _user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> QuizResponse:
    return QuizResponse.model_validate(await service.get_todays_quiz(db))


@router.get("/history", response_model=AttemptHistoryResponse)
async def quiz_history(
    limit: int | None = Query(None, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> AttemptHistoryResponse:
    limit = limit or get_settings().quiz_history_default_limit
    attempts = await service.get_quiz_history(db, user_id, limit=limit)
    return AttemptHistoryResponse(attempts=[AttemptHistoryItem.model_validate(a) for a in attempts])


@router.get("/attempts/{attempt_id}/answers", response_model=AnswerListResponse)
async def attempt_answers(
    attempt_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> AnswerListResponse:
    answers = await service.get_attempt_answers(db, user_id, attempt_id)
    return AnswerListResponse(answers=[
        AnswerResponse(
            id=a.id,
            attempt_id=a.attempt_id,
            question_id=a.question_id,
            selected_option_id=a.selected_option_id,
            is_correct=a.is_correct,
            time_taken=a.time_taken,
            answered_at=a.answered_at,
            question_text=a.question.question_text if a.question else None,
            selected_option_text=a.selected_option.option_text if a.selected_option else None,
        )
        for a in answers
    ])


@router.get("/{quiz_id}/questions", response_model=QuestionListResponse)
async def quiz_questions(
    quiz_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> QuestionListResponse:
    questions, revealed = await service.get_quiz_questions(db, quiz_id, user_id)
    return QuestionListResponse(
        questions=[_question_response(q, revealed) for q in questions],
        answers_revealed=revealed,
    )


@router.get("/{quiz_id}/attempt", response_model=AttemptResponse)
async def my_attempt(
    quiz_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> AttemptResponse:
    attempt = await service.get_user_attempt(db, user_id, quiz_id)
    if attempt is None:
        raise AttemptNotFound()
    return AttemptResponse.model_validate(attempt)


@router.post("/{quiz_id}/submit", response_model=AttemptResponse, status_code=status.HTTP_201_CREATED)
async def submit_quiz(
    quiz_id: str,
    body: QuizSubmission,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: Any = Depends(get_optional_redis),
) -> AttemptResponse:
    """Grade a submission server-side and record the attempt."""
    attempt = await ScoringEngine(SqlTriviaStore(db)).submit_quiz(user_id, quiz_id, body)
    response = AttemptResponse.model_validate(attempt)
    await _record_completion(db, redis, attempt)
    return response
