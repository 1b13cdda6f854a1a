"""Scoring engine: server-side grading of daily quiz submissions.

Flow for a submission:
1. Reject if the user already has an attempt for the quiz (AlreadyCompleted)
2. Load the canonical questions/options (QuizNotFound, DataIntegrityError)
3. Grade the submitted answers against the answer key
4. Write attempt + answers + profile stats in one transaction

The storage layer's (user_id, daily_quiz_id) uniqueness constraint backs up
step 1 when two submissions race past the existence check.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from trivia.db.models import UserProfile, UserQuestionAnswer, UserQuizAttempt
from trivia.errors import AlreadyCompleted, ProfileNotFound, QuizNotFound
from trivia.quiz.schemas import QuizSubmission
from trivia.quiz.scoring import QuizStats, apply_quiz_result, grade_submission, rebuild_stats
from trivia.store.protocol import TriviaStore

logger = structlog.get_logger()


class ScoringEngine:
    """Grades submissions and keeps profile stats in step with attempts."""

    def __init__(self, store: TriviaStore) -> None:
        self.store = store

    async def submit_quiz(self, user_id: str, quiz_id: str, submission: QuizSubmission) -> UserQuizAttempt:
        """Score a submission and persist the attempt, its answers and the new stats.

        Raises:
            AlreadyCompleted: The user already has an attempt for this quiz.
            QuizNotFound: Quiz missing, inactive, or without questions.
            DataIntegrityError: A question does not have exactly one correct option.
            ProfileNotFound: The user has no profile row.
        """
        if await self.store.get_attempt(user_id, quiz_id) is not None:
            raise AlreadyCompleted()

        quiz = await self.store.get_quiz(quiz_id)
        if quiz is None or not quiz.is_active:
            raise QuizNotFound()

        questions = await self.store.get_questions_with_options(quiz_id)
        if not questions:
            msg = f"Quiz {quiz_id} has no questions"
            raise QuizNotFound(msg)

        profile = await self.store.get_profile(user_id)
        if profile is None:
            raise ProfileNotFound()

        result = grade_submission(questions, submission.answers)
        new_stats = apply_quiz_result(QuizStats.from_profile(profile), result.score, result.total_questions)

        now = datetime.now(timezone.utc)
        try:
            attempt = await self.store.insert_attempt(UserQuizAttempt(
                user_id=user_id,
                daily_quiz_id=quiz_id,
                score=result.score,
                total_questions=result.total_questions,
                time_taken=submission.total_time_taken,
                completed_at=now,
                created_at=now,
            ))
            await self.store.insert_answers([
                UserQuestionAnswer(
                    attempt_id=attempt.id,
                    question_id=answer.question_id,
                    selected_option_id=answer.selected_option_id,
                    is_correct=answer.is_correct,
                    time_taken=answer.time_taken,
                    answered_at=now,
                )
                for answer in result.answers
            ])
            await self.store.update_profile(user_id, new_stats.as_patch())
            await self.store.commit()
        except AlreadyCompleted:
            # Lost the race to a concurrent submission; the store already rolled back.
            raise
        except Exception:
            await self.store.rollback()
            raise

        logger.info(
            "quiz_submitted",
            user_id=user_id,
            quiz_id=quiz_id,
            score=result.score,
            total_questions=result.total_questions,
            current_streak=new_stats.current_streak,
        )
        return attempt

    async def reconcile_stats(self, user_id: str) -> UserProfile:
        """Re-derive profile stats from attempt history and overwrite the counters.

        Repairs profiles whose counters drifted from their attempts, e.g. after a
        lost stats update.
        """
        profile = await self.store.get_profile(user_id)
        if profile is None:
            raise ProfileNotFound()

        stored = QuizStats.from_profile(profile)
        derived = rebuild_stats(await self.store.list_attempts(user_id))
        if derived == stored:
            return profile

        updated = await self.store.update_profile(user_id, derived.as_patch())
        await self.store.commit()
        logger.warning(
            "stats_reconciled",
            user_id=user_id,
            stored=stored.as_patch(),
            derived=derived.as_patch(),
        )
        return updated
