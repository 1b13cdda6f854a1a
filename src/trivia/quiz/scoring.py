"""Quiz grading and stats bookkeeping.

Pure functions: no I/O. The scoring engine feeds them canonical quiz data from
the store and persists what they return.

Rules:
- A submitted answer is correct iff its option id equals the question's single
  option flagged is_correct. Client-supplied correctness is never consulted.
- Answers to questions outside the quiz are ignored, and only the first answer
  per question counts.
- An option id that is not one of the question's options is kept as a wrong
  answer with no selected option.
- total_questions is the size of the quiz, not of the submission.
- Streak = consecutive attempts with score > 0.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from trivia.errors import DataIntegrityError
from trivia.quiz.levels import rank_for

if TYPE_CHECKING:
    from trivia.db.models import QuizQuestion, UserProfile, UserQuizAttempt
    from trivia.quiz.schemas import SubmittedAnswer


@dataclass(frozen=True)
class QuizStats:
    """Cumulative quiz counters kept on the user profile."""

    total_points: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    perfect_scores: int = 0
    total_quizzes: int = 0
    level: int = 1

    @classmethod
    def from_profile(cls, profile: UserProfile) -> QuizStats:
        return cls(
            total_points=profile.total_points,
            current_streak=profile.current_streak,
            longest_streak=profile.longest_streak,
            perfect_scores=profile.perfect_scores,
            total_quizzes=profile.total_quizzes,
            level=profile.level,
        )

    def as_patch(self) -> dict[str, int]:
        return {
            "total_points": self.total_points,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "perfect_scores": self.perfect_scores,
            "total_quizzes": self.total_quizzes,
            "level": self.level,
        }


@dataclass(frozen=True)
class GradedAnswer:
    question_id: str
    selected_option_id: str | None
    is_correct: bool
    time_taken: int | None = None


@dataclass(frozen=True)
class GradeResult:
    score: int
    total_questions: int
    answers: list[GradedAnswer] = field(default_factory=list)

    @property
    def is_perfect(self) -> bool:
        return self.total_questions > 0 and self.score == self.total_questions


def correct_option_id(question: QuizQuestion) -> str:
    """Return the id of the question's correct option.

    Raises:
        DataIntegrityError: If zero or several options are flagged correct.
    """
    correct = [option.id for option in question.options if option.is_correct]
    if len(correct) != 1:
        msg = f"Question {question.id} has {len(correct)} correct options, expected exactly 1"
        raise DataIntegrityError(msg)
    return correct[0]


def build_answer_key(questions: Sequence[QuizQuestion]) -> dict[str, str]:
    """Map question id -> correct option id, validating every question."""
    return {question.id: correct_option_id(question) for question in questions}


def grade_submission(questions: Sequence[QuizQuestion], answers: Iterable[SubmittedAnswer]) -> GradeResult:
    """Grade submitted answers against the canonical answer key."""
    answer_key = build_answer_key(questions)
    option_ids = {question.id: {option.id for option in question.options} for question in questions}

    graded: list[GradedAnswer] = []
    seen: set[str] = set()
    for answer in answers:
        expected = answer_key.get(answer.question_id)
        if expected is None or answer.question_id in seen:
            continue
        seen.add(answer.question_id)
        # An option outside the question is recorded as a wrong, blank choice.
        selected: str | None = answer.selected_option_id
        if selected not in option_ids[answer.question_id]:
            selected = None
        graded.append(GradedAnswer(
            question_id=answer.question_id,
            selected_option_id=selected,
            is_correct=selected is not None and selected == expected,
            time_taken=answer.time_taken,
        ))

    return GradeResult(
        score=sum(1 for g in graded if g.is_correct),
        total_questions=len(questions),
        answers=graded,
    )


def apply_quiz_result(stats: QuizStats, score: int, total_questions: int) -> QuizStats:
    """Fold one attempt into the cumulative stats.

    Not idempotent: applying the same attempt twice counts it twice. The
    one-attempt-per-quiz rule is what prevents double counting.
    """
    current_streak = stats.current_streak + 1 if score > 0 else 0
    total_points = stats.total_points + score
    return replace(
        stats,
        total_quizzes=stats.total_quizzes + 1,
        total_points=total_points,
        perfect_scores=stats.perfect_scores + (1 if score == total_questions else 0),
        current_streak=current_streak,
        longest_streak=max(stats.longest_streak, current_streak),
        level=rank_for(total_points).level,
    )


def rebuild_stats(attempts: Iterable[UserQuizAttempt]) -> QuizStats:
    """Re-derive stats from attempt history (oldest first), ignoring stored counters."""
    stats = QuizStats()
    for attempt in attempts:
        stats = apply_quiz_result(stats, attempt.score, attempt.total_questions)
    return stats
