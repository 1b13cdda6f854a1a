"""Data-access capability consumed by the scoring engine and the friendship state machine.

The engines receive an implementation through their constructor. Rows are the
ORM model instances from ``trivia.db.models``; implementations must surface
transport failures as ``StoreUnavailable`` and uniqueness conflicts on
attempts/friendships as ``AlreadyCompleted`` / ``DuplicateRequest``.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Literal, Protocol

from trivia.db.models import (
    DailyQuiz,
    Friendship,
    QuizQuestion,
    UserProfile,
    UserQuestionAnswer,
    UserQuizAttempt,
)

RequestDirection = Literal["received", "sent"]


class TriviaStore(Protocol):
    # --- Quizzes ---

    async def get_active_quiz_by_date(self, quiz_date: date) -> DailyQuiz | None: ...

    async def get_quiz(self, quiz_id: str) -> DailyQuiz | None: ...

    async def get_questions_with_options(self, quiz_id: str) -> list[QuizQuestion]: ...

    # --- Attempts ---

    async def get_attempt(self, user_id: str, quiz_id: str) -> UserQuizAttempt | None: ...

    async def list_attempts(self, user_id: str) -> list[UserQuizAttempt]: ...

    async def insert_attempt(self, attempt: UserQuizAttempt) -> UserQuizAttempt: ...

    async def insert_answers(self, answers: list[UserQuestionAnswer]) -> None: ...

    # --- Profiles ---

    async def get_profile(self, user_id: str) -> UserProfile | None: ...

    async def update_profile(self, user_id: str, patch: dict[str, Any]) -> UserProfile: ...

    # --- Friendships ---

    async def find_friendship(self, user_a: str, user_b: str) -> Friendship | None: ...

    async def get_friendship(self, friendship_id: str) -> Friendship | None: ...

    async def insert_friendship(self, requester_id: str, addressee_id: str, status: str) -> Friendship: ...

    async def update_friendship_status(self, friendship_id: str, status: str) -> Friendship: ...

    async def delete_friendship(self, friendship_id: str) -> None: ...

    async def list_friends(self, user_id: str) -> list[tuple[Friendship, UserProfile]]: ...

    async def list_pending_requests(
        self, user_id: str, direction: RequestDirection
    ) -> list[tuple[Friendship, UserProfile]]: ...

    # --- Unit of work ---

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...
