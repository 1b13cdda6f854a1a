"""Typed domain errors.

Every error carries the HTTP status and a stable machine-readable code; the
global handler in ``trivia.middleware.error_handler`` renders them as
``{"detail": ..., "code": ...}``.
"""

from __future__ import annotations


class TriviaError(Exception):
    """Base class for all domain errors surfaced to callers."""

    status_code: int = 400
    code: str = "trivia_error"
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotAuthenticated(TriviaError):
    status_code = 401
    code = "not_authenticated"
    default_message = "Not authenticated"


class PermissionDenied(TriviaError):
    status_code = 403
    code = "permission_denied"
    default_message = "You are not allowed to do that"


class NotFound(TriviaError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class QuizNotFound(NotFound):
    code = "quiz_not_found"
    default_message = "Quiz not found"


class ProfileNotFound(NotFound):
    code = "profile_not_found"
    default_message = "User profile not found"


class FriendshipNotFound(NotFound):
    code = "friendship_not_found"
    default_message = "Friendship not found"


class LeagueNotFound(NotFound):
    code = "league_not_found"
    default_message = "League not found"


class AttemptNotFound(NotFound):
    code = "attempt_not_found"
    default_message = "Quiz attempt not found"


class ActivityNotFound(NotFound):
    code = "activity_not_found"
    default_message = "Activity not found"


class AlreadyCompleted(TriviaError):
    status_code = 409
    code = "already_completed"
    default_message = "Quiz already completed for today"


class DuplicateRequest(TriviaError):
    status_code = 409
    code = "duplicate_request"
    default_message = "Friendship request already exists"


class SelfRequest(TriviaError):
    status_code = 400
    code = "self_request"
    default_message = "You cannot send a friend request to yourself"


class InvalidTransition(TriviaError):
    status_code = 409
    code = "invalid_transition"
    default_message = "Friendship cannot move to that status"


class LeagueFull(TriviaError):
    status_code = 409
    code = "league_full"
    default_message = "League is full"


class AlreadyMember(TriviaError):
    status_code = 409
    code = "already_member"
    default_message = "You are already a member of this league"


class UsernameTaken(TriviaError):
    status_code = 409
    code = "username_taken"
    default_message = "Username already taken"


class DataIntegrityError(TriviaError):
    status_code = 500
    code = "data_integrity"
    default_message = "Stored quiz data is malformed"


class StoreUnavailable(TriviaError):
    status_code = 503
    code = "store_unavailable"
    default_message = "Data store unavailable, try again later"
