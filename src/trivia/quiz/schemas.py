"""Pydantic schemas for quiz endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field


# --- Submission ---


class SubmittedAnswer(BaseModel):
    question_id: str
    selected_option_id: str
    time_taken: int | None = Field(None, ge=0)


class QuizSubmission(BaseModel):
    answers: list[SubmittedAnswer] = Field(default_factory=list, max_length=100)
    total_time_taken: int | None = Field(None, ge=0)


# --- Quiz content ---


class QuizResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    quiz_date: date
    theme: str | None = None
    difficulty_level: str
    is_active: bool
    created_at: datetime


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    icon: str | None = None
    color: str


class OptionResponse(BaseModel):
    id: str
    option_text: str
    option_order: int
    is_correct: bool | None = None  # Only revealed once the caller has an attempt


class QuestionResponse(BaseModel):
    id: str
    daily_quiz_id: str
    question_text: str
    question_order: int
    difficulty: str
    explanation: str | None = None
    category: CategoryResponse | None = None
    options: list[OptionResponse]


class QuestionListResponse(BaseModel):
    questions: list[QuestionResponse]
    answers_revealed: bool


# --- Attempts ---


class AttemptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    daily_quiz_id: str
    score: int
    total_questions: int
    time_taken: int | None = None
    completed_at: datetime
    created_at: datetime


class AttemptHistoryItem(AttemptResponse):
    daily_quiz: QuizResponse | None = None


class AttemptHistoryResponse(BaseModel):
    attempts: list[AttemptHistoryItem]


class AnswerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    attempt_id: str
    question_id: str
    selected_option_id: str | None = None
    is_correct: bool
    time_taken: int | None = None
    answered_at: datetime
    question_text: str | None = None
    selected_option_text: str | None = None


class AnswerListResponse(BaseModel):
    answers: list[AnswerResponse]
