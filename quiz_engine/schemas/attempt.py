"""Attempt schemas (learner side)."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from quiz_engine.db.models import AttemptStatusEnum, QuestionVariant


class AttemptStart(BaseModel):
    """POST /api/attempts/"""

    quiz_id: uuid.UUID


class AnswerSubmit(BaseModel):
    """PUT /api/attempts/{attempt_id}/answers/{question_id}

    ``answer`` is the raw JSON value; its shape depends on the question
    variant (bool, string, list of strings or list of pairs).
    """

    answer: Any


class AttemptSubmitRequest(BaseModel):
    """POST /api/attempts/{attempt_id}/submit"""

    time_spent_seconds: int | None = Field(None, ge=0)


class FeedbackCreate(BaseModel):
    """POST /api/attempts/{attempt_id}/feedback"""

    feedback: str = Field(..., min_length=1, max_length=2000)
    rating: int | None = Field(None, ge=1, le=5)


class GradeRead(BaseModel):
    total_points: int
    max_points: int
    percentage: int
    passed: bool
    pending_manual_count: int
    grading_complete: bool

    model_config = {"from_attributes": True}


class AnswerRead(BaseModel):
    question_id: uuid.UUID
    answer: Any
    is_correct: bool | None = None
    awarded_points: int | None = None
    requires_manual_grading: bool
    instructor_feedback: str | None = None
    answered_at: datetime


class QuestionView(BaseModel):
    """A snapshot question as the learner sees it.

    ``prompt`` holds what is needed to render the question (options, items,
    blank count...).  ``solution`` is only filled once answers are revealed.
    """

    id: uuid.UUID
    variant: QuestionVariant
    question_text: str
    points: int
    prompt: dict[str, Any]
    solution: dict[str, Any] | None = None
    explanation: str | None = None


class AttemptSummary(BaseModel):
    id: uuid.UUID
    quiz_id: uuid.UUID
    user_id: str
    attempt_number: int
    status: AttemptStatusEnum
    started_at: datetime
    completed_at: datetime | None = None
    time_spent_seconds: int | None = None
    grade: GradeRead | None = None  # hidden while the attempt is in progress


class AttemptRead(AttemptSummary):
    """Full attempt for the learner taking or reviewing it."""

    expires_at: datetime | None = None
    revision: int
    questions: list[QuestionView]
    answers: list[AnswerRead]
    instructor_comments: str | None = None
    student_feedback: str | None = None
    student_rating: int | None = None
