"""Instructor grading schemas."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from quiz_engine.db.models import AttemptStatusEnum, QuestionVariant
from quiz_engine.schemas.attempt import GradeRead
from quiz_engine.schemas.rubric import RubricGrade


class QuestionGrade(BaseModel):
    """Grade for one question: raw points, a rubric selection, or feedback only."""

    question_id: uuid.UUID
    points: int | None = None
    rubric: RubricGrade | None = None
    feedback: str | None = None

    @model_validator(mode="after")
    def _points_or_rubric(self) -> "QuestionGrade":
        if self.points is not None and self.rubric is not None:
            raise ValueError("give either points or a rubric selection, not both")
        return self


class GradeAttemptRequest(BaseModel):
    """POST /api/grading/attempts/{attempt_id}

    ``finalize=False`` saves a draft; ``True`` marks the attempt graded and
    notifies the learner.
    """

    grades: list[QuestionGrade] = Field(default_factory=list)
    comments: str | None = None
    finalize: bool = False
    expected_revision: int | None = None


class GradingAnswerRead(BaseModel):
    """One question of an attempt with the learner's answer and the key."""

    question_id: uuid.UUID
    variant: QuestionVariant
    question_text: str
    points: int
    variant_data: dict[str, Any]
    answered: bool
    answer: Any = None
    is_correct: bool | None = None
    awarded_points: int | None = None
    requires_manual_grading: bool
    instructor_feedback: str | None = None
    rubric_selection: dict[str, Any] | None = None


class GradingAttemptRead(BaseModel):
    id: uuid.UUID
    quiz_id: uuid.UUID
    quiz_title: str
    user_id: str
    user_name: str | None = None
    user_email: str | None = None
    attempt_number: int
    status: AttemptStatusEnum
    started_at: datetime
    completed_at: datetime | None = None
    time_spent_seconds: int | None = None
    revision: int
    instructor_comments: str | None = None
    graded_at: datetime | None = None
    graded_by: str | None = None
    student_feedback: str | None = None
    student_rating: int | None = None
    grade: GradeRead
    answers: list[GradingAnswerRead]


class AttemptListItem(BaseModel):
    id: uuid.UUID
    quiz_id: uuid.UUID
    quiz_title: str
    user_id: str
    user_name: str | None = None
    attempt_number: int
    status: AttemptStatusEnum
    completed_at: datetime | None = None
    grade: GradeRead


class GradingStats(BaseModel):
    """GET /api/grading/stats"""

    total_attempts: int
    pending: int
    graded: int
    in_progress: int
    average_percentage: float
    pass_rate: float
