"""Quiz schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from quiz_engine.schemas.question import QuestionRead


class QuizCreate(BaseModel):
    """POST /api/quizzes/"""

    course_id: str = Field(..., min_length=1, max_length=64)
    lesson_id: str | None = Field(None, max_length=64)
    organization_id: str | None = Field(None, max_length=64)
    title: str = Field(..., min_length=1, max_length=300)
    description: str | None = None
    time_limit_minutes: int | None = Field(None, ge=1)
    passing_score_percent: int = Field(70, ge=0, le=100)
    max_attempts: int = Field(1, ge=1)
    randomize_questions: bool = False
    reveal_answers: bool = False
    allow_student_feedback: bool = False


class QuizUpdate(BaseModel):
    """PATCH /api/quizzes/{quiz_id}. Only the fields sent are changed."""

    title: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = None
    lesson_id: str | None = Field(None, max_length=64)
    time_limit_minutes: int | None = Field(None, ge=1)
    passing_score_percent: int | None = Field(None, ge=0, le=100)
    max_attempts: int | None = Field(None, ge=1)
    randomize_questions: bool | None = None
    reveal_answers: bool | None = None
    allow_student_feedback: bool | None = None


class QuizSummary(BaseModel):
    id: uuid.UUID
    course_id: str
    lesson_id: str | None = None
    title: str
    is_published: bool
    question_count: int
    total_points: int
    max_attempts: int
    time_limit_minutes: int | None = None
    created_at: datetime


class QuizRead(BaseModel):
    """Instructor view of a quiz, questions included."""

    id: uuid.UUID
    course_id: str
    lesson_id: str | None = None
    organization_id: str | None = None
    title: str
    description: str | None = None
    time_limit_minutes: int | None = None
    passing_score_percent: int
    max_attempts: int
    is_published: bool
    randomize_questions: bool
    reveal_answers: bool
    allow_student_feedback: bool
    created_by: str
    created_at: datetime
    updated_at: datetime
    questions: list[QuestionRead]
    lesson_title: str | None = None  # resolved from the directory service

    model_config = {"from_attributes": True}


class ScoreBucket(BaseModel):
    range: str
    count: int


class QuestionStatistics(BaseModel):
    question_id: uuid.UUID
    question_text: str
    variant: str
    answered: int
    correct: int
    correct_rate: float | None = None  # None when nothing auto-graded yet


class QuizStatistics(BaseModel):
    """GET /api/quizzes/{quiz_id}/statistics"""

    quiz_id: uuid.UUID
    total_attempts: int
    completed_attempts: int
    average_percentage: float
    pass_rate: float
    distribution: list[ScoreBucket]
    questions: list[QuestionStatistics]
