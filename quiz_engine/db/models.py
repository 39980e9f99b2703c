"""SQLAlchemy ORM models for the quiz engine.

Tables
------
- quizzes        – quiz settings (course / lesson ids are opaque references)
- questions      – ordered questions of a quiz, one variant each
- attempts       – one learner's run through a quiz (+ question snapshot)
- answer_records – per-question answers inside an attempt
- rubrics        – reusable manual-grading scales per organization
- question_bank  – reusable questions per organization, imported into quizzes

Users, courses, lessons and organizations live in external services; their
ids are stored as plain strings.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quiz_engine.db.session import Base


# ── helpers ───────────────────────────────────────────────────────────────────


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


# ── Enums (stored as VARCHAR values via SQLAlchemy Enum) ──────────────────────


class QuestionVariant(str, enum.Enum):
    TRUE_FALSE = "true_false"
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    SHORT_ANSWER = "short_answer"
    TEXT_ANSWER = "text_answer"
    MATCH_FOLLOWING = "match_following"
    SORTABLE = "sortable"
    FILL_BLANKS = "fill_blanks"
    AUDIO_VIDEO = "audio_video"


AUTO_GRADABLE_VARIANTS = frozenset(
    {
        QuestionVariant.TRUE_FALSE,
        QuestionVariant.SINGLE_CHOICE,
        QuestionVariant.MULTIPLE_CHOICE,
        QuestionVariant.SHORT_ANSWER,
    }
)


class AttemptStatusEnum(str, enum.Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    GRADED = "graded"


class QuestionDifficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


# ── Quizzes ───────────────────────────────────────────────────────────────────


class Quiz(Base):
    __tablename__ = "quizzes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    course_id: Mapped[str] = mapped_column(String(64), index=True)
    lesson_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    organization_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    title: Mapped[str] = mapped_column(String(300))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    time_limit_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    passing_score_percent: Mapped[int] = mapped_column(Integer, default=70)
    max_attempts: Mapped[int] = mapped_column(Integer, default=1)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False)
    randomize_questions: Mapped[bool] = mapped_column(Boolean, default=False)
    reveal_answers: Mapped[bool] = mapped_column(Boolean, default=False)
    allow_student_feedback: Mapped[bool] = mapped_column(Boolean, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_by: Mapped[str] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    questions: Mapped[list["Question"]] = relationship(
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="Question.position",
    )
    attempts: Mapped[list["Attempt"]] = relationship(back_populates="quiz")


# ── Questions ─────────────────────────────────────────────────────────────────


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    quiz_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("quizzes.id"), index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    variant: Mapped[QuestionVariant] = mapped_column(
        Enum(QuestionVariant, name="question_variant_enum", values_callable=_enum_values)
    )
    question_text: Mapped[str] = mapped_column(Text)
    points: Mapped[int] = mapped_column(Integer)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    variant_data: Mapped[dict] = mapped_column(JSON)  # validated tagged-union payload
    # Set when the question was imported from the question bank
    bank_item_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    quiz: Mapped["Quiz"] = relationship(back_populates="questions")

    @property
    def requires_manual_grading(self) -> bool:
        return self.variant not in AUTO_GRADABLE_VARIANTS


# ── Attempts ──────────────────────────────────────────────────────────────────


class Attempt(Base):
    __tablename__ = "attempts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    quiz_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("quizzes.id"), index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    attempt_number: Mapped[int] = mapped_column(Integer)
    status: Mapped[AttemptStatusEnum] = mapped_column(
        Enum(AttemptStatusEnum, name="attempt_status_enum", values_callable=_enum_values),
        default=AttemptStatusEnum.IN_PROGRESS,
        index=True,
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    time_spent_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Question content as it was when the attempt started, in presentation order
    questions_snapshot: Mapped[list] = mapped_column(JSON, default=list)
    instructor_comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    graded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    graded_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    student_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    student_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Optimistic-lock counter, bumped by every state change
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    quiz: Mapped["Quiz"] = relationship(back_populates="attempts")
    answers: Mapped[list["AnswerRecord"]] = relationship(
        back_populates="attempt",
        cascade="all, delete-orphan",
        order_by="AnswerRecord.answered_at",
    )

    __mapper_args__ = {"version_id_col": revision, "version_id_generator": False}

    __table_args__ = (
        UniqueConstraint(
            "quiz_id", "user_id", "attempt_number", name="uq_attempt_quiz_user_number"
        ),
        Index(
            "uq_attempt_active_per_user",
            "quiz_id",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'in_progress'"),
            sqlite_where=text("status = 'in_progress'"),
        ),
    )


class AnswerRecord(Base):
    """A learner's answer to one question inside an attempt."""

    __tablename__ = "answer_records"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    attempt_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("attempts.id"), index=True
    )
    # Refers to the snapshot entry; questions are never hard-deleted once answered
    question_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True))
    payload: Mapped[object] = mapped_column(JSON)
    is_correct: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    awarded_points: Mapped[int | None] = mapped_column(Integer, nullable=True)
    requires_manual_grading: Mapped[bool] = mapped_column(Boolean, default=False)
    instructor_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    rubric_selection: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    answered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    graded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    attempt: Mapped["Attempt"] = relationship(back_populates="answers")

    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_answer_attempt_question"),
    )


# ── Rubrics ───────────────────────────────────────────────────────────────────


class Rubric(Base):
    """Manual-grading scale: criteria, each with percentage levels."""

    __tablename__ = "rubrics"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    organization_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    criteria: Mapped[list] = mapped_column(JSON)  # [{name, description, max_points, levels}]
    created_by: Mapped[str] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


# ── Question bank ─────────────────────────────────────────────────────────────


class QuestionBankItem(Base):
    """A reusable question owned by an organization, copied into quizzes on import."""

    __tablename__ = "question_bank"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=_uuid
    )
    organization_id: Mapped[str] = mapped_column(String(64), index=True)
    created_by: Mapped[str] = mapped_column(String(64))
    variant: Mapped[QuestionVariant] = mapped_column(
        Enum(QuestionVariant, name="question_variant_enum", values_callable=_enum_values)
    )
    question_text: Mapped[str] = mapped_column(Text)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    variant_data: Mapped[dict] = mapped_column(JSON)
    default_points: Mapped[int] = mapped_column(Integer)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    difficulty: Mapped[QuestionDifficulty] = mapped_column(
        Enum(QuestionDifficulty, name="question_difficulty_enum", values_callable=_enum_values),
        default=QuestionDifficulty.MEDIUM,
    )
    usage_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("ix_question_bank_org_variant", "organization_id", "variant"),
    )
