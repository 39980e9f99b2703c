"""Quiz authoring: quizzes and their questions.

Question content is validated through ``QuestionContent`` before it is stored.
Once any attempt references a quiz its questions are frozen. Grading and
scoring read each attempt's ``questions_snapshot``; quiz statistics and the
authoring views read the live question rows.
"""

import logging
import uuid
from typing import Any

from pydantic import ValidationError
from sqlalchemy.orm import Session

from quiz_engine.core.errors import InvalidQuestionData, NotFound, QuizLocked
from quiz_engine.db.models import Attempt, Question, QuestionVariant, Quiz
from quiz_engine.schemas.question import (
    QuestionContent,
    QuestionCreate,
    QuestionUpdate,
    parse_variant_data,
)
from quiz_engine.schemas.quiz import QuizCreate, QuizUpdate

logger = logging.getLogger(__name__)


# ── Question content ──────────────────────────────────────────────────────────


def _first_error(exc: ValidationError, variant: str) -> str:
    err = exc.errors()[0]
    msg = err["msg"].removeprefix("Value error, ")
    # loc looks like ("data", "<variant>", "options", 0) for variant fields
    loc = [str(p) for p in err["loc"] if p not in ("data", variant)]
    return f"{'.'.join(loc)}: {msg}" if loc else msg


def build_question_content(
    variant: QuestionVariant,
    question_text: str,
    points: int,
    explanation: str | None,
    variant_data: dict[str, Any],
) -> QuestionContent:
    """Validate question content for *variant*.

    Raises:
        InvalidQuestionData: With the first violated rule as the reason.
    """
    tag = variant_data.get("variant", variant.value)
    if tag != variant.value:
        raise InvalidQuestionData(
            f"variant_data is tagged '{tag}' but the question is '{variant.value}'",
            variant=variant.value,
        )
    try:
        return QuestionContent.model_validate(
            {
                "question_text": question_text,
                "points": points,
                "explanation": explanation,
                "data": {**variant_data, "variant": variant.value},
            }
        )
    except ValidationError as exc:
        raise InvalidQuestionData(_first_error(exc, variant.value), variant=variant.value) from None


def parse_question(question: Question) -> Any:
    """Stored ``variant_data`` of *question* as its typed model."""
    return parse_variant_data(question.variant_data)


# ── Quizzes ───────────────────────────────────────────────────────────────────


def get_quiz(db: Session, quiz_id: uuid.UUID) -> Quiz:
    """Return a live quiz; soft-deleted quizzes are treated as missing."""
    quiz = db.get(Quiz, quiz_id)
    if quiz is None or quiz.is_deleted:
        raise NotFound("quiz", quiz_id)
    return quiz


def list_quizzes(
    db: Session, course_id: str, *, published_only: bool = False
) -> list[Quiz]:
    query = db.query(Quiz).filter(Quiz.course_id == course_id, Quiz.is_deleted.is_(False))
    if published_only:
        query = query.filter(Quiz.is_published.is_(True))
    return query.order_by(Quiz.created_at).all()


def has_attempts(db: Session, quiz_id: uuid.UUID) -> bool:
    return db.query(Attempt.id).filter(Attempt.quiz_id == quiz_id).first() is not None


def create_quiz(db: Session, payload: QuizCreate, created_by: str) -> Quiz:
    quiz = Quiz(**payload.model_dump(), created_by=created_by)
    db.add(quiz)
    db.flush()
    logger.info("Quiz %s created in course %s", quiz.id, quiz.course_id)
    return quiz


def update_quiz(db: Session, quiz_id: uuid.UUID, payload: QuizUpdate) -> Quiz:
    quiz = get_quiz(db, quiz_id)
    changes = payload.model_dump(exclude_unset=True)
    if (
        "passing_score_percent" in changes
        and changes["passing_score_percent"] != quiz.passing_score_percent
        and has_attempts(db, quiz.id)
    ):
        raise QuizLocked(quiz.id, "change the passing score")
    for field, value in changes.items():
        setattr(quiz, field, value)
    db.flush()
    return quiz


def set_published(db: Session, quiz_id: uuid.UUID, published: bool) -> Quiz:
    quiz = get_quiz(db, quiz_id)
    quiz.is_published = published
    db.flush()
    logger.info("Quiz %s %s", quiz.id, "published" if published else "unpublished")
    return quiz


def delete_quiz(db: Session, quiz_id: uuid.UUID) -> None:
    """Hard-delete a quiz nobody has attempted; otherwise hide it."""
    quiz = get_quiz(db, quiz_id)
    if has_attempts(db, quiz.id):
        quiz.is_deleted = True
        quiz.is_published = False
        logger.info("Quiz %s soft-deleted (has attempts)", quiz.id)
    else:
        db.delete(quiz)
        logger.info("Quiz %s deleted", quiz.id)
    db.flush()


def duplicate_quiz(db: Session, quiz_id: uuid.UUID, created_by: str) -> Quiz:
    source = get_quiz(db, quiz_id)
    copy = Quiz(
        course_id=source.course_id,
        lesson_id=source.lesson_id,
        organization_id=source.organization_id,
        title=f"{source.title} (copy)",
        description=source.description,
        time_limit_minutes=source.time_limit_minutes,
        passing_score_percent=source.passing_score_percent,
        max_attempts=source.max_attempts,
        is_published=False,
        randomize_questions=source.randomize_questions,
        reveal_answers=source.reveal_answers,
        allow_student_feedback=source.allow_student_feedback,
        created_by=created_by,
    )
    copy.questions = [
        Question(
            position=q.position,
            variant=q.variant,
            question_text=q.question_text,
            points=q.points,
            explanation=q.explanation,
            variant_data=dict(q.variant_data),
            bank_item_id=q.bank_item_id,
        )
        for q in source.questions
    ]
    db.add(copy)
    db.flush()
    logger.info("Quiz %s duplicated as %s", source.id, copy.id)
    return copy


# ── Questions ─────────────────────────────────────────────────────────────────


def _ensure_unlocked(db: Session, quiz: Quiz, action: str) -> None:
    if has_attempts(db, quiz.id):
        raise QuizLocked(quiz.id, action)


def _get_question(quiz: Quiz, question_id: uuid.UUID) -> Question:
    for question in quiz.questions:
        if question.id == question_id:
            return question
    raise NotFound("question", question_id)


def _renumber(quiz: Quiz) -> None:
    for index, question in enumerate(quiz.questions):
        question.position = index


def add_question(
    db: Session,
    quiz_id: uuid.UUID,
    payload: QuestionCreate,
    *,
    bank_item_id: uuid.UUID | None = None,
) -> Question:
    quiz = get_quiz(db, quiz_id)
    _ensure_unlocked(db, quiz, "add questions")
    content = build_question_content(
        payload.variant,
        payload.question_text,
        payload.points,
        payload.explanation,
        payload.variant_data,
    )
    question = Question(
        position=len(quiz.questions),
        variant=content.variant,
        question_text=content.question_text,
        points=content.points,
        explanation=content.explanation,
        variant_data=content.data.model_dump(mode="json"),
        bank_item_id=bank_item_id,
    )
    quiz.questions.append(question)
    db.flush()
    logger.info("Question %s (%s) added to quiz %s", question.id, question.variant.value, quiz.id)
    return question


def update_question(
    db: Session, quiz_id: uuid.UUID, question_id: uuid.UUID, payload: QuestionUpdate
) -> Question:
    quiz = get_quiz(db, quiz_id)
    question = _get_question(quiz, question_id)
    _ensure_unlocked(db, quiz, "edit questions")

    content = build_question_content(
        question.variant,
        payload.question_text if payload.question_text is not None else question.question_text,
        payload.points if payload.points is not None else question.points,
        payload.explanation if payload.explanation is not None else question.explanation,
        payload.variant_data if payload.variant_data is not None else question.variant_data,
    )
    question.question_text = content.question_text
    question.points = content.points
    question.explanation = content.explanation
    question.variant_data = content.data.model_dump(mode="json")

    if payload.position is not None:
        ordered = [q for q in quiz.questions if q.id != question.id]
        index = max(0, min(payload.position, len(ordered)))
        ordered.insert(index, question)
        for position, q in enumerate(ordered):
            q.position = position
        db.flush()
        db.refresh(quiz, attribute_names=["questions"])
    else:
        db.flush()
    return question


def delete_question(db: Session, quiz_id: uuid.UUID, question_id: uuid.UUID) -> None:
    quiz = get_quiz(db, quiz_id)
    question = _get_question(quiz, question_id)
    _ensure_unlocked(db, quiz, "delete questions")
    quiz.questions.remove(question)
    _renumber(quiz)
    db.flush()
