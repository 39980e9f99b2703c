"""Quiz authoring routes (instructors) and quiz listing."""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from quiz_engine.api.deps import Principal, get_current_user, require_instructor
from quiz_engine.db.models import Quiz
from quiz_engine.db.session import get_db
from quiz_engine.schemas.question import QuestionCreate, QuestionRead, QuestionUpdate
from quiz_engine.schemas.quiz import (
    QuizCreate,
    QuizRead,
    QuizStatistics,
    QuizSummary,
    QuizUpdate,
)
from quiz_engine.services import quizzes as quiz_service
from quiz_engine.services.directory_client import get_directory_client
from quiz_engine.services.reports import quiz_statistics

logger = logging.getLogger(__name__)
router = APIRouter()


def _quiz_read(quiz: Quiz) -> QuizRead:
    read = QuizRead.model_validate(quiz)
    if quiz.lesson_id:
        read.lesson_title = get_directory_client().resolve_lesson(quiz.lesson_id)
    return read


def _summary(quiz: Quiz) -> QuizSummary:
    return QuizSummary(
        id=quiz.id,
        course_id=quiz.course_id,
        lesson_id=quiz.lesson_id,
        title=quiz.title,
        is_published=quiz.is_published,
        question_count=len(quiz.questions),
        total_points=sum(q.points for q in quiz.questions),
        max_attempts=quiz.max_attempts,
        time_limit_minutes=quiz.time_limit_minutes,
        created_at=quiz.created_at,
    )


# ── Quizzes ───────────────────────────────────────────────────────────────────


@router.post("/", response_model=QuizRead, status_code=status.HTTP_201_CREATED)
def create_quiz(
    body: QuizCreate,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    quiz = quiz_service.create_quiz(db, body, current_user.id)
    db.commit()
    db.refresh(quiz)
    return _quiz_read(quiz)


@router.get("/", response_model=list[QuizSummary])
def list_quizzes(
    course_id: str = Query(..., min_length=1),
    current_user: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Quizzes of a course; learners only see published ones."""
    quizzes = quiz_service.list_quizzes(
        db, course_id, published_only=not current_user.is_instructor
    )
    return [_summary(q) for q in quizzes]


@router.get("/{quiz_id}", response_model=QuizRead)
def get_quiz(
    quiz_id: uuid.UUID,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return _quiz_read(quiz_service.get_quiz(db, quiz_id))


@router.patch("/{quiz_id}", response_model=QuizRead)
def update_quiz(
    quiz_id: uuid.UUID,
    body: QuizUpdate,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    quiz = quiz_service.update_quiz(db, quiz_id, body)
    db.commit()
    db.refresh(quiz)
    return _quiz_read(quiz)


@router.post("/{quiz_id}/publish", response_model=QuizRead)
def publish_quiz(
    quiz_id: uuid.UUID,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    quiz = quiz_service.set_published(db, quiz_id, True)
    db.commit()
    db.refresh(quiz)
    return _quiz_read(quiz)


@router.post("/{quiz_id}/unpublish", response_model=QuizRead)
def unpublish_quiz(
    quiz_id: uuid.UUID,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    quiz = quiz_service.set_published(db, quiz_id, False)
    db.commit()
    db.refresh(quiz)
    return _quiz_read(quiz)


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quiz(
    quiz_id: uuid.UUID,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    quiz_service.delete_quiz(db, quiz_id)
    db.commit()


@router.post("/{quiz_id}/duplicate", response_model=QuizRead, status_code=status.HTTP_201_CREATED)
def duplicate_quiz(
    quiz_id: uuid.UUID,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    copy = quiz_service.duplicate_quiz(db, quiz_id, current_user.id)
    db.commit()
    db.refresh(copy)
    return _quiz_read(copy)


@router.get("/{quiz_id}/statistics", response_model=QuizStatistics)
def get_quiz_statistics(
    quiz_id: uuid.UUID,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return quiz_statistics(db, quiz_service.get_quiz(db, quiz_id))


# ── Questions ─────────────────────────────────────────────────────────────────


@router.post(
    "/{quiz_id}/questions",
    response_model=QuestionRead,
    status_code=status.HTTP_201_CREATED,
)
def add_question(
    quiz_id: uuid.UUID,
    body: QuestionCreate,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    question = quiz_service.add_question(db, quiz_id, body)
    db.commit()
    db.refresh(question)
    return question


@router.patch("/{quiz_id}/questions/{question_id}", response_model=QuestionRead)
def update_question(
    quiz_id: uuid.UUID,
    question_id: uuid.UUID,
    body: QuestionUpdate,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    question = quiz_service.update_question(db, quiz_id, question_id, body)
    db.commit()
    db.refresh(question)
    return question


@router.delete("/{quiz_id}/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_question(
    quiz_id: uuid.UUID,
    question_id: uuid.UUID,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    quiz_service.delete_question(db, quiz_id, question_id)
    db.commit()
