"""Instructor grading routes."""

import logging
import threading
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from quiz_engine.api.deps import Principal, require_instructor
from quiz_engine.config import settings
from quiz_engine.db.models import (
    AUTO_GRADABLE_VARIANTS,
    Attempt,
    AttemptStatusEnum,
    QuestionVariant,
)
from quiz_engine.db.session import get_db
from quiz_engine.schemas.attempt import GradeRead
from quiz_engine.schemas.grading import (
    AttemptListItem,
    GradeAttemptRequest,
    GradingAnswerRead,
    GradingAttemptRead,
    GradingStats,
)
from quiz_engine.services import attempts as attempt_service
from quiz_engine.services import reports
from quiz_engine.services.directory_client import get_directory_client
from quiz_engine.services.quizzes import get_quiz
from quiz_engine.services.scoring import Grade, grade_for_attempt
from quiz_engine.tasks import send_grade_notification

logger = logging.getLogger(__name__)
router = APIRouter()


def _enqueue_notification(attempt: Attempt, grade: Grade) -> None:
    """Dispatch the learner notification once grading is committed.

    In eager mode the task runs in-process, so it is pushed to a daemon
    thread to keep the response from waiting on the directory service.
    """
    args = (
        str(attempt.id),
        str(attempt.quiz_id),
        attempt.user_id,
        attempt.quiz.title,
        grade.percentage,
        grade.passed,
    )
    if settings.CELERY_TASK_ALWAYS_EAGER:
        threading.Thread(target=send_grade_notification.delay, args=args, daemon=True).start()
    else:
        send_grade_notification.delay(*args)


def _grading_view(attempt: Attempt) -> GradingAttemptRead:
    records = {a.question_id: a for a in attempt.answers}
    answers = []
    for entry in attempt.questions_snapshot:
        record = records.get(uuid.UUID(entry["id"]))
        answers.append(
            GradingAnswerRead(
                question_id=entry["id"],
                variant=entry["variant"],
                question_text=entry["question_text"],
                points=entry["points"],
                variant_data=entry["variant_data"],
                answered=record is not None,
                answer=record.payload if record else None,
                is_correct=record.is_correct if record else None,
                awarded_points=record.awarded_points if record else None,
                requires_manual_grading=(
                    record.requires_manual_grading
                    if record
                    else QuestionVariant(entry["variant"]) not in AUTO_GRADABLE_VARIANTS
                ),
                instructor_feedback=record.instructor_feedback if record else None,
                rubric_selection=record.rubric_selection if record else None,
            )
        )

    user = get_directory_client().resolve_user(attempt.user_id) or {}
    return GradingAttemptRead(
        id=attempt.id,
        quiz_id=attempt.quiz_id,
        quiz_title=attempt.quiz.title,
        user_id=attempt.user_id,
        user_name=user.get("name"),
        user_email=user.get("email"),
        attempt_number=attempt.attempt_number,
        status=attempt.status,
        started_at=attempt.started_at,
        completed_at=attempt.completed_at,
        time_spent_seconds=attempt.time_spent_seconds,
        revision=attempt.revision,
        instructor_comments=attempt.instructor_comments,
        graded_at=attempt.graded_at,
        graded_by=attempt.graded_by,
        student_feedback=attempt.student_feedback,
        student_rating=attempt.student_rating,
        grade=GradeRead.model_validate(grade_for_attempt(attempt)),
        answers=answers,
    )


def _list_item(attempt: Attempt) -> AttemptListItem:
    user = get_directory_client().resolve_user(attempt.user_id) or {}
    return AttemptListItem(
        id=attempt.id,
        quiz_id=attempt.quiz_id,
        quiz_title=attempt.quiz.title,
        user_id=attempt.user_id,
        user_name=user.get("name"),
        attempt_number=attempt.attempt_number,
        status=attempt.status,
        completed_at=attempt.completed_at,
        grade=GradeRead.model_validate(grade_for_attempt(attempt)),
    )


# ── Routes ────────────────────────────────────────────────────────────────────


@router.get("/attempts/{attempt_id}", response_model=GradingAttemptRead)
def get_attempt_for_grading(
    attempt_id: uuid.UUID,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    attempt = attempt_service.get_attempt(db, attempt_id)
    if attempt_service.expire_if_overdue(db, attempt):
        db.commit()
    return _grading_view(attempt)


@router.post("/attempts/{attempt_id}", response_model=GradingAttemptRead)
def grade_attempt(
    attempt_id: uuid.UUID,
    body: GradeAttemptRequest,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """Save a grading draft, or finalize it with ``finalize: true``."""
    attempt = attempt_service.get_attempt(db, attempt_id)
    if attempt_service.expire_if_overdue(db, attempt):
        db.commit()

    if body.finalize:
        grade = attempt_service.finalize_attempt(
            db,
            attempt,
            body.grades,
            body.comments,
            current_user.id,
            expected_revision=body.expected_revision,
        )
    else:
        grade = attempt_service.save_grading(
            db,
            attempt,
            body.grades,
            body.comments,
            expected_revision=body.expected_revision,
        )
    db.commit()
    db.refresh(attempt)

    if body.finalize:
        _enqueue_notification(attempt, grade)
    return _grading_view(attempt)


@router.get("/quizzes/{quiz_id}/attempts", response_model=list[AttemptListItem])
def list_quiz_attempts(
    quiz_id: uuid.UUID,
    status: AttemptStatusEnum | None = Query(None),
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    quiz = get_quiz(db, quiz_id)
    return [_list_item(a) for a in reports.attempts_for_quiz(db, quiz.id, status)]


@router.get("/pending", response_model=list[AttemptListItem])
def list_pending(
    course_id: str | None = Query(None),
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """Submitted attempts waiting for a final grade, oldest first."""
    return [_list_item(a) for a in reports.pending_queue(db, course_id)]


@router.get("/stats", response_model=GradingStats)
def get_grading_stats(
    course_id: str | None = Query(None),
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return reports.grading_stats(db, course_id)
