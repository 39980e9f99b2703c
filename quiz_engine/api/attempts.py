"""Learner attempt routes: start, answer, submit, review."""

import logging
import uuid
from typing import Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from quiz_engine.api.deps import Principal, get_current_user
from quiz_engine.core.errors import NotFound
from quiz_engine.db.models import AnswerRecord, Attempt, AttemptStatusEnum, QuestionVariant
from quiz_engine.db.session import get_db
from quiz_engine.schemas.attempt import (
    AnswerRead,
    AnswerSubmit,
    AttemptRead,
    AttemptStart,
    AttemptSubmitRequest,
    AttemptSummary,
    FeedbackCreate,
    GradeRead,
    QuestionView,
)
from quiz_engine.schemas.question import parse_variant_data
from quiz_engine.services import attempts as attempt_service
from quiz_engine.services.presentation import public_prompt
from quiz_engine.services.reports import best_attempt
from quiz_engine.services.scoring import grade_for_attempt

logger = logging.getLogger(__name__)
router = APIRouter()


# ── View helpers ──────────────────────────────────────────────────────────────


def _is_open(attempt: Attempt) -> bool:
    return attempt.status == AttemptStatusEnum.IN_PROGRESS


def _question_view(attempt: Attempt, entry: dict[str, Any], reveal: bool) -> QuestionView:
    variant = QuestionVariant(entry["variant"])
    data = parse_variant_data(entry["variant_data"])
    solution = None
    if reveal:
        solution = {k: v for k, v in entry["variant_data"].items() if k != "variant"}
    return QuestionView(
        id=entry["id"],
        variant=variant,
        question_text=entry["question_text"],
        points=entry["points"],
        prompt=public_prompt(variant, data, entry["question_text"], seed=str(attempt.id)),
        solution=solution,
        explanation=entry.get("explanation") if reveal else None,
    )


def _answer_read(record: AnswerRecord, show_feedback: bool) -> AnswerRead:
    """The auto-grade outcome is always returned; instructor feedback only after submission."""
    return AnswerRead(
        question_id=record.question_id,
        answer=record.payload,
        is_correct=record.is_correct,
        awarded_points=record.awarded_points,
        requires_manual_grading=record.requires_manual_grading,
        instructor_feedback=record.instructor_feedback if show_feedback else None,
        answered_at=record.answered_at,
    )


def _grade_read(attempt: Attempt) -> GradeRead | None:
    if _is_open(attempt):
        return None
    return GradeRead.model_validate(grade_for_attempt(attempt))


def _summary(attempt: Attempt) -> AttemptSummary:
    return AttemptSummary(
        id=attempt.id,
        quiz_id=attempt.quiz_id,
        user_id=attempt.user_id,
        attempt_number=attempt.attempt_number,
        status=attempt.status,
        started_at=attempt.started_at,
        completed_at=attempt.completed_at,
        time_spent_seconds=attempt.time_spent_seconds,
        grade=_grade_read(attempt),
    )


def _attempt_read(attempt: Attempt) -> AttemptRead:
    """Learner view; correct answers appear only after submission, if the quiz reveals them."""
    show_results = not _is_open(attempt)
    reveal = show_results and attempt.quiz.reveal_answers
    return AttemptRead(
        **_summary(attempt).model_dump(),
        expires_at=attempt.expires_at,
        revision=attempt.revision,
        questions=[_question_view(attempt, e, reveal) for e in attempt.questions_snapshot],
        answers=[_answer_read(a, show_results) for a in attempt.answers],
        instructor_comments=attempt.instructor_comments if show_results else None,
        student_feedback=attempt.student_feedback,
        student_rating=attempt.student_rating,
    )


def _own_attempt(
    db: Session, attempt_id: uuid.UUID, user: Principal, *, expire: bool = True
) -> Attempt:
    """Load the caller's attempt; other users' attempts look missing."""
    attempt = attempt_service.get_attempt(db, attempt_id)
    if attempt.user_id != user.id:
        raise NotFound("attempt", attempt_id)
    if expire and attempt_service.expire_if_overdue(db, attempt):
        db.commit()
    return attempt


# ── Routes ────────────────────────────────────────────────────────────────────


@router.post("/", response_model=AttemptRead, status_code=status.HTTP_201_CREATED)
def start_attempt(
    body: AttemptStart,
    current_user: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    attempt = attempt_service.start_attempt(
        db, body.quiz_id, current_user.id, preview=current_user.is_instructor
    )
    db.commit()
    db.refresh(attempt)
    return _attempt_read(attempt)


@router.get("/", response_model=list[AttemptSummary])
def list_my_attempts(
    quiz_id: uuid.UUID = Query(...),
    current_user: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    attempts = (
        db.query(Attempt)
        .filter(Attempt.quiz_id == quiz_id, Attempt.user_id == current_user.id)
        .order_by(Attempt.attempt_number)
        .all()
    )
    for attempt in attempts:
        attempt_service.expire_if_overdue(db, attempt)
    db.commit()
    return [_summary(a) for a in attempts]


@router.get("/best", response_model=AttemptSummary)
def get_best_attempt(
    quiz_id: uuid.UUID = Query(...),
    current_user: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    attempt = best_attempt(db, quiz_id, current_user.id)
    if attempt is None:
        raise NotFound("attempt", quiz_id)
    return _summary(attempt)


@router.get("/{attempt_id}", response_model=AttemptRead)
def get_attempt(
    attempt_id: uuid.UUID,
    current_user: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _attempt_read(_own_attempt(db, attempt_id, current_user))


@router.put("/{attempt_id}/answers/{question_id}", response_model=AnswerRead)
def record_answer(
    attempt_id: uuid.UUID,
    question_id: uuid.UUID,
    body: AnswerSubmit,
    current_user: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    attempt = _own_attempt(db, attempt_id, current_user)
    record = attempt_service.record_answer(db, attempt, question_id, body.answer)
    db.commit()
    db.refresh(record)
    return _answer_read(record, show_feedback=False)


@router.post("/{attempt_id}/submit", response_model=AttemptRead)
def submit_attempt(
    attempt_id: uuid.UUID,
    body: AttemptSubmitRequest | None = None,
    current_user: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    attempt = _own_attempt(db, attempt_id, current_user, expire=False)
    attempt_service.submit_attempt(
        db, attempt, body.time_spent_seconds if body else None
    )
    db.commit()
    db.refresh(attempt)
    return _attempt_read(attempt)


@router.post("/{attempt_id}/feedback", response_model=AttemptRead)
def leave_feedback(
    attempt_id: uuid.UUID,
    body: FeedbackCreate,
    current_user: Principal = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    attempt = _own_attempt(db, attempt_id, current_user)
    attempt_service.record_student_feedback(db, attempt, body.feedback, body.rating)
    db.commit()
    db.refresh(attempt)
    return _attempt_read(attempt)
