"""Attempt state machine.

    in_progress ──submit / expiry──▶ submitted ──finalize──▶ graded
                                        │  ▲                   │
                                        └──┘ save (draft)      └─ save / finalize again

Answers are validated and auto-graded as they are recorded.  Grading writes
go through the attempt's ``revision`` (SQLAlchemy version counter): every
mutation bumps it, so two graders saving the same attempt cannot silently
overwrite each other.

Functions flush but never commit; the caller owns the transaction.
"""

import logging
import random
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from quiz_engine.core.errors import (
    AnswerValidationError,
    AttemptAlreadyActive,
    AttemptLimitExceeded,
    GradeOutOfRange,
    InvalidAttemptState,
    NotFound,
    StaleRevision,
)
from quiz_engine.db.models import AnswerRecord, Attempt, AttemptStatusEnum, Quiz, QuestionVariant
from quiz_engine.schemas.grading import QuestionGrade
from quiz_engine.schemas.question import QuestionSnapshot, parse_variant_data
from quiz_engine.services.answer_validator import validate_answer
from quiz_engine.services.grading import evaluate
from quiz_engine.services.quizzes import get_quiz
from quiz_engine.services.rubrics import get_rubric, load_criteria, rubric_points
from quiz_engine.services.scoring import Grade, grade_for_attempt

logger = logging.getLogger(__name__)

_GRADABLE_STATES = (AttemptStatusEnum.SUBMITTED, AttemptStatusEnum.GRADED)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def _flush(db: Session) -> None:
    try:
        db.flush()
    except StaleDataError:
        raise StaleRevision() from None


def _touch(attempt: Attempt, now: datetime) -> None:
    attempt.updated_at = now
    attempt.revision = attempt.revision + 1


def _check_revision(attempt: Attempt, expected_revision: int | None) -> None:
    if expected_revision is not None and expected_revision != attempt.revision:
        raise StaleRevision(expected_revision, attempt.revision)


# ── Lookups ───────────────────────────────────────────────────────────────────


def get_attempt(db: Session, attempt_id: uuid.UUID) -> Attempt:
    attempt = db.get(Attempt, attempt_id)
    if attempt is None:
        raise NotFound("attempt", attempt_id)
    return attempt


def _active_attempt(db: Session, quiz_id: uuid.UUID, user_id: str) -> Attempt | None:
    return (
        db.query(Attempt)
        .filter(
            Attempt.quiz_id == quiz_id,
            Attempt.user_id == user_id,
            Attempt.status == AttemptStatusEnum.IN_PROGRESS,
        )
        .first()
    )


def snapshot_entry(attempt: Attempt, question_id: uuid.UUID) -> dict[str, Any]:
    """The question as it was when *attempt* started."""
    key = str(question_id)
    for entry in attempt.questions_snapshot or []:
        if entry["id"] == key:
            return entry
    raise NotFound("question", question_id)


def _snapshot(quiz: Quiz, attempt_id: uuid.UUID) -> list[dict[str, Any]]:
    entries = [
        QuestionSnapshot(
            id=q.id,
            variant=q.variant,
            question_text=q.question_text,
            points=q.points,
            explanation=q.explanation,
            variant_data=q.variant_data,
        ).model_dump(mode="json")
        for q in quiz.questions
    ]
    if quiz.randomize_questions:
        random.Random(str(attempt_id)).shuffle(entries)
    return entries


# ── Expiry ────────────────────────────────────────────────────────────────────


def expire_if_overdue(db: Session, attempt: Attempt, now: datetime | None = None) -> bool:
    """Auto-submit *attempt* if its time limit has run out.

    Returns True when the attempt was submitted by this call.
    """
    now = now or _now()
    if attempt.status != AttemptStatusEnum.IN_PROGRESS or attempt.expires_at is None:
        return False
    expires_at = _as_utc(attempt.expires_at)
    if now < expires_at:
        return False

    attempt.status = AttemptStatusEnum.SUBMITTED
    attempt.completed_at = expires_at
    attempt.time_spent_seconds = int((expires_at - _as_utc(attempt.started_at)).total_seconds())
    _touch(attempt, now)
    _flush(db)
    logger.info("Attempt %s auto-submitted after its time limit", attempt.id)
    return True


def expire_overdue_attempts(db: Session, now: datetime | None = None) -> int:
    """Auto-submit every in-progress attempt past its deadline; return how many."""
    now = now or _now()
    overdue = (
        db.query(Attempt)
        .filter(
            Attempt.status == AttemptStatusEnum.IN_PROGRESS,
            Attempt.expires_at.is_not(None),
            Attempt.expires_at <= now,
        )
        .all()
    )
    expired = sum(1 for attempt in overdue if expire_if_overdue(db, attempt, now))
    if expired:
        logger.info("Expiry sweep submitted %d attempt(s)", expired)
    return expired


# ── Learner transitions ───────────────────────────────────────────────────────


def start_attempt(
    db: Session,
    quiz_id: uuid.UUID,
    user_id: str,
    *,
    preview: bool = False,
    now: datetime | None = None,
) -> Attempt:
    """Open a new attempt for *user_id*.

    ``preview`` lets instructors start attempts on unpublished quizzes.

    Raises:
        NotFound: Unknown, deleted or (for learners) unpublished quiz.
        AttemptAlreadyActive: The user already has an attempt in progress.
        AttemptLimitExceeded: ``max_attempts`` attempts already exist.
    """
    now = now or _now()
    quiz = get_quiz(db, quiz_id)
    if not quiz.is_published and not preview:
        raise NotFound("quiz", quiz_id)

    active = _active_attempt(db, quiz.id, user_id)
    if active is not None and not expire_if_overdue(db, active, now):
        raise AttemptAlreadyActive(active.id)

    prior = (
        db.query(Attempt)
        .filter(Attempt.quiz_id == quiz.id, Attempt.user_id == user_id)
        .count()
    )
    if prior >= quiz.max_attempts:
        raise AttemptLimitExceeded(quiz.max_attempts)

    attempt_id = uuid.uuid4()
    attempt = Attempt(
        id=attempt_id,
        quiz_id=quiz.id,
        user_id=user_id,
        attempt_number=prior + 1,
        status=AttemptStatusEnum.IN_PROGRESS,
        started_at=now,
        expires_at=(
            now + timedelta(minutes=quiz.time_limit_minutes)
            if quiz.time_limit_minutes
            else None
        ),
        questions_snapshot=_snapshot(quiz, attempt_id),
        revision=1,
        updated_at=now,
    )
    db.add(attempt)
    try:
        db.flush()
    except IntegrityError:
        # Lost a race with a concurrent start for the same user
        db.rollback()
        winner = _active_attempt(db, quiz_id, user_id)
        raise AttemptAlreadyActive(winner.id if winner else attempt_id) from None

    logger.info(
        "Attempt %s started: quiz=%s user=%s number=%d",
        attempt.id, quiz.id, user_id, attempt.attempt_number,
    )
    return attempt


def record_answer(
    db: Session,
    attempt: Attempt,
    question_id: uuid.UUID,
    payload: Any,
    *,
    now: datetime | None = None,
) -> AnswerRecord:
    """Validate, auto-grade and store the answer to one question.

    Answering the same question again replaces the earlier answer.
    """
    now = now or _now()
    if attempt.status != AttemptStatusEnum.IN_PROGRESS:
        raise InvalidAttemptState("answer", attempt.status.value)
    if expire_if_overdue(db, attempt, now):
        raise InvalidAttemptState(
            "answer",
            attempt.status.value,
            "Time limit exceeded; the attempt was submitted automatically",
        )

    entry = snapshot_entry(attempt, question_id)
    variant = QuestionVariant(entry["variant"])
    data = parse_variant_data(entry["variant_data"])
    validate_answer(variant, data, payload, question_id=question_id)
    outcome = evaluate(variant, data, payload, entry["points"])

    record = next((a for a in attempt.answers if a.question_id == question_id), None)
    if record is None:
        record = AnswerRecord(question_id=question_id)
        attempt.answers.append(record)
    record.payload = payload
    record.is_correct = outcome.is_correct
    record.awarded_points = outcome.awarded_points
    record.requires_manual_grading = outcome.requires_manual_grading
    record.answered_at = now
    record.graded_at = now if not outcome.requires_manual_grading else None

    _touch(attempt, now)
    _flush(db)
    return record


def submit_attempt(
    db: Session,
    attempt: Attempt,
    time_spent_seconds: int | None = None,
    *,
    now: datetime | None = None,
) -> Grade:
    """Close an in-progress attempt and return its current grade."""
    now = now or _now()
    if attempt.status != AttemptStatusEnum.IN_PROGRESS:
        raise InvalidAttemptState("submit", attempt.status.value)
    if expire_if_overdue(db, attempt, now):
        return grade_for_attempt(attempt)

    if time_spent_seconds is None:
        time_spent_seconds = int((now - _as_utc(attempt.started_at)).total_seconds())
    if attempt.quiz.time_limit_minutes:
        time_spent_seconds = min(time_spent_seconds, attempt.quiz.time_limit_minutes * 60)

    attempt.status = AttemptStatusEnum.SUBMITTED
    attempt.completed_at = now
    attempt.time_spent_seconds = time_spent_seconds
    _touch(attempt, now)
    _flush(db)

    grade = grade_for_attempt(attempt)
    logger.info(
        "Attempt %s submitted: %d/%d, %d pending manual grading",
        attempt.id, grade.total_points, grade.max_points, grade.pending_manual_count,
    )
    return grade


def record_student_feedback(
    db: Session, attempt: Attempt, feedback: str, rating: int | None = None
) -> Attempt:
    if not attempt.quiz.allow_student_feedback:
        raise InvalidAttemptState(
            "leave feedback on", attempt.status.value, "Feedback is not enabled for this quiz"
        )
    if attempt.status == AttemptStatusEnum.IN_PROGRESS:
        raise InvalidAttemptState("leave feedback on", attempt.status.value)
    attempt.student_feedback = feedback
    attempt.student_rating = rating
    _touch(attempt, _now())
    _flush(db)
    return attempt


# ── Instructor grading ────────────────────────────────────────────────────────


@dataclass
class _PlannedGrade:
    record: AnswerRecord
    max_points: int
    points: int | None
    rubric_selection: dict[str, Any] | None
    feedback: str | None


def _plan(db: Session, attempt: Attempt, grades: Iterable[QuestionGrade]) -> list[_PlannedGrade]:
    """Check every grade before anything is written."""
    records = {a.question_id: a for a in attempt.answers}
    seen: set[uuid.UUID] = set()
    planned: list[_PlannedGrade] = []

    for g in grades:
        qid = g.question_id
        if qid in seen:
            raise AnswerValidationError("Question graded more than once in one request", qid)
        seen.add(qid)

        entry = snapshot_entry(attempt, qid)
        record = records.get(qid)
        if record is None:
            raise AnswerValidationError("No answer recorded for this question", qid)

        points: int | None = None
        selection: dict[str, Any] | None = None
        if g.points is not None or g.rubric is not None:
            if not record.requires_manual_grading:
                raise AnswerValidationError(
                    "Question is auto-graded and cannot be graded manually", qid
                )
            if g.rubric is not None:
                rubric = get_rubric(db, g.rubric.rubric_id)
                points = rubric_points(load_criteria(rubric), g.rubric.selections, qid)
                selection = g.rubric.model_dump(mode="json")
            else:
                points = g.points
            if not 0 <= points <= entry["points"]:
                raise GradeOutOfRange(qid, points, entry["points"])

        planned.append(_PlannedGrade(record, entry["points"], points, selection, g.feedback))
    return planned


def _apply_grading(
    db: Session,
    attempt: Attempt,
    grades: Iterable[QuestionGrade],
    comments: str | None,
    expected_revision: int | None,
    now: datetime,
    action: str,
) -> None:
    if attempt.status not in _GRADABLE_STATES:
        raise InvalidAttemptState(action, attempt.status.value)
    _check_revision(attempt, expected_revision)

    for item in _plan(db, attempt, grades):
        if item.points is not None:
            # Rubric and raw points share awarded_points; the last write wins
            item.record.awarded_points = item.points
            item.record.is_correct = item.points == item.max_points
            item.record.rubric_selection = item.rubric_selection
            item.record.graded_at = now
        if item.feedback is not None:
            item.record.instructor_feedback = item.feedback

    if comments is not None:
        attempt.instructor_comments = comments
    _touch(attempt, now)


def save_grading(
    db: Session,
    attempt: Attempt,
    grades: Iterable[QuestionGrade],
    comments: str | None = None,
    *,
    expected_revision: int | None = None,
    now: datetime | None = None,
) -> Grade:
    """Save a grading draft; the attempt keeps its status."""
    now = now or _now()
    _apply_grading(db, attempt, grades, comments, expected_revision, now, "grade")
    _flush(db)
    grade = grade_for_attempt(attempt)
    logger.info(
        "Grading saved for attempt %s: %d/%d (%d pending)",
        attempt.id, grade.total_points, grade.max_points, grade.pending_manual_count,
    )
    return grade


def finalize_attempt(
    db: Session,
    attempt: Attempt,
    grades: Iterable[QuestionGrade],
    comments: str | None,
    grader: str,
    *,
    expected_revision: int | None = None,
    now: datetime | None = None,
) -> Grade:
    """Save grading and mark the attempt graded.

    The caller notifies the learner once the transaction commits.
    """
    now = now or _now()
    _apply_grading(db, attempt, grades, comments, expected_revision, now, "finalize")
    attempt.status = AttemptStatusEnum.GRADED
    attempt.graded_at = now
    attempt.graded_by = grader
    _flush(db)
    grade = grade_for_attempt(attempt)
    logger.info(
        "Attempt %s graded by %s: %d%% (%s)",
        attempt.id, grader, grade.percentage, "passed" if grade.passed else "failed",
    )
    return grade
