"""Read-side reports: quiz statistics, grading queues and best attempts.

Everything is computed from attempts and answer records on demand, using the
same aggregation as a single attempt's grade.
"""

import uuid

from sqlalchemy.orm import Session

from quiz_engine.db.models import Attempt, AttemptStatusEnum, Quiz
from quiz_engine.schemas.grading import GradingStats
from quiz_engine.schemas.quiz import QuestionStatistics, QuizStatistics, ScoreBucket
from quiz_engine.services.scoring import Grade, grade_for_attempt

_BUCKETS = [(0, 20), (21, 40), (41, 60), (61, 80), (81, 100)]

_COMPLETED = (AttemptStatusEnum.SUBMITTED, AttemptStatusEnum.GRADED)


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _average(grades: list[Grade]) -> float:
    return round(sum(g.percentage for g in grades) / len(grades), 1) if grades else 0.0


def score_distribution(percentages: list[int]) -> list[ScoreBucket]:
    counts = [0] * len(_BUCKETS)
    for pct in percentages:
        for index, (_low, high) in enumerate(_BUCKETS):
            if pct <= high:
                counts[index] += 1
                break
    return [
        ScoreBucket(range=f"{low}-{high}", count=count)
        for (low, high), count in zip(_BUCKETS, counts)
    ]


def quiz_statistics(db: Session, quiz: Quiz) -> QuizStatistics:
    attempts = db.query(Attempt).filter(Attempt.quiz_id == quiz.id).all()
    completed = [a for a in attempts if a.status in _COMPLETED]
    grades = [grade_for_attempt(a) for a in completed]

    questions: list[QuestionStatistics] = []
    for question in quiz.questions:
        records = [
            r for a in completed for r in a.answers if r.question_id == question.id
        ]
        judged = [r for r in records if r.is_correct is not None]
        correct = sum(1 for r in judged if r.is_correct)
        questions.append(
            QuestionStatistics(
                question_id=question.id,
                question_text=question.question_text,
                variant=question.variant.value,
                answered=len(records),
                correct=correct,
                correct_rate=_rate(correct, len(judged)) if judged else None,
            )
        )
    # Hardest first; questions nobody has been judged on go last
    questions.sort(key=lambda s: (s.correct_rate is None, s.correct_rate or 0.0))

    return QuizStatistics(
        quiz_id=quiz.id,
        total_attempts=len(attempts),
        completed_attempts=len(completed),
        average_percentage=_average(grades),
        pass_rate=_rate(sum(1 for g in grades if g.passed), len(grades)),
        distribution=score_distribution([g.percentage for g in grades]),
        questions=questions,
    )


def attempts_for_quiz(
    db: Session, quiz_id: uuid.UUID, status: AttemptStatusEnum | None = None
) -> list[Attempt]:
    query = db.query(Attempt).filter(Attempt.quiz_id == quiz_id)
    if status is not None:
        query = query.filter(Attempt.status == status)
    return query.order_by(Attempt.started_at.desc()).all()


def pending_queue(db: Session, course_id: str | None = None) -> list[Attempt]:
    """Submitted attempts awaiting a final grade, oldest submission first."""
    query = (
        db.query(Attempt)
        .join(Quiz, Attempt.quiz_id == Quiz.id)
        .filter(Attempt.status == AttemptStatusEnum.SUBMITTED, Quiz.is_deleted.is_(False))
    )
    if course_id is not None:
        query = query.filter(Quiz.course_id == course_id)
    return query.order_by(Attempt.completed_at.asc()).all()


def grading_stats(db: Session, course_id: str | None = None) -> GradingStats:
    query = db.query(Attempt).join(Quiz, Attempt.quiz_id == Quiz.id).filter(
        Quiz.is_deleted.is_(False)
    )
    if course_id is not None:
        query = query.filter(Quiz.course_id == course_id)
    attempts = query.all()

    by_status = {s: 0 for s in AttemptStatusEnum}
    for attempt in attempts:
        by_status[attempt.status] += 1
    graded = [grade_for_attempt(a) for a in attempts if a.status == AttemptStatusEnum.GRADED]

    return GradingStats(
        total_attempts=len(attempts),
        pending=by_status[AttemptStatusEnum.SUBMITTED],
        graded=by_status[AttemptStatusEnum.GRADED],
        in_progress=by_status[AttemptStatusEnum.IN_PROGRESS],
        average_percentage=_average(graded),
        pass_rate=_rate(sum(1 for g in graded if g.passed), len(graded)),
    )


def best_attempt(db: Session, quiz_id: uuid.UUID, user_id: str) -> Attempt | None:
    """Highest-scoring completed attempt; the earlier one wins a tie."""
    completed = (
        db.query(Attempt)
        .filter(
            Attempt.quiz_id == quiz_id,
            Attempt.user_id == user_id,
            Attempt.status.in_(_COMPLETED),
        )
        .order_by(Attempt.attempt_number)
        .all()
    )
    best: Attempt | None = None
    best_pct = -1
    for attempt in completed:
        pct = grade_for_attempt(attempt).percentage
        if pct > best_pct:
            best, best_pct = attempt, pct
    return best
