"""Score aggregation for an attempt.

Grades are derived from the attempt's question snapshot and answer records on
every read; nothing here is stored.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from quiz_engine.db.models import AnswerRecord, Attempt


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer, halves away from zero (2.5 → 3)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(part: int, whole: int) -> int:
    """Whole-number percentage of *part* in *whole*, 0 when *whole* is 0.

    Computed in Decimal so exact halves such as 29/200 round up to 15.
    """
    if not whole:
        return 0
    return round_half_up(Decimal(part) * 100 / Decimal(whole))


@dataclass(frozen=True)
class Grade:
    total_points: int
    max_points: int
    percentage: int
    passed: bool
    pending_manual_count: int
    grading_complete: bool


def aggregate(
    questions: Iterable[dict[str, Any]],
    answers: Iterable[AnswerRecord],
    passing_score_percent: int,
) -> Grade:
    """Combine per-question points into a ``Grade``.

    Unanswered questions still count toward ``max_points``.  An answer that
    needs manual grading and has no awarded points yet is pending.
    """
    questions = list(questions)
    answers = list(answers)

    max_points = sum(int(q["points"]) for q in questions)
    total = sum(a.awarded_points for a in answers if a.awarded_points is not None)
    pending = sum(
        1 for a in answers if a.requires_manual_grading and a.awarded_points is None
    )
    percentage = percent_of(total, max_points)

    return Grade(
        total_points=total,
        max_points=max_points,
        percentage=percentage,
        passed=percentage >= passing_score_percent,
        pending_manual_count=pending,
        grading_complete=pending == 0,
    )


def grade_for_attempt(attempt: Attempt) -> Grade:
    return aggregate(
        attempt.questions_snapshot or [],
        attempt.answers,
        attempt.quiz.passing_score_percent,
    )
