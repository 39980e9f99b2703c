"""Auto-grading for objective question variants.

Runs once per recorded answer, not in a batch at submission time.

  - true_false / single_choice → exact match after trimming
  - multiple_choice            → set equality, all-or-nothing
  - short_answer               → trimmed, case-insensitive exact match

Every other variant is left for an instructor: the outcome carries
``is_correct=None`` / ``awarded_points=None`` and ``requires_manual_grading``.
Grading is a pure function of (variant data, answer, points).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from quiz_engine.db.models import AUTO_GRADABLE_VARIANTS, QuestionVariant
from quiz_engine.schemas.question import (
    MultipleChoiceData,
    ShortAnswerData,
    SingleChoiceData,
    TrueFalseData,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GradeOutcome:
    is_correct: bool | None
    awarded_points: int | None
    requires_manual_grading: bool


_MANUAL = GradeOutcome(is_correct=None, awarded_points=None, requires_manual_grading=True)


# ── Text normalisation helpers ────────────────────────────────────────────────


def _trim(text: str) -> str:
    return text.strip()


def _normalise(text: str) -> str:
    """Case-insensitive comparison form: 'Paris ' → 'paris'."""
    return text.strip().lower()


# ── Matchers ──────────────────────────────────────────────────────────────────


def _match_true_false(data: TrueFalseData, answer: Any) -> bool:
    return answer == data.correct_answer


def _match_single_choice(data: SingleChoiceData, answer: Any) -> bool:
    return _trim(answer) == _trim(data.correct_answer)


def _match_multiple_choice(data: MultipleChoiceData, answer: Any) -> bool:
    # Partial overlap scores nothing
    selected = {_trim(a) for a in answer}
    return selected == {_trim(c) for c in data.correct_answers}


def _match_short_answer(data: ShortAnswerData, answer: Any) -> bool:
    return _normalise(answer) == _normalise(data.correct_answer)


_MATCHERS: dict[QuestionVariant, Callable[[Any, Any], bool] | None] = {
    QuestionVariant.TRUE_FALSE: _match_true_false,
    QuestionVariant.SINGLE_CHOICE: _match_single_choice,
    QuestionVariant.MULTIPLE_CHOICE: _match_multiple_choice,
    QuestionVariant.SHORT_ANSWER: _match_short_answer,
    QuestionVariant.TEXT_ANSWER: None,
    QuestionVariant.MATCH_FOLLOWING: None,
    QuestionVariant.SORTABLE: None,
    QuestionVariant.FILL_BLANKS: None,
    QuestionVariant.AUDIO_VIDEO: None,
}


def is_auto_gradable(variant: QuestionVariant) -> bool:
    return variant in AUTO_GRADABLE_VARIANTS


# ── Main grading function ────────────────────────────────────────────────────


def evaluate(variant: QuestionVariant, data: Any, answer: Any, points: int) -> GradeOutcome:
    """Grade an already-validated answer.

    Args:
        variant: The question's variant.
        data: Parsed variant data holding the correct answer(s).
        answer: The learner's payload (shape checked by the answer validator).
        points: Points the question is worth.

    Returns:
        A ``GradeOutcome``; full points when correct, 0 when wrong, and an
        ungraded outcome flagged for manual grading for subjective variants.
    """
    matcher = _MATCHERS[variant]
    if matcher is None:
        return _MANUAL

    is_correct = matcher(data, answer)
    logger.debug("Auto-graded %s answer → %s", variant.value, is_correct)
    return GradeOutcome(
        is_correct=is_correct,
        awarded_points=points if is_correct else 0,
        requires_manual_grading=False,
    )
