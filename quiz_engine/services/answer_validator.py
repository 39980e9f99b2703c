"""Structural validation of learner answers, per question variant.

Validation only checks that a payload has the shape the variant expects
(right JSON type, values drawn from the known options or items).  It never
judges correctness and never coerces: a payload either passes unchanged or
is rejected with an ``AnswerValidationError`` carrying the reason.

Expected payload shapes
-----------------------
- true_false                     → ``true`` / ``false``
- single_choice                  → ``"option"``
- multiple_choice                → ``["option", ...]``
- short_answer / text_answer /
  audio_video                    → ``"free text"``
- match_following                → ``[{"prompt": ..., "answer": ...}, ...]``
- sortable                       → ``["item", ...]`` (a permutation)
- fill_blanks                    → ``["blank 1", "blank 2", ...]``
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Callable

from quiz_engine.core.errors import AnswerValidationError
from quiz_engine.db.models import QuestionVariant
from quiz_engine.schemas.question import (
    FillBlanksData,
    MatchFollowingData,
    MultipleChoiceData,
    SingleChoiceData,
    SortableData,
)


class _Reject(Exception):
    """Internal signal carrying the rejection reason."""


def _require_text(payload: Any) -> str:
    if not isinstance(payload, str):
        raise _Reject("answer must be a string")
    if not payload.strip():
        raise _Reject("answer must not be empty")
    return payload


def _require_string_list(payload: Any) -> list[str]:
    if not isinstance(payload, list):
        raise _Reject("answer must be a list of strings")
    if not all(isinstance(item, str) for item in payload):
        raise _Reject("every list entry must be a string")
    return payload


# ── Per-variant validators ────────────────────────────────────────────────────


def _true_false(data: Any, payload: Any) -> None:
    # bool is checked by type, "true" / 1 are not accepted
    if not isinstance(payload, bool):
        raise _Reject("answer must be true or false")


def _single_choice(data: SingleChoiceData, payload: Any) -> None:
    answer = _require_text(payload).strip()
    if answer not in data.options:
        raise _Reject("answer is not one of the options")


def _multiple_choice(data: MultipleChoiceData, payload: Any) -> None:
    selected = [s.strip() for s in _require_string_list(payload)]
    if len(set(selected)) != len(selected):
        raise _Reject("an option was selected more than once")
    unknown = [s for s in selected if s not in data.options]
    if unknown:
        raise _Reject(f"selected values are not options: {unknown}")


def _free_text(data: Any, payload: Any) -> None:
    _require_text(payload)


def _match_following(data: MatchFollowingData, payload: Any) -> None:
    if not isinstance(payload, list):
        raise _Reject("answer must be a list of {prompt, answer} pairs")
    prompts = {p.prompt for p in data.pairs}
    answers = {p.answer for p in data.pairs}
    seen: set[str] = set()
    for pair in payload:
        if not isinstance(pair, dict) or set(pair) != {"prompt", "answer"}:
            raise _Reject("each pair must be an object with exactly 'prompt' and 'answer'")
        prompt, answer = pair["prompt"], pair["answer"]
        if not isinstance(prompt, str) or not isinstance(answer, str):
            raise _Reject("pair prompt and answer must be strings")
        if prompt.strip() not in prompts:
            raise _Reject(f"unknown prompt: {prompt!r}")
        if answer.strip() not in answers:
            raise _Reject(f"unknown answer: {answer!r}")
        if prompt.strip() in seen:
            raise _Reject(f"prompt matched more than once: {prompt!r}")
        seen.add(prompt.strip())


def _sortable(data: SortableData, payload: Any) -> None:
    items = _require_string_list(payload)
    if Counter(i.strip() for i in items) != Counter(data.correct_order):
        raise _Reject("answer must be a reordering of exactly the given items")


def _fill_blanks(data: FillBlanksData, payload: Any) -> None:
    blanks = _require_string_list(payload)
    if len(blanks) != len(data.blank_answers):
        raise _Reject(
            f"expected {len(data.blank_answers)} blank(s), got {len(blanks)}"
        )


_VALIDATORS: dict[QuestionVariant, Callable[[Any, Any], None]] = {
    QuestionVariant.TRUE_FALSE: _true_false,
    QuestionVariant.SINGLE_CHOICE: _single_choice,
    QuestionVariant.MULTIPLE_CHOICE: _multiple_choice,
    QuestionVariant.SHORT_ANSWER: _free_text,
    QuestionVariant.TEXT_ANSWER: _free_text,
    QuestionVariant.MATCH_FOLLOWING: _match_following,
    QuestionVariant.SORTABLE: _sortable,
    QuestionVariant.FILL_BLANKS: _fill_blanks,
    QuestionVariant.AUDIO_VIDEO: _free_text,
}


def validate_answer(
    variant: QuestionVariant,
    data: Any,
    payload: Any,
    question_id: Any = None,
) -> Any:
    """Check *payload* against the shape of *variant*; return it unchanged.

    Args:
        variant: The question's variant.
        data: Parsed variant data (see ``schemas.question``).
        payload: Raw JSON-decoded answer from the learner.
        question_id: Included in the error details when given.

    Raises:
        AnswerValidationError: If the payload has the wrong shape.
    """
    try:
        _VALIDATORS[variant](data, payload)
    except _Reject as exc:
        raise AnswerValidationError(str(exc), question_id=question_id) from None
    return payload
