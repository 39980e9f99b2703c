"""Learner-facing view of a question: what to render without the answer key.

Orderings that would leak the answer (sortable items, match answers) are
shuffled with a seed derived from the attempt, so the same learner sees the
same order on every reload.
"""

import random
from typing import Any, Callable

from quiz_engine.db.models import QuestionVariant
from quiz_engine.schemas.question import BLANK_MARKER, count_blanks


def _nothing(data: Any, question_text: str, rng: random.Random) -> dict[str, Any]:
    return {}


def _options(data: Any, question_text: str, rng: random.Random) -> dict[str, Any]:
    return {"options": list(data.options)}


def _match_following(data: Any, question_text: str, rng: random.Random) -> dict[str, Any]:
    answers = [p.answer for p in data.pairs]
    rng.shuffle(answers)
    return {"prompts": [p.prompt for p in data.pairs], "answers": answers}


def _sortable(data: Any, question_text: str, rng: random.Random) -> dict[str, Any]:
    items = list(data.correct_order)
    rng.shuffle(items)
    return {"items": items}


def _fill_blanks(data: Any, question_text: str, rng: random.Random) -> dict[str, Any]:
    return {"blank_count": count_blanks(question_text), "blank_marker": BLANK_MARKER}


def _audio_video(data: Any, question_text: str, rng: random.Random) -> dict[str, Any]:
    return {"media_url": str(data.media_url), "media_type": data.media_type}


_PRESENTERS: dict[QuestionVariant, Callable[[Any, str, random.Random], dict[str, Any]]] = {
    QuestionVariant.TRUE_FALSE: _nothing,
    QuestionVariant.SINGLE_CHOICE: _options,
    QuestionVariant.MULTIPLE_CHOICE: _options,
    QuestionVariant.SHORT_ANSWER: _nothing,
    QuestionVariant.TEXT_ANSWER: _nothing,
    QuestionVariant.MATCH_FOLLOWING: _match_following,
    QuestionVariant.SORTABLE: _sortable,
    QuestionVariant.FILL_BLANKS: _fill_blanks,
    QuestionVariant.AUDIO_VIDEO: _audio_video,
}


def public_prompt(
    variant: QuestionVariant, data: Any, question_text: str, seed: str
) -> dict[str, Any]:
    """Return the render data for *variant* with correct answers removed."""
    rng = random.Random(f"{seed}:{question_text}")
    return _PRESENTERS[variant](data, question_text, rng)
