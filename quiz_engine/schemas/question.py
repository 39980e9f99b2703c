"""Question schemas: the nine question variants as one tagged union.

Each variant carries its own correct-answer data; ``variant`` is the
discriminator.  Models reject unknown keys so data meant for one variant
cannot silently ride along on another.
"""

import uuid
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, field_validator, model_validator

from quiz_engine.db.models import QuestionVariant

# Fill-in-the-blank marker inside question text
BLANK_MARKER = "_____"


def count_blanks(question_text: str) -> int:
    """Number of non-overlapping blank markers in *question_text*."""
    return question_text.count(BLANK_MARKER)


def _clean_items(items: list[str], what: str, minimum: int) -> list[str]:
    cleaned = [item.strip() for item in items]
    if len(cleaned) < minimum:
        raise ValueError(f"at least {minimum} {what} required")
    if any(not item for item in cleaned):
        raise ValueError(f"{what} must not be blank")
    if len(set(cleaned)) != len(cleaned):
        raise ValueError(f"{what} must be unique")
    return cleaned


def _non_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class _VariantData(BaseModel):
    model_config = {"extra": "forbid"}


# ── Objective (auto-gradable) variants ────────────────────────────────────────


class TrueFalseData(_VariantData):
    variant: Literal["true_false"]
    correct_answer: bool


class SingleChoiceData(_VariantData):
    variant: Literal["single_choice"]
    options: list[str]
    correct_answer: str

    @field_validator("options")
    @classmethod
    def _options(cls, v: list[str]) -> list[str]:
        return _clean_items(v, "options", 2)

    @field_validator("correct_answer")
    @classmethod
    def _correct(cls, v: str) -> str:
        return _non_blank(v)

    @model_validator(mode="after")
    def _correct_in_options(self) -> "SingleChoiceData":
        if self.correct_answer not in self.options:
            raise ValueError("correct_answer must be one of the options")
        return self


class MultipleChoiceData(_VariantData):
    variant: Literal["multiple_choice"]
    options: list[str]
    correct_answers: list[str]

    @field_validator("options")
    @classmethod
    def _options(cls, v: list[str]) -> list[str]:
        return _clean_items(v, "options", 2)

    @field_validator("correct_answers")
    @classmethod
    def _correct(cls, v: list[str]) -> list[str]:
        return _clean_items(v, "correct answers", 1)

    @model_validator(mode="after")
    def _correct_in_options(self) -> "MultipleChoiceData":
        unknown = [a for a in self.correct_answers if a not in self.options]
        if unknown:
            raise ValueError(f"correct_answers not among options: {unknown}")
        return self


class ShortAnswerData(_VariantData):
    variant: Literal["short_answer"]
    correct_answer: str

    @field_validator("correct_answer")
    @classmethod
    def _correct(cls, v: str) -> str:
        return _non_blank(v)


# ── Subjective (manually graded) variants ─────────────────────────────────────


class TextAnswerData(_VariantData):
    variant: Literal["text_answer"]
    reference_answer: str | None = None  # guidance for graders only


class MatchPair(BaseModel):
    model_config = {"extra": "forbid"}

    prompt: str
    answer: str

    @field_validator("prompt", "answer")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        return _non_blank(v)


class MatchFollowingData(_VariantData):
    variant: Literal["match_following"]
    pairs: list[MatchPair]

    @field_validator("pairs")
    @classmethod
    def _pairs(cls, v: list[MatchPair]) -> list[MatchPair]:
        if not v:
            raise ValueError("at least 1 pair required")
        prompts = [p.prompt for p in v]
        if len(set(prompts)) != len(prompts):
            raise ValueError("prompts must be unique")
        return v


class SortableData(_VariantData):
    variant: Literal["sortable"]
    correct_order: list[str]

    @field_validator("correct_order")
    @classmethod
    def _items(cls, v: list[str]) -> list[str]:
        return _clean_items(v, "items", 1)


class FillBlanksData(_VariantData):
    variant: Literal["fill_blanks"]
    blank_answers: list[str]

    @field_validator("blank_answers")
    @classmethod
    def _answers(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("at least 1 blank answer required")
        return [_non_blank(a) for a in v]


class AudioVideoData(_VariantData):
    variant: Literal["audio_video"]
    media_url: HttpUrl
    media_type: Literal["audio", "video"]
    reference_answer: str | None = None


QuestionVariantData = Annotated[
    Union[
        TrueFalseData,
        SingleChoiceData,
        MultipleChoiceData,
        ShortAnswerData,
        TextAnswerData,
        MatchFollowingData,
        SortableData,
        FillBlanksData,
        AudioVideoData,
    ],
    Field(discriminator="variant"),
]

_variant_adapter: TypeAdapter = TypeAdapter(QuestionVariantData)


def parse_variant_data(raw: dict[str, Any]) -> _VariantData:
    """Validate a stored/submitted ``variant_data`` dict into its model.

    Raises ``pydantic.ValidationError`` on invalid content.
    """
    return _variant_adapter.validate_python(raw)


class QuestionContent(BaseModel):
    """Validated content of one question, as stored and snapshotted."""

    question_text: str
    points: int
    explanation: str | None = None
    data: QuestionVariantData

    @field_validator("question_text")
    @classmethod
    def _text(cls, v: str) -> str:
        return _non_blank(v)

    @field_validator("points")
    @classmethod
    def _points(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("points must be a positive integer")
        return v

    @model_validator(mode="after")
    def _blank_count(self) -> "QuestionContent":
        if isinstance(self.data, FillBlanksData):
            markers = count_blanks(self.question_text)
            if markers != len(self.data.blank_answers):
                raise ValueError(
                    f"question text has {markers} blank marker(s) ({BLANK_MARKER}) "
                    f"but {len(self.data.blank_answers)} blank answer(s) were given"
                )
        return self

    @property
    def variant(self) -> QuestionVariant:
        return QuestionVariant(self.data.variant)


# ── API request / response models ─────────────────────────────────────────────


class QuestionCreate(BaseModel):
    """POST /api/quizzes/{quiz_id}/questions"""

    variant: QuestionVariant
    question_text: str
    points: int
    explanation: str | None = None
    variant_data: dict[str, Any] = Field(default_factory=dict)


class QuestionUpdate(BaseModel):
    """PATCH /api/quizzes/{quiz_id}/questions/{question_id} (the variant is fixed)."""

    question_text: str | None = None
    points: int | None = None
    explanation: str | None = None
    variant_data: dict[str, Any] | None = None
    position: int | None = None


class QuestionRead(BaseModel):
    """Instructor view of a question, including correct-answer data."""

    id: uuid.UUID
    quiz_id: uuid.UUID
    position: int
    variant: QuestionVariant
    question_text: str
    points: int
    explanation: str | None = None
    variant_data: dict[str, Any]
    requires_manual_grading: bool
    bank_item_id: uuid.UUID | None = None

    model_config = {"from_attributes": True}


class QuestionSnapshot(BaseModel):
    """Question content frozen into an attempt when it starts."""

    id: uuid.UUID
    variant: QuestionVariant
    question_text: str
    points: int
    explanation: str | None = None
    variant_data: dict[str, Any]
