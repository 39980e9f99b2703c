"""Question bank schemas: reusable questions and their import into quizzes."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from quiz_engine.db.models import QuestionDifficulty, QuestionVariant


def _clean_tags(tags: list[str]) -> list[str]:
    """Trim, drop blanks and de-duplicate, keeping first-seen order."""
    seen: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class BankItemCreate(BaseModel):
    """POST /api/question-bank/"""

    organization_id: str = Field(..., min_length=1, max_length=64)
    variant: QuestionVariant
    question_text: str
    explanation: str | None = None
    variant_data: dict[str, Any] = Field(default_factory=dict)
    default_points: int
    tags: list[str] = Field(default_factory=list)
    difficulty: QuestionDifficulty = QuestionDifficulty.MEDIUM

    @field_validator("tags")
    @classmethod
    def _tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v)


class BankItemUpdate(BaseModel):
    """PATCH /api/question-bank/{item_id} (the variant is fixed)."""

    question_text: str | None = None
    explanation: str | None = None
    variant_data: dict[str, Any] | None = None
    default_points: int | None = None
    tags: list[str] | None = None
    difficulty: QuestionDifficulty | None = None

    @field_validator("tags")
    @classmethod
    def _tags(cls, v: list[str] | None) -> list[str] | None:
        return _clean_tags(v) if v is not None else None


class BankItemRead(BaseModel):
    id: uuid.UUID
    organization_id: str
    created_by: str
    variant: QuestionVariant
    question_text: str
    explanation: str | None = None
    variant_data: dict[str, Any]
    default_points: int
    tags: list[str]
    difficulty: QuestionDifficulty
    usage_count: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BankSearchRequest(BaseModel):
    """POST /api/question-bank/search; every filter is optional and they combine with AND."""

    organization_id: str = Field(..., min_length=1, max_length=64)
    text: str | None = None
    variants: list[QuestionVariant] = Field(default_factory=list)
    difficulties: list[QuestionDifficulty] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list, description="Match items carrying any of these")


class BankImportRequest(BaseModel):
    """POST /api/question-bank/{item_id}/import"""

    quiz_id: uuid.UUID
    points: int | None = Field(None, gt=0, description="Overrides the item's default points")


class BankUsage(BaseModel):
    id: uuid.UUID
    question_text: str
    variant: QuestionVariant
    usage_count: int


class BankStats(BaseModel):
    total: int
    by_variant: dict[str, int]
    by_difficulty: dict[str, int]
    most_used: list[BankUsage]
