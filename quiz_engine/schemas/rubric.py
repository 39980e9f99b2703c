"""Rubric schemas: criteria with percentage levels."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class CriterionLevel(BaseModel):
    label: str = Field(..., min_length=1, max_length=100)
    percentage: float = Field(..., ge=0, le=100)
    description: str | None = None


class Criterion(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    max_points: int = Field(..., gt=0)
    levels: list[CriterionLevel] = Field(..., min_length=1)


class RubricCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    organization_id: str = Field(..., min_length=1, max_length=64)
    criteria: list[Criterion] = Field(..., min_length=1)
    is_default: bool = False


class RubricUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    criteria: list[Criterion] | None = Field(None, min_length=1)


class RubricRead(BaseModel):
    id: uuid.UUID
    organization_id: str
    name: str
    description: str | None = None
    is_default: bool
    criteria: list[Criterion]
    created_by: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RubricSelection(BaseModel):
    """One level picked for one criterion."""

    criterion_index: int = Field(..., ge=0)
    level_index: int = Field(..., ge=0)


class RubricGrade(BaseModel):
    """Rubric-driven grade for a single question."""

    rubric_id: uuid.UUID
    selections: list[RubricSelection] = Field(..., min_length=1)


class SeedDefaultRequest(BaseModel):
    organization_id: str = Field(..., min_length=1, max_length=64)
