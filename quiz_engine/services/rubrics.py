"""Rubric evaluation and the per-organization rubric store.

A rubric is a list of criteria; each criterion has a point ceiling and a set
of levels expressed as a percentage of that ceiling.  Grading with a rubric
picks one level per criterion and sums the converted points.
"""

import logging
import uuid
from decimal import Decimal
from typing import Iterable

from sqlalchemy.orm import Session

from quiz_engine.core.errors import AnswerValidationError, NotFound, RubricInUse
from quiz_engine.db.models import Rubric
from quiz_engine.schemas.rubric import (
    Criterion,
    CriterionLevel,
    RubricCreate,
    RubricSelection,
    RubricUpdate,
)
from quiz_engine.services.scoring import round_half_up

logger = logging.getLogger(__name__)


# ── Evaluator ─────────────────────────────────────────────────────────────────


def criterion_points(criterion: Criterion, level: CriterionLevel) -> int:
    """Points for *level* of *criterion*, e.g. 80% of 10 → 8."""
    return round_half_up(Decimal(str(level.percentage)) * criterion.max_points / 100)


def load_criteria(rubric: Rubric) -> list[Criterion]:
    return [Criterion.model_validate(c) for c in rubric.criteria]


def rubric_points(
    criteria: list[Criterion],
    selections: Iterable[RubricSelection],
    question_id: uuid.UUID | None = None,
) -> int:
    """Sum the points of the selected levels.

    Raises:
        AnswerValidationError: A criterion is selected twice, or an index
            does not exist in the rubric.
    """
    total = 0
    seen: set[int] = set()
    for sel in selections:
        if sel.criterion_index in seen:
            raise AnswerValidationError(
                f"Criterion {sel.criterion_index} selected more than once",
                question_id=question_id,
            )
        seen.add(sel.criterion_index)
        if sel.criterion_index >= len(criteria):
            raise AnswerValidationError(
                f"Rubric has no criterion {sel.criterion_index}", question_id=question_id
            )
        criterion = criteria[sel.criterion_index]
        if sel.level_index >= len(criterion.levels):
            raise AnswerValidationError(
                f"Criterion '{criterion.name}' has no level {sel.level_index}",
                question_id=question_id,
            )
        total += criterion_points(criterion, criterion.levels[sel.level_index])
    return total


# ── Store ─────────────────────────────────────────────────────────────────────


def list_rubrics(db: Session, organization_id: str) -> list[Rubric]:
    return (
        db.query(Rubric)
        .filter(Rubric.organization_id == organization_id)
        .order_by(Rubric.is_default.desc(), Rubric.name)
        .all()
    )


def get_rubric(db: Session, rubric_id: uuid.UUID) -> Rubric:
    rubric = db.get(Rubric, rubric_id)
    if rubric is None:
        raise NotFound("rubric", rubric_id)
    return rubric


def get_default_rubric(db: Session, organization_id: str) -> Rubric | None:
    return (
        db.query(Rubric)
        .filter(Rubric.organization_id == organization_id, Rubric.is_default.is_(True))
        .first()
    )


def _clear_default(db: Session, organization_id: str) -> None:
    db.query(Rubric).filter(
        Rubric.organization_id == organization_id, Rubric.is_default.is_(True)
    ).update({Rubric.is_default: False}, synchronize_session="fetch")


def create_rubric(db: Session, payload: RubricCreate, created_by: str) -> Rubric:
    # The first rubric of an organization becomes its default
    is_default = payload.is_default or get_default_rubric(db, payload.organization_id) is None
    if is_default:
        _clear_default(db, payload.organization_id)

    rubric = Rubric(
        organization_id=payload.organization_id,
        name=payload.name,
        description=payload.description,
        is_default=is_default,
        criteria=[c.model_dump() for c in payload.criteria],
        created_by=created_by,
    )
    db.add(rubric)
    db.flush()
    logger.info("Rubric %s created for org %s", rubric.id, rubric.organization_id)
    return rubric


def update_rubric(db: Session, rubric_id: uuid.UUID, payload: RubricUpdate) -> Rubric:
    rubric = get_rubric(db, rubric_id)
    if payload.name is not None:
        rubric.name = payload.name
    if payload.description is not None:
        rubric.description = payload.description
    if payload.criteria is not None:
        rubric.criteria = [c.model_dump() for c in payload.criteria]
    db.flush()
    return rubric


def set_default_rubric(db: Session, rubric_id: uuid.UUID) -> Rubric:
    rubric = get_rubric(db, rubric_id)
    _clear_default(db, rubric.organization_id)
    rubric.is_default = True
    db.flush()
    logger.info("Rubric %s is now the default for org %s", rubric.id, rubric.organization_id)
    return rubric


def delete_rubric(db: Session, rubric_id: uuid.UUID) -> None:
    rubric = get_rubric(db, rubric_id)
    if rubric.is_default:
        raise RubricInUse(rubric_id)
    db.delete(rubric)
    db.flush()


# ── Seeded default ────────────────────────────────────────────────────────────

DEFAULT_RUBRIC_NAME = "Standard rubric"

_STANDARD_LEVELS = [
    ("Excellent", 100.0),
    ("Good", 75.0),
    ("Fair", 50.0),
    ("Insufficient", 25.0),
]

DEFAULT_CRITERIA: list[Criterion] = [
    Criterion(
        name="Understanding of content",
        description="Shows understanding of the subject",
        max_points=4,
        levels=[CriterionLevel(label=label, percentage=pct) for label, pct in _STANDARD_LEVELS],
    ),
    Criterion(
        name="Clarity and organization",
        description="Presents ideas clearly and in order",
        max_points=3,
        levels=[CriterionLevel(label=label, percentage=pct) for label, pct in _STANDARD_LEVELS],
    ),
    Criterion(
        name="Use of examples",
        description="Uses relevant examples to illustrate points",
        max_points=2,
        levels=[CriterionLevel(label=label, percentage=pct) for label, pct in _STANDARD_LEVELS],
    ),
    Criterion(
        name="Completeness",
        description="Answers every part of the question",
        max_points=1,
        levels=[
            CriterionLevel(label="Complete", percentage=100.0),
            CriterionLevel(label="Partial", percentage=60.0),
            CriterionLevel(label="Incomplete", percentage=30.0),
            CriterionLevel(label="Missing", percentage=0.0),
        ],
    ),
]


def seed_default_rubric(db: Session, organization_id: str, created_by: str) -> Rubric:
    """Return the organization's default rubric, creating the standard one if none exists."""
    existing = get_default_rubric(db, organization_id)
    if existing is not None:
        return existing
    return create_rubric(
        db,
        RubricCreate(
            name=DEFAULT_RUBRIC_NAME,
            description="Default rubric for open-ended answers",
            organization_id=organization_id,
            criteria=DEFAULT_CRITERIA,
            is_default=True,
        ),
        created_by,
    )
