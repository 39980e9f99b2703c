"""Question bank: reusable questions per organization.

Bank items hold the same validated content as quiz questions, plus default
points, tags and a difficulty. Importing copies an item into a quiz as a new
question; later edits to the item do not touch quizzes it was imported into.
"""

import logging
import uuid
from collections import Counter
from typing import Iterable

from sqlalchemy.orm import Session

from quiz_engine.core.errors import NotFound
from quiz_engine.db.models import (
    Question,
    QuestionBankItem,
    QuestionDifficulty,
    QuestionVariant,
)
from quiz_engine.schemas.question import QuestionCreate
from quiz_engine.schemas.question_bank import (
    BankItemCreate,
    BankItemUpdate,
    BankSearchRequest,
    BankStats,
    BankUsage,
)
from quiz_engine.services import quizzes as quiz_service

logger = logging.getLogger(__name__)

MOST_USED_LIMIT = 10
PREVIEW_LENGTH = 100


def get_item(db: Session, item_id: uuid.UUID) -> QuestionBankItem:
    item = db.get(QuestionBankItem, item_id)
    if item is None:
        raise NotFound("question bank item", item_id)
    return item


def _newest_first(query) -> list[QuestionBankItem]:
    return query.order_by(QuestionBankItem.created_at.desc()).all()


def _has_any_tag(item: QuestionBankItem, tags: Iterable[str]) -> bool:
    return any(tag in item.tags for tag in tags)


def list_items(
    db: Session,
    organization_id: str,
    *,
    variant: QuestionVariant | None = None,
    difficulty: QuestionDifficulty | None = None,
    tag: str | None = None,
) -> list[QuestionBankItem]:
    """Items of an organization, newest first, optionally filtered."""
    query = db.query(QuestionBankItem).filter(
        QuestionBankItem.organization_id == organization_id
    )
    if variant is not None:
        query = query.filter(QuestionBankItem.variant == variant)
    if difficulty is not None:
        query = query.filter(QuestionBankItem.difficulty == difficulty)
    items = _newest_first(query)
    # tags are a JSON list, matched here rather than in SQL
    if tag:
        items = [i for i in items if tag in i.tags]
    return items


def search_items(db: Session, criteria: BankSearchRequest) -> list[QuestionBankItem]:
    """Case-insensitive text search combined with variant, difficulty and any-tag filters."""
    query = db.query(QuestionBankItem).filter(
        QuestionBankItem.organization_id == criteria.organization_id
    )
    text = (criteria.text or "").strip()
    if text:
        query = query.filter(
            QuestionBankItem.question_text.icontains(text, autoescape=True)
        )
    if criteria.variants:
        query = query.filter(QuestionBankItem.variant.in_(criteria.variants))
    if criteria.difficulties:
        query = query.filter(QuestionBankItem.difficulty.in_(criteria.difficulties))
    items = _newest_first(query)
    if criteria.tags:
        items = [i for i in items if _has_any_tag(i, criteria.tags)]
    return items


def create_item(db: Session, payload: BankItemCreate, created_by: str) -> QuestionBankItem:
    content = quiz_service.build_question_content(
        payload.variant,
        payload.question_text,
        payload.default_points,
        payload.explanation,
        payload.variant_data,
    )
    item = QuestionBankItem(
        organization_id=payload.organization_id,
        created_by=created_by,
        variant=content.variant,
        question_text=content.question_text,
        explanation=content.explanation,
        variant_data=content.data.model_dump(mode="json"),
        default_points=content.points,
        tags=payload.tags,
        difficulty=payload.difficulty,
        usage_count=0,
    )
    db.add(item)
    db.flush()
    logger.info(
        "Question bank item %s (%s) created for organization %s",
        item.id,
        item.variant.value,
        item.organization_id,
    )
    return item


def update_item(db: Session, item_id: uuid.UUID, payload: BankItemUpdate) -> QuestionBankItem:
    item = get_item(db, item_id)
    content = quiz_service.build_question_content(
        item.variant,
        payload.question_text if payload.question_text is not None else item.question_text,
        payload.default_points if payload.default_points is not None else item.default_points,
        payload.explanation if payload.explanation is not None else item.explanation,
        payload.variant_data if payload.variant_data is not None else item.variant_data,
    )
    item.question_text = content.question_text
    item.default_points = content.points
    item.explanation = content.explanation
    item.variant_data = content.data.model_dump(mode="json")
    if payload.tags is not None:
        item.tags = payload.tags
    if payload.difficulty is not None:
        item.difficulty = payload.difficulty
    db.flush()
    return item


def delete_item(db: Session, item_id: uuid.UUID) -> None:
    """Remove an item; questions already imported from it stay in their quizzes."""
    item = get_item(db, item_id)
    db.delete(item)
    db.flush()
    logger.info("Question bank item %s deleted", item_id)


def import_to_quiz(
    db: Session, item_id: uuid.UUID, quiz_id: uuid.UUID, points: int | None = None
) -> Question:
    """Copy *item* to the end of a quiz and count the use.

    Raises:
        NotFound: The item or quiz is missing, or the quiz belongs to another
            organization.
        QuizLocked: The quiz already has attempts.
    """
    item = get_item(db, item_id)
    quiz = quiz_service.get_quiz(db, quiz_id)
    if quiz.organization_id is not None and quiz.organization_id != item.organization_id:
        raise NotFound("question bank item", item_id)

    question = quiz_service.add_question(
        db,
        quiz.id,
        QuestionCreate(
            variant=item.variant,
            question_text=item.question_text,
            points=points if points is not None else item.default_points,
            explanation=item.explanation,
            variant_data=dict(item.variant_data),
        ),
        bank_item_id=item.id,
    )
    item.usage_count += 1
    db.flush()
    logger.info("Question bank item %s imported into quiz %s", item.id, quiz.id)
    return question


def bank_stats(db: Session, organization_id: str) -> BankStats:
    items = (
        db.query(QuestionBankItem)
        .filter(QuestionBankItem.organization_id == organization_id)
        .all()
    )
    by_variant = Counter(i.variant.value for i in items)
    by_difficulty = {d.value: 0 for d in QuestionDifficulty}
    for item in items:
        by_difficulty[item.difficulty.value] += 1

    used = sorted(
        (i for i in items if i.usage_count > 0),
        key=lambda i: i.usage_count,
        reverse=True,
    )[:MOST_USED_LIMIT]
    return BankStats(
        total=len(items),
        by_variant=dict(by_variant),
        by_difficulty=by_difficulty,
        most_used=[
            BankUsage(
                id=i.id,
                question_text=i.question_text[:PREVIEW_LENGTH],
                variant=i.variant,
                usage_count=i.usage_count,
            )
            for i in used
        ],
    )
