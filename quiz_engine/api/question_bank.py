"""Question bank routes (instructors)."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from quiz_engine.api.deps import Principal, require_instructor
from quiz_engine.db.models import QuestionDifficulty, QuestionVariant
from quiz_engine.db.session import get_db
from quiz_engine.schemas.question import QuestionRead
from quiz_engine.schemas.question_bank import (
    BankImportRequest,
    BankItemCreate,
    BankItemRead,
    BankItemUpdate,
    BankSearchRequest,
    BankStats,
)
from quiz_engine.services import question_bank as bank_service

router = APIRouter()


@router.get("/", response_model=list[BankItemRead])
def list_items(
    organization_id: str = Query(..., min_length=1),
    variant: QuestionVariant | None = None,
    difficulty: QuestionDifficulty | None = None,
    tag: str | None = None,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """Bank items of an organization, newest first."""
    return bank_service.list_items(
        db, organization_id, variant=variant, difficulty=difficulty, tag=tag
    )


@router.post("/", response_model=BankItemRead, status_code=status.HTTP_201_CREATED)
def create_item(
    body: BankItemCreate,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    item = bank_service.create_item(db, body, current_user.id)
    db.commit()
    db.refresh(item)
    return item


@router.post("/search", response_model=list[BankItemRead])
def search_items(
    body: BankSearchRequest,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return bank_service.search_items(db, body)


@router.get("/stats", response_model=BankStats)
def bank_stats(
    organization_id: str = Query(..., min_length=1),
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return bank_service.bank_stats(db, organization_id)


@router.get("/{item_id}", response_model=BankItemRead)
def get_item(
    item_id: uuid.UUID,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return bank_service.get_item(db, item_id)


@router.patch("/{item_id}", response_model=BankItemRead)
def update_item(
    item_id: uuid.UUID,
    body: BankItemUpdate,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    item = bank_service.update_item(db, item_id, body)
    db.commit()
    db.refresh(item)
    return item


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    item_id: uuid.UUID,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    bank_service.delete_item(db, item_id)
    db.commit()


@router.post(
    "/{item_id}/import", response_model=QuestionRead, status_code=status.HTTP_201_CREATED
)
def import_to_quiz(
    item_id: uuid.UUID,
    body: BankImportRequest,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """Append a copy of the item to a quiz that has no attempts yet."""
    question = bank_service.import_to_quiz(db, item_id, body.quiz_id, body.points)
    db.commit()
    db.refresh(question)
    return question
