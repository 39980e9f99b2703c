"""Grading rubric routes (instructors)."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from quiz_engine.api.deps import Principal, require_instructor
from quiz_engine.db.session import get_db
from quiz_engine.schemas.rubric import RubricCreate, RubricRead, RubricUpdate, SeedDefaultRequest
from quiz_engine.services import rubrics as rubric_service

router = APIRouter()


@router.get("/", response_model=list[RubricRead])
def list_rubrics(
    organization_id: str = Query(..., min_length=1),
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    """Rubrics of an organization, default first."""
    return rubric_service.list_rubrics(db, organization_id)


@router.post("/", response_model=RubricRead, status_code=status.HTTP_201_CREATED)
def create_rubric(
    body: RubricCreate,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    rubric = rubric_service.create_rubric(db, body, current_user.id)
    db.commit()
    db.refresh(rubric)
    return rubric


@router.post("/seed-default", response_model=RubricRead)
def seed_default_rubric(
    body: SeedDefaultRequest,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    rubric = rubric_service.seed_default_rubric(db, body.organization_id, current_user.id)
    db.commit()
    db.refresh(rubric)
    return rubric


@router.get("/{rubric_id}", response_model=RubricRead)
def get_rubric(
    rubric_id: uuid.UUID,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return rubric_service.get_rubric(db, rubric_id)


@router.patch("/{rubric_id}", response_model=RubricRead)
def update_rubric(
    rubric_id: uuid.UUID,
    body: RubricUpdate,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    rubric = rubric_service.update_rubric(db, rubric_id, body)
    db.commit()
    db.refresh(rubric)
    return rubric


@router.post("/{rubric_id}/default", response_model=RubricRead)
def set_default_rubric(
    rubric_id: uuid.UUID,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    rubric = rubric_service.set_default_rubric(db, rubric_id)
    db.commit()
    db.refresh(rubric)
    return rubric


@router.delete("/{rubric_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rubric(
    rubric_id: uuid.UUID,
    current_user: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    rubric_service.delete_rubric(db, rubric_id)
    db.commit()
