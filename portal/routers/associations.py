from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.db.session import get_db
from portal.models.directory import Association
from portal.schemas.directory import AssociationIn, AssociationOut
from portal.security.dependencies import get_principal
from portal.security.gate import check_association_permission, check_permission
from portal.security.permissions import Permission
from portal.security.principal import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/associations", tags=["associations"])


def _get_or_404(db: Session, association_id: int) -> Association:
    association = db.get(Association, association_id)
    if association is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Association not found")
    return association


@router.get("", response_model=list[AssociationOut])
def list_associations(db: Session = Depends(get_db)) -> list[Association]:
    return list(db.scalars(select(Association).order_by(Association.name)).all())


@router.get("/{association_id}", response_model=AssociationOut)
def get_association(association_id: int, db: Session = Depends(get_db)) -> Association:
    return _get_or_404(db, association_id)


@router.post("", response_model=AssociationOut, status_code=status.HTTP_201_CREATED)
def create_association(
    body: AssociationIn,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_principal),
):
    check = check_permission(user, Permission.ADMIN)
    if not check.authorized:
        return check.response

    association = Association(**body.model_dump())
    db.add(association)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Handle already in use") from exc
    db.refresh(association)
    logger.info("Association created id=%s by user_id=%s", association.id, check.user.id)
    return association


@router.put("/{association_id}", response_model=AssociationOut)
def update_association(
    association_id: int,
    body: AssociationIn,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_principal),
):
    check = check_association_permission(user, association_id, Permission.ADMIN)
    if not check.authorized:
        return check.response

    association = _get_or_404(db, association_id)
    for field, value in body.model_dump().items():
        setattr(association, field, value)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Handle already in use") from exc
    db.refresh(association)
    return association


@router.delete("/{association_id}")
def delete_association(
    association_id: int,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_principal),
):
    check = check_permission(user, Permission.ADMIN)
    if not check.authorized:
        return check.response

    association = _get_or_404(db, association_id)
    db.delete(association)
    db.commit()
    logger.info("Association deleted id=%s by user_id=%s", association_id, check.user.id)
    return {"success": True}
