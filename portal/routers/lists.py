from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.db.session import get_db
from portal.models.directory import Association, StudentList
from portal.schemas.directory import ListIn, ListOut
from portal.security.dependencies import get_principal
from portal.security.gate import check_association_permission, check_list_permission, check_permission
from portal.security.permissions import Permission
from portal.security.principal import User

router = APIRouter(prefix="/api/lists", tags=["lists"])


def _get_or_404(db: Session, list_id: int) -> StudentList:
    student_list = db.get(StudentList, list_id)
    if student_list is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="List not found")
    return student_list


def _ensure_association(db: Session, association_id: int) -> None:
    if db.get(Association, association_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Association not found")


@router.get("", response_model=list[ListOut])
def list_lists(db: Session = Depends(get_db)) -> list[StudentList]:
    return list(db.scalars(select(StudentList).order_by(StudentList.promo.desc(), StudentList.name)).all())


@router.get("/{list_id}", response_model=ListOut)
def get_list(list_id: int, db: Session = Depends(get_db)) -> StudentList:
    return _get_or_404(db, list_id)


@router.post("", response_model=ListOut, status_code=status.HTTP_201_CREATED)
def create_list(
    body: ListIn,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_principal),
):
    # Lists belong to an association: its admins may create them.
    check = check_association_permission(user, body.association_id, Permission.ADMIN)
    if not check.authorized:
        return check.response

    _ensure_association(db, body.association_id)
    student_list = StudentList(**body.model_dump())
    db.add(student_list)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Handle already in use") from exc
    db.refresh(student_list)
    return student_list


@router.put("/{list_id}", response_model=ListOut)
def update_list(
    list_id: int,
    body: ListIn,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_principal),
):
    check = check_list_permission(user, list_id, Permission.ADMIN)
    if not check.authorized:
        return check.response

    student_list = _get_or_404(db, list_id)
    if body.association_id != student_list.association_id:
        move = check_association_permission(user, body.association_id, Permission.ADMIN)
        if not move.authorized:
            return move.response
        _ensure_association(db, body.association_id)

    for field, value in body.model_dump().items():
        setattr(student_list, field, value)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Handle already in use") from exc
    db.refresh(student_list)
    return student_list


@router.delete("/{list_id}")
def delete_list(
    list_id: int,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_principal),
):
    check = check_permission(user, Permission.ADMIN)
    if not check.authorized:
        return check.response

    db.delete(_get_or_404(db, list_id))
    db.commit()
    return {"success": True}
