from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.db.session import get_db
from portal.models.security import Role
from portal.schemas.security import RoleIn, RoleOut
from portal.security.dependencies import get_principal
from portal.security.gate import check_permission
from portal.security.permissions import Permission
from portal.security.principal import User

router = APIRouter(prefix="/api/roles", tags=["roles"])


def _get_or_404(db: Session, role_id: int) -> Role:
    role = db.get(Role, role_id)
    if role is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
    return role


def _commit_or_409(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Role name already in use") from exc


@router.get("", response_model=list[RoleOut])
def list_roles(db: Session = Depends(get_db)) -> list[Role]:
    return list(db.scalars(select(Role).order_by(Role.hierarchy.desc())).all())


@router.post("", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
def create_role(body: RoleIn, db: Session = Depends(get_db), user: User | None = Depends(get_principal)):
    check = check_permission(user, Permission.ROLES)
    if not check.authorized:
        return check.response

    role = Role(**body.model_dump())
    db.add(role)
    _commit_or_409(db)
    db.refresh(role)
    return role


@router.put("/{role_id}", response_model=RoleOut)
def update_role(
    role_id: int,
    body: RoleIn,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_principal),
):
    check = check_permission(user, Permission.ROLES)
    if not check.authorized:
        return check.response

    role = _get_or_404(db, role_id)
    for field, value in body.model_dump().items():
        setattr(role, field, value)
    _commit_or_409(db)
    db.refresh(role)
    return role


@router.delete("/{role_id}")
def delete_role(role_id: int, db: Session = Depends(get_db), user: User | None = Depends(get_principal)):
    check = check_permission(user, Permission.ROLES)
    if not check.authorized:
        return check.response

    db.delete(_get_or_404(db, role_id))
    db.commit()
    return {"success": True}
