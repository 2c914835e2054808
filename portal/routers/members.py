from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from portal.db.session import get_db
from portal.models.directory import Association, StudentList
from portal.models.security import Member
from portal.models.security import User as UserModel
from portal.schemas.security import MemberIn, MemberOut
from portal.security.dependencies import get_principal
from portal.security.gate import check_scoped_permission, forbidden_response, unauthorized_response
from portal.security.permissions import Permission
from portal.security.principal import Scope, ScopeKind, User, scope_from_ids
from portal.security.scopes import authorized_association_ids, authorized_list_ids, can_grant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/members", tags=["members"])

_GRANT_DENIED = "Vous ne pouvez pas assigner un rôle avec plus de permissions que vous n'en avez"
_MOVE_DENIED = "Vous n'avez pas la permission de déplacer ce membre vers ce périmètre"


def _scope_or_400(association_id: int | None, list_id: int | None) -> Scope:
    try:
        return scope_from_ids(association_id, list_id)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Exactly one of association_id or list_id is required",
        ) from exc


def _ensure_targets(db: Session, body: MemberIn, scope: Scope) -> None:
    if db.get(UserModel, body.user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    model = Association if scope.kind is ScopeKind.ASSOCIATION else StudentList
    if db.get(model, scope.id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{scope.kind.value.capitalize()} not found")


def _get_or_404(db: Session, member_id: int) -> Member:
    member = db.get(Member, member_id)
    if member is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    return member


@router.get("", response_model=list[MemberOut])
def list_members(db: Session = Depends(get_db), user: User | None = Depends(get_principal)):
    if user is None:
        return unauthorized_response()

    stmt = select(Member).order_by(Member.id.desc())

    association_ids = authorized_association_ids(user, Permission.ROLES)
    list_ids = authorized_list_ids(user, Permission.ROLES)
    # Both None only for a global ROLES holder: no filtering.
    if association_ids is not None or list_ids is not None:
        if not association_ids and not list_ids:
            return []
        stmt = stmt.where(
            or_(
                Member.association_id.in_(association_ids or []),
                Member.list_id.in_(list_ids or []),
            )
        )

    return list(db.scalars(stmt).all())


@router.post("", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
def create_member(body: MemberIn, db: Session = Depends(get_db), user: User | None = Depends(get_principal)):
    scope = _scope_or_400(body.association_id, body.list_id)

    check = check_scoped_permission(user, scope, Permission.ROLES)
    if not check.authorized:
        return check.response
    if not can_grant(check.user, scope.kind, scope.id, body.permissions):
        return forbidden_response(_GRANT_DENIED)

    _ensure_targets(db, body, scope)
    member = Member(**body.model_dump())
    db.add(member)
    db.commit()
    db.refresh(member)
    logger.info(
        "Member created id=%s user_id=%s scope=%s:%s by user_id=%s",
        member.id,
        member.user_id,
        scope.kind.value,
        scope.id,
        check.user.id,
    )
    return member


@router.put("/{member_id}", response_model=MemberOut)
def update_member(
    member_id: int,
    body: MemberIn,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_principal),
):
    target = _scope_or_400(body.association_id, body.list_id)
    if user is None:
        return unauthorized_response()

    member = _get_or_404(db, member_id)
    current = scope_from_ids(member.association_id, member.list_id)

    check = check_scoped_permission(user, current, Permission.ROLES)
    if not check.authorized:
        return check.response
    if target != current and not check_scoped_permission(user, target, Permission.ROLES).authorized:
        return forbidden_response(_MOVE_DENIED)
    if not can_grant(check.user, target.kind, target.id, body.permissions):
        return forbidden_response(_GRANT_DENIED)

    _ensure_targets(db, body, target)
    for field, value in body.model_dump().items():
        setattr(member, field, value)
    db.commit()
    db.refresh(member)
    return member


@router.delete("/{member_id}")
def delete_member(member_id: int, db: Session = Depends(get_db), user: User | None = Depends(get_principal)):
    if user is None:
        return unauthorized_response()

    member = _get_or_404(db, member_id)
    check = check_scoped_permission(user, scope_from_ids(member.association_id, member.list_id), Permission.ROLES)
    if not check.authorized:
        return check.response

    db.delete(member)
    db.commit()
    return {"success": True}
