from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from portal.db.session import get_db
from portal.models.security import User
from portal.schemas.security import UserOut
from portal.security.decorators import require_global_permission
from portal.security.permissions import Permission

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=list[UserOut])
@require_global_permission(Permission.SITE_ADMIN)
def list_users(db: Session = Depends(get_db)) -> list[User]:
    stmt = select(User).order_by(User.last_name, User.first_name)
    return list(db.scalars(stmt).all())
