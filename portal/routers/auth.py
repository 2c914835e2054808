from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from portal.schemas.security import MeOut
from portal.security.cookies import mark_session_cleared
from portal.security.decorators import require_authentication
from portal.security.dependencies import get_principal
from portal.security.gate import require_auth, unauthorized_response
from portal.security.principal import User

router = APIRouter(prefix="/api", tags=["auth"])


@router.get("/users/me", response_model=MeOut)
@require_authentication()
def me(user: User | None = Depends(get_principal)):
    principal = require_auth(user)
    if principal is None:
        return unauthorized_response()
    return MeOut.model_validate(principal)


@router.post("/auth/refresh")
def refresh_session(request: Request, user: User | None = Depends(get_principal)):
    """Drop the cached session so the next request re-reads roles and memberships from the store."""
    if require_auth(user) is None:
        return unauthorized_response()
    mark_session_cleared(request)
    return {"success": True, "message": "Session will be rebuilt on the next request."}


@router.post("/auth/logout")
def logout(request: Request):
    mark_session_cleared(request)
    return {"success": True}
