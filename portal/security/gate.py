"""
Authorization gate used by every protected handler.

All checks take the resolved principal explicitly (None when anonymous) and
return either the principal or a terminal JSON response: 401 when nobody is
authenticated, 403 when the principal lacks the capability. Nothing here raises
or mutates request state.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import status
from fastapi.responses import JSONResponse

from portal.security.permissions import has_permission
from portal.security.principal import Scope, ScopeKind, User
from portal.security.scopes import has_association_permission, has_list_permission


@dataclass(frozen=True)
class AuthorizationResult:
    authorized: bool
    user: User | None = None
    response: JSONResponse | None = None


def unauthorized_response() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": "Unauthorized", "message": "Vous devez être connecté"},
    )


def forbidden_response(message: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={
            "error": "Forbidden",
            "message": message or "Vous n'avez pas la permission d'effectuer cette action",
        },
    )


def require_auth(user: User | None) -> User | None:
    return user


def require_permission(user: User | None, required: int) -> User | None:
    """Principal if it holds `required` globally, else None."""
    if user is None or not has_permission(user.permissions, required):
        return None
    return user


def check_permission(user: User | None, required: int) -> AuthorizationResult:
    if user is None:
        return AuthorizationResult(authorized=False, response=unauthorized_response())
    if not has_permission(user.permissions, required):
        return AuthorizationResult(authorized=False, response=forbidden_response())
    return AuthorizationResult(authorized=True, user=user)


def check_association_permission(user: User | None, association_id: int, required: int) -> AuthorizationResult:
    if user is None:
        return AuthorizationResult(authorized=False, response=unauthorized_response())
    if not has_association_permission(user, association_id, required):
        return AuthorizationResult(
            authorized=False,
            response=forbidden_response("Vous n'avez pas la permission nécessaire pour cette association"),
        )
    return AuthorizationResult(authorized=True, user=user)


def check_list_permission(user: User | None, list_id: int, required: int) -> AuthorizationResult:
    if user is None:
        return AuthorizationResult(authorized=False, response=unauthorized_response())
    if not has_list_permission(user, list_id, required):
        return AuthorizationResult(
            authorized=False,
            response=forbidden_response("Vous n'avez pas la permission nécessaire pour cette liste"),
        )
    return AuthorizationResult(authorized=True, user=user)


def check_scoped_permission(user: User | None, scope: Scope, required: int) -> AuthorizationResult:
    if scope.kind is ScopeKind.ASSOCIATION:
        return check_association_permission(user, scope.id, required)
    return check_list_permission(user, scope.id, required)
