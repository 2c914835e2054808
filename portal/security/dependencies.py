from __future__ import annotations

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from portal.db.session import get_db
from portal.oidc import OidcTokenValidator
from portal.security.auth import extract_subject
from portal.security.config import SecurityConfig
from portal.security.errors import AccessDenied
from portal.security.gate import check_permission, unauthorized_response
from portal.security.materializer import SessionMaterializer
from portal.security.principal import User
from portal.security.session import SessionCodec
from portal.store import SqlUserStore

logger = logging.getLogger(__name__)


def get_security_config(request: Request) -> SecurityConfig:
    config = getattr(request.app.state, "security_config", None)
    if config is None:
        raise RuntimeError("Security config not loaded. Did app startup run?")
    return config


def get_session_codec(request: Request) -> SessionCodec:
    codec = getattr(request.app.state, "session_codec", None)
    if codec is None:
        raise RuntimeError("Session codec not configured. Did app startup run?")
    return codec


def get_token_validator(request: Request) -> OidcTokenValidator | None:
    return getattr(request.app.state, "token_validator", None)


def get_principal(request: Request) -> User | None:
    """Principal resolved by `enforce_security` for this request (None when anonymous)."""
    return getattr(request.state, "user", None)


def enforce_security(
    request: Request,
    config: SecurityConfig = Depends(get_security_config),
    codec: SessionCodec = Depends(get_session_codec),
    validator: OidcTokenValidator | None = Depends(get_token_validator),
    db: Session = Depends(get_db, use_cache=False),
) -> None:
    """
    Global security dependency.

    1. Resolve the principal (identity assertion + session cookie / store).
    2. Enforce the config rule (and decorator metadata) for this route:
       authentication and *global* permission only.

    Scoped checks stay in the handlers, which call the gate with the principal
    from `get_principal`.
    """

    subject = extract_subject(request, config, validator)
    cookie_value = request.cookies.get(config.session.cookie_name)

    outcome = SessionMaterializer(codec, SqlUserStore(db)).materialize(subject, cookie_value)
    request.state.session_outcome = outcome
    request.state.user = outcome.user

    rule = config.match(request.url.path, request.method)

    # Optional decorator metadata.
    endpoint = request.scope.get("endpoint")
    decorator_auth = bool(getattr(endpoint, "__security_auth_required__", False)) if endpoint else False
    decorator_permission = getattr(endpoint, "__security_required_permission__", None) if endpoint else None

    required = decorator_permission if decorator_permission is not None else rule.required_permission
    auth_required = rule.auth_required or decorator_auth or required is not None
    if not auth_required:
        return

    if outcome.user is None:
        logger.info("Authentication required path=%s method=%s", request.url.path, request.method)
        raise AccessDenied(unauthorized_response())

    if required is not None:
        result = check_permission(outcome.user, required)
        if not result.authorized:
            logger.info(
                "Insufficient permission path=%s method=%s user_id=%s required=%s",
                request.url.path,
                request.method,
                outcome.user.id,
                required.name,
            )
            raise AccessDenied(result.response)
