from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status

from portal.oidc import OidcTokenValidator, ValidationError
from portal.security.config import SecurityConfig

logger = logging.getLogger(__name__)


def _malformed_header(request: Request, header_name: str, detail: str) -> HTTPException:
    logger.warning("Malformed %s header path=%s method=%s", header_name, request.url.path, request.method)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {header_name}. {detail}")


def extract_token(request: Request, config: SecurityConfig) -> str | None:
    """
    Read the raw identity token for this request.

    - `Authorization: Bearer <token>` wins (the scheme is case-insensitive).
    - Otherwise the configured assertion cookie (if any) is used.
    - No header and no cookie: None (anonymous request, not an error).
    - A header that is present but not a bearer token: 400.
    """

    auth = config.auth
    raw = request.headers.get(auth.authorization_header)
    if not raw:
        if auth.assertion_cookie is None:
            return None
        return request.cookies.get(auth.assertion_cookie) or None

    scheme, _, token = raw.strip().partition(" ")
    if scheme.lower() != auth.bearer_prefix.lower():
        raise _malformed_header(request, auth.authorization_header, f"Expected '{auth.bearer_prefix} <token>'.")

    token = token.strip()
    if not token:
        raise _malformed_header(request, auth.authorization_header, f"Missing token after '{auth.bearer_prefix}'.")
    return token


def extract_subject(
    request: Request,
    config: SecurityConfig,
    validator: OidcTokenValidator | None = None,
) -> str | None:
    """
    External identity asserted for this request, or None.

    With the `dummy` provider the token is taken as the login verbatim. With
    `oidc` the token must validate; an invalid token is treated like no token
    so public pages stay reachable.
    """

    token = extract_token(request, config)
    if token is None:
        return None

    if config.auth.provider == "dummy":
        return token

    if validator is None:
        raise RuntimeError("OIDC provider configured but no token validator available")

    try:
        return validator.validate(token).subject
    except ValidationError as exc:
        logger.info("Identity token rejected path=%s reason=%s", request.url.path, exc)
        return None
