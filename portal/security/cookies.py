"""
Applying session decisions to HTTP responses.

The session materializer only *decides* (see `SessionOutcome`); this module is
the single place where the session and display cookies are written or deleted.
`apply_session_cookies` runs once per response from the app middleware.
"""

from __future__ import annotations

import json
import logging

from fastapi import Request
from starlette.responses import Response

from portal.security.materializer import SessionOutcome
from portal.security.session import CookiePolicy

logger = logging.getLogger(__name__)

_CLEARED_FLAG = "session_cleared"


def mark_session_cleared(request: Request) -> None:
    """Ask the middleware to delete the session cookies on this response (logout/refresh)."""
    setattr(request.state, _CLEARED_FLAG, True)


def set_session_cookies(response: Response, policy: CookiePolicy, value: str, display: dict[str, object]) -> None:
    response.set_cookie(
        policy.cookie_name,
        value,
        max_age=policy.max_age_seconds,
        path=policy.path,
        secure=policy.secure,
        httponly=True,
        samesite=policy.same_site,
    )
    # Display-only copy for client-side rendering; never read back for authorization.
    response.set_cookie(
        policy.display_cookie_name,
        json.dumps(display, separators=(",", ":")),
        max_age=policy.max_age_seconds,
        path=policy.path,
        secure=policy.secure,
        httponly=False,
        samesite=policy.same_site,
    )


def clear_session_cookies(response: Response, policy: CookiePolicy, display: bool = True) -> None:
    response.delete_cookie(policy.cookie_name, path=policy.path)
    if display:
        response.delete_cookie(policy.display_cookie_name, path=policy.path)


def apply_session_cookies(
    request: Request,
    response: Response,
    policy: CookiePolicy,
    legacy_cookies: list[str] | tuple[str, ...] = (),
) -> None:
    for name in legacy_cookies:
        if name in request.cookies:
            response.delete_cookie(name, path="/")

    if getattr(request.state, _CLEARED_FLAG, False):
        clear_session_cookies(response, policy)
        return

    outcome: SessionOutcome | None = getattr(request.state, "session_outcome", None)
    if outcome is None:
        return

    if outcome.set_cookie is not None and outcome.user is not None:
        set_session_cookies(response, policy, outcome.set_cookie, outcome.user.display_data())
        logger.debug("Session cookie written user_id=%s", outcome.user.id)
    elif outcome.clear_cookie:
        clear_session_cookies(response, policy)
        logger.debug("Stale session cookie deleted")
