from __future__ import annotations

from starlette.responses import Response


class AuthError(Exception):
    """Base class for authentication/authorization failures."""


class SessionIntegrityFailure(AuthError):
    """
    Session cookie could not be trusted (bad signature, decrypt or parse failure).

    Never surfaced to callers: the cookie is treated as stale.
    """


class StoreUnavailable(AuthError):
    """The user/membership store failed while re-deriving a session."""


class AccessDenied(AuthError):
    """
    Raised by the global security dependency to abort a request.

    Carries the terminal response built by the gate; an app-level exception
    handler returns it as-is.
    """

    def __init__(self, response: Response) -> None:
        super().__init__(f"access denied ({response.status_code})")
        self.response = response
