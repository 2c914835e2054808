from __future__ import annotations

from collections.abc import Callable

from portal.security.permissions import Permission


def require_authentication() -> Callable:
    """
    Mark an endpoint as requiring a resolved principal.

    Implementation detail:
    - This decorator does NOT perform auth itself.
    - It attaches metadata that the global security dependency reads
      *after* routing (during dependency resolution).
    """

    def decorator(fn: Callable) -> Callable:
        setattr(fn, "__security_auth_required__", True)
        return fn

    return decorator


def require_global_permission(permission: Permission) -> Callable:
    """
    Mark an endpoint as requiring `permission` on the user's global mask.

    Scoped (association/list) checks cannot be expressed here because the
    scope id is only known inside the handler; use the gate there instead.
    """

    def decorator(fn: Callable) -> Callable:
        setattr(fn, "__security_required_permission__", permission)
        return fn

    return decorator
