"""
Scoped authorization decisions.

A user holds a global mask (`User.permissions`) plus one mask per membership.
Global permission wins for every scope of a kind; a membership mask only counts
inside its own association or list. Memberships are evaluated independently:
two memberships in the same scope are never OR-ed together for a check.
"""

from __future__ import annotations

from portal.security.permissions import Permission, has_permission
from portal.security.principal import ScopeKind, User


def has_scoped_permission(user: User, scope_id: int, kind: ScopeKind, required: int) -> bool:
    if has_permission(user.permissions, required):
        return True

    return any(
        m.scope_id(kind) == scope_id and has_permission(m.permissions, required)
        for m in user.memberships
    )


def authorized_scope_ids(user: User, kind: ScopeKind, required: int) -> list[int] | None:
    """
    Scope ids of `kind` on which `user` holds `required`.

    Returns None when the permission is held globally: the caller should skip
    scope filtering entirely. Without global permission the result is a list
    (possibly empty), never None.
    """

    if has_permission(user.permissions, required):
        return None

    ids: list[int] = []
    for m in user.memberships:
        scope_id = m.scope_id(kind)
        if scope_id is not None and has_permission(m.permissions, required):
            ids.append(scope_id)
    return ids


def has_association_permission(user: User, association_id: int, required: int) -> bool:
    return has_scoped_permission(user, association_id, ScopeKind.ASSOCIATION, required)


def has_list_permission(user: User, list_id: int, required: int) -> bool:
    return has_scoped_permission(user, list_id, ScopeKind.LIST, required)


def authorized_association_ids(user: User, required: int) -> list[int] | None:
    return authorized_scope_ids(user, ScopeKind.ASSOCIATION, required)


def authorized_list_ids(user: User, required: int) -> list[int] | None:
    return authorized_scope_ids(user, ScopeKind.LIST, required)


def is_global_admin(user: User) -> bool:
    return user.admin or bool(user.permissions & (Permission.ADMIN | Permission.SITE_ADMIN))


# Only SITE_ADMIN holders may hand out SITE_ADMIN.
_ADMIN_GRANTABLE = Permission.MEMBER | Permission.ROLES | Permission.EVENTS | Permission.ADMIN


def grantable_mask(user: User, kind: ScopeKind, scope_id: int) -> int:
    """
    Mask a caller may assign to members of the given scope.

    Global admins get every flag below SITE_ADMIN, and SITE_ADMIN holders may
    also grant SITE_ADMIN. Everyone else is capped at the union of their own
    membership masks in that scope.
    """

    if user.permissions & Permission.SITE_ADMIN:
        return int(_ADMIN_GRANTABLE | Permission.SITE_ADMIN)
    if is_global_admin(user):
        return int(_ADMIN_GRANTABLE)

    mask = 0
    for m in user.memberships:
        if m.scope_id(kind) == scope_id:
            mask |= m.permissions
    return mask


def can_grant(user: User, kind: ScopeKind, scope_id: int, requested: int) -> bool:
    return (requested & ~grantable_mask(user, kind, scope_id)) == 0
