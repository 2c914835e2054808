from __future__ import annotations

from enum import IntFlag


class Permission(IntFlag):
    """
    Capability flags, ordered by increasing authority.

    Flags are independent bits: a role can carry ROLES | EVENTS without ADMIN.
    SITE_ADMIN is special-cased by `has_permission` as a universal override.
    """

    MEMBER = 1 << 0
    ROLES = 1 << 1
    EVENTS = 1 << 2
    ADMIN = 1 << 3
    SITE_ADMIN = 1 << 4


ALL_PERMISSIONS = (
    Permission.MEMBER,
    Permission.ROLES,
    Permission.EVENTS,
    Permission.ADMIN,
    Permission.SITE_ADMIN,
)

_NAMES = {
    Permission.MEMBER: "Membre",
    Permission.ROLES: "Gestion des Membres",
    Permission.EVENTS: "Gestion des Événements",
    Permission.ADMIN: "Administration",
    Permission.SITE_ADMIN: "Super Admin",
}


def has_permission(mask: int, required: int) -> bool:
    """True if `mask` carries any bit of `required`, or carries SITE_ADMIN."""
    return (mask & required) != 0 or (mask & Permission.SITE_ADMIN) != 0


def add_permission(mask: int, permission: int) -> int:
    return mask | permission


def remove_permission(mask: int, permission: int) -> int:
    return mask & ~permission


def list_permissions(mask: int) -> list[Permission]:
    # Plain bit test: SITE_ADMIN must not make every flag appear present.
    return [p for p in ALL_PERMISSIONS if mask & p]


def permission_name(permission: int) -> str:
    try:
        return _NAMES[Permission(permission)]
    except (KeyError, ValueError):
        return f"Inconnu ({permission})"


def parse_permission(name: str) -> Permission:
    """
    Resolve a permission by name (as written in the security config).

    Raises ValueError for unknown names.
    """

    try:
        return Permission[name.strip().upper()]
    except KeyError as exc:
        raise ValueError(f"Unknown permission: {name!r}") from exc
