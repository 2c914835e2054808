"""Principal/membership factories for pure (no DB) tests."""
from __future__ import annotations

from portal.security.principal import AssociationScope, ListScope, Membership, User

TEST_SECRET = "test-secret-for-session-cookies"


def make_user(permissions: int = 0, memberships=(), admin: bool = False, login: str = "jdoe", user_id: int = 1) -> User:
    """Principal factory for pure (no DB) tests."""
    return User(
        id=user_id,
        first_name="Jane",
        last_name="Doe",
        login=login,
        email=f"{login}@example.org",
        promo=2026,
        permissions=int(permissions),
        admin=admin,
        memberships=tuple(memberships),
    )


def association_membership(association_id: int, permissions: int, member_id: int = 0, user_id: int = 1) -> Membership:
    return Membership(
        id=member_id or association_id,
        user_id=user_id,
        scope=AssociationScope(association_id),
        role_name="Role",
        permissions=int(permissions),
    )


def list_membership(list_id: int, permissions: int, member_id: int = 0, user_id: int = 1) -> Membership:
    return Membership(
        id=member_id or 1000 + list_id,
        user_id=user_id,
        scope=ListScope(list_id),
        role_name="Role",
        permissions=int(permissions),
    )


