from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class ScopeKind(str, Enum):
    ASSOCIATION = "association"
    LIST = "list"


@dataclass(frozen=True)
class AssociationScope:
    id: int
    kind: ScopeKind = field(default=ScopeKind.ASSOCIATION, init=False)


@dataclass(frozen=True)
class ListScope:
    id: int
    kind: ScopeKind = field(default=ScopeKind.LIST, init=False)


Scope = Union[AssociationScope, ListScope]


def scope_from_ids(association_id: int | None, list_id: int | None) -> Scope:
    """
    Build the scope of a membership row.

    Exactly one of the two ids must be set; anything else is a malformed row.
    """

    if association_id is not None and list_id is None:
        return AssociationScope(association_id)
    if list_id is not None and association_id is None:
        return ListScope(list_id)
    raise ValueError(
        f"Membership must reference exactly one scope (association_id={association_id}, list_id={list_id})"
    )


@dataclass(frozen=True)
class Membership:
    """A user's role snapshot inside one association or one list."""

    id: int
    user_id: int
    scope: Scope
    role_name: str
    permissions: int
    hierarchy: int = 0
    visible: bool = True

    @property
    def association_id(self) -> int | None:
        return self.scope.id if self.scope.kind is ScopeKind.ASSOCIATION else None

    @property
    def list_id(self) -> int | None:
        return self.scope.id if self.scope.kind is ScopeKind.LIST else None

    def scope_id(self, kind: ScopeKind) -> int | None:
        return self.scope.id if self.scope.kind is kind else None


@dataclass(frozen=True)
class User:
    """
    Session principal.

    Built once per request by the session materializer and never mutated.
    `permissions` is the global mask (after elevation); `login` is the external
    identity asserted by the identity provider.
    """

    id: int
    first_name: str
    last_name: str
    login: str
    email: str
    promo: int | None = None
    permissions: int = 0
    admin: bool = False
    memberships: tuple[Membership, ...] = ()

    def display_data(self) -> dict[str, object]:
        """Non-sensitive fields for the client-readable display cookie."""
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "login": self.login,
            "promo": self.promo,
        }
