"""
User/membership store consumed by the session materializer.

`UserStore` is the contract; `SqlUserStore` implements it on a SQLAlchemy
session. Rows are plain dataclasses so the materializer never sees ORM objects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.models.security import Member
from portal.models.security import User as UserModel
from portal.security.errors import StoreUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserRow:
    id: int
    first_name: str
    last_name: str
    login: str
    email: str
    promo: int | None = None
    permissions: int = 0
    admin: bool = False


@dataclass(frozen=True)
class MembershipRow:
    member_id: int
    visible: bool
    association_id: int | None
    list_id: int | None
    role_name: str
    permissions: int
    hierarchy: int
    user: UserRow


class UserStore(Protocol):
    def fetch_user_by_external_id(self, external_id: str) -> UserRow | None: ...

    def fetch_memberships_for_user(self, user_id: int) -> list[MembershipRow]: ...


def _user_row(user: UserModel) -> UserRow:
    return UserRow(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        login=user.login,
        email=user.email,
        promo=user.promo,
        permissions=user.permissions,
        admin=user.admin,
    )


class SqlUserStore:
    """`UserStore` backed by the relational database. Errors become StoreUnavailable."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def fetch_user_by_external_id(self, external_id: str) -> UserRow | None:
        try:
            user = self._db.execute(select(UserModel).where(UserModel.login == external_id)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreUnavailable("user lookup failed") from exc

        return _user_row(user) if user is not None else None

    def fetch_memberships_for_user(self, user_id: int) -> list[MembershipRow]:
        stmt = (
            select(Member, UserModel)
            .join(UserModel, UserModel.id == Member.user_id)
            .where(Member.user_id == user_id)
            .order_by(Member.id)
        )
        try:
            rows = self._db.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise StoreUnavailable("membership lookup failed") from exc

        logger.debug("Fetched %d memberships user_id=%s", len(rows), user_id)
        return [
            MembershipRow(
                member_id=member.id,
                visible=member.visible,
                association_id=member.association_id,
                list_id=member.list_id,
                role_name=member.role_name,
                permissions=member.permissions,
                hierarchy=member.hierarchy,
                user=_user_row(user),
            )
            for member, user in rows
        ]
