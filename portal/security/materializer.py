"""
Per-request session materialization.

Given the subject asserted by the identity provider (or None) and the current
session cookie, decide who the principal is and what should happen to the
cookie. The materializer is HTTP-agnostic: it returns a `SessionOutcome` that
the request wiring applies to the response.

States:

    NO_ASSERTION                 -> anonymous, cookie left as-is
    ASSERTION_WITH_VALID_COOKIE  -> principal restored from the cookie, no store call
    ASSERTION_WITH_STALE_COOKIE  -> cookie deleted, then re-derived from the store
    ASSERTION_NO_COOKIE          -> re-derived from the store

A re-derivation that finds a user writes a fresh cookie. Unknown users and
store failures leave the request anonymous and write nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from portal.security.errors import StoreUnavailable
from portal.security.permissions import Permission
from portal.security.principal import Membership, User, scope_from_ids
from portal.security.session import SessionCodec
from portal.store import MembershipRow, UserRow, UserStore

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    NO_ASSERTION = "no_assertion"
    ASSERTION_NO_COOKIE = "assertion_no_cookie"
    ASSERTION_WITH_VALID_COOKIE = "assertion_with_valid_cookie"
    ASSERTION_WITH_STALE_COOKIE = "assertion_with_stale_cookie"


@dataclass(frozen=True)
class SessionOutcome:
    state: SessionState
    user: User | None = None
    # New cookie value to write, if any.
    set_cookie: str | None = None
    clear_cookie: bool = False


def elevate_permissions(
    stored: int,
    memberships: tuple[Membership, ...] | list[Membership],
    admin: bool = False,
) -> int:
    """
    Global mask for the session.

    SITE_ADMIN in any membership (or the legacy `admin` flag) replaces the
    stored mask with SITE_ADMIN; otherwise ADMIN in any membership replaces it
    with ADMIN; otherwise the stored mask is kept. The result is never written
    back to the store.
    """

    masks = [m.permissions for m in memberships]
    if admin or any(mask & Permission.SITE_ADMIN for mask in masks):
        return int(Permission.SITE_ADMIN)
    if any(mask & Permission.ADMIN for mask in masks):
        return int(Permission.ADMIN)
    return stored


def membership_from_row(row: MembershipRow, user_id: int) -> Membership:
    return Membership(
        id=row.member_id,
        user_id=user_id,
        scope=scope_from_ids(row.association_id, row.list_id),
        role_name=row.role_name,
        permissions=row.permissions,
        hierarchy=row.hierarchy,
        visible=row.visible,
    )


def build_user(row: UserRow, membership_rows: list[MembershipRow]) -> User:
    memberships: list[Membership] = []
    for mrow in membership_rows:
        try:
            memberships.append(membership_from_row(mrow, row.id))
        except ValueError:
            logger.warning("Skipping malformed membership member_id=%s user_id=%s", mrow.member_id, row.id)

    return User(
        id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        login=row.login,
        email=row.email,
        promo=row.promo,
        permissions=elevate_permissions(row.permissions, memberships, admin=row.admin),
        admin=row.admin,
        memberships=tuple(memberships),
    )


class SessionMaterializer:
    def __init__(self, codec: SessionCodec, store: UserStore) -> None:
        self._codec = codec
        self._store = store

    def materialize(self, subject: str | None, cookie_value: str | None) -> SessionOutcome:
        if not subject:
            return SessionOutcome(state=SessionState.NO_ASSERTION)

        if cookie_value:
            cached = self._codec.read_session(cookie_value)
            if cached is not None and str(cached.login) == str(subject):
                logger.debug("Session restored from cookie user_id=%s", cached.id)
                return SessionOutcome(state=SessionState.ASSERTION_WITH_VALID_COOKIE, user=cached)

            logger.info("Stale session cookie (identity mismatch or integrity failure); re-deriving")
            return self._rederive(subject, SessionState.ASSERTION_WITH_STALE_COOKIE, clear_cookie=True)

        return self._rederive(subject, SessionState.ASSERTION_NO_COOKIE, clear_cookie=False)

    def _rederive(self, subject: str, state: SessionState, clear_cookie: bool) -> SessionOutcome:
        try:
            row = self._store.fetch_user_by_external_id(subject)
            if row is None:
                logger.info("No local user for asserted identity; request stays anonymous")
                return SessionOutcome(state=state, clear_cookie=clear_cookie)
            membership_rows = self._store.fetch_memberships_for_user(row.id)
        except StoreUnavailable:
            logger.error("Store unavailable while building session; request stays anonymous", exc_info=True)
            return SessionOutcome(state=state, clear_cookie=clear_cookie)

        user = build_user(row, membership_rows)
        logger.debug(
            "Session built from store user_id=%s memberships=%d permissions=%d",
            user.id,
            len(user.memberships),
            user.permissions,
        )
        return SessionOutcome(
            state=state,
            user=user,
            set_cookie=self._codec.create_session(user),
            clear_cookie=clear_cookie,
        )
