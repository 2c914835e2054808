from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portal.db.base import Base


class Role(Base):
    """Named permission bundle; members copy a role's values when assigned."""

    __tablename__ = "role"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    hierarchy: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    permissions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class User(Base):
    __tablename__ = "user"
    __table_args__ = (
        UniqueConstraint("login"),
        UniqueConstraint("email"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    # External identity (CAS/OIDC subject).
    login: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    promo: Mapped[int | None] = mapped_column(Integer, nullable=True)

    permissions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    edited_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    memberships: Mapped[list["Member"]] = relationship(back_populates="user", cascade="all, delete-orphan")


class Member(Base):
    """
    A user's membership in exactly one association or one list.

    `role_name`, `permissions` and `hierarchy` are a snapshot of the role at
    assignment time.
    """

    __tablename__ = "member"
    __table_args__ = (
        CheckConstraint(
            "(association_id IS NULL) <> (list_id IS NULL)",
            name="ck_member_exactly_one_scope",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False, index=True)
    # Deleted together with their association or list.
    association_id: Mapped[int | None] = mapped_column(
        ForeignKey("association.id", ondelete="CASCADE"), nullable=True, index=True
    )
    list_id: Mapped[int | None] = mapped_column(ForeignKey("list.id", ondelete="CASCADE"), nullable=True, index=True)

    role_name: Mapped[str] = mapped_column(String(100), nullable=False)
    permissions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    hierarchy: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    user: Mapped[User] = relationship(back_populates="memberships")
