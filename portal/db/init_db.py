from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from portal.db.base import Base
from portal.db.session import SessionLocal, engine
from portal.models.directory import Association, Event, StudentList
from portal.models.security import Member, Role, User
from portal.security.permissions import Permission


def init_db(seed: bool = True) -> None:
    """
    Create tables and, when asked, seed a small demo dataset.

    The seed is deterministic so the permission rules can be tried locally
    with the `dummy` identity provider (`Authorization: Bearer <login>`).
    """

    Base.metadata.create_all(bind=engine)

    if not seed:
        return
    with SessionLocal() as db:
        if _has_seed_data(db):
            return
        _seed(db)


def _has_seed_data(db: Session) -> bool:
    return db.execute(select(Role.id).limit(1)).first() is not None


def _seed(db: Session) -> None:
    # Roles
    member = Role(name="Membre", hierarchy=1, permissions=int(Permission.MEMBER))
    events = Role(name="Responsable événements", hierarchy=5, permissions=int(Permission.MEMBER | Permission.EVENTS))
    secretary = Role(name="Secrétaire", hierarchy=8, permissions=int(Permission.MEMBER | Permission.ROLES))
    president = Role(
        name="Président",
        hierarchy=10,
        permissions=int(Permission.MEMBER | Permission.ROLES | Permission.EVENTS | Permission.ADMIN),
    )
    db.add_all([member, events, secretary, president])
    db.flush()

    # Associations and lists
    bde = Association(handle="bde", name="Bureau des élèves", description="Vie étudiante")
    bds = Association(handle="bds", name="Bureau des sports", description="Sport")
    db.add_all([bde, bds])
    db.flush()

    liste = StudentList(handle="liste-2026", name="Liste 2026", association_id=bde.id, promo=2026)
    db.add(liste)
    db.flush()

    # Users
    webmaster = User(first_name="Wendy", last_name="Master", login="wmaster", email="wmaster@example.org", admin=True)
    alice = User(first_name="Alice", last_name="Martin", login="amartin", email="amartin@example.org", promo=2025)
    bob = User(first_name="Bob", last_name="Durand", login="bdurand", email="bdurand@example.org", promo=2026)
    carol = User(first_name="Carol", last_name="Petit", login="cpetit", email="cpetit@example.org", promo=2027)
    db.add_all([webmaster, alice, bob, carol])
    db.flush()

    # Memberships (role snapshot copied onto the member row)
    def _member(user: User, role: Role, association_id: int | None = None, list_id: int | None = None) -> Member:
        return Member(
            user_id=user.id,
            association_id=association_id,
            list_id=list_id,
            role_name=role.name,
            permissions=role.permissions,
            hierarchy=role.hierarchy,
        )

    db.add_all(
        [
            _member(alice, president, association_id=bde.id),
            _member(bob, events, association_id=bds.id),
            _member(bob, secretary, list_id=liste.id),
            _member(carol, member, association_id=bde.id),
        ]
    )

    db.add(
        Event(
            association_id=bde.id,
            title="Soirée d'intégration",
            description="Rentrée",
            start_date=datetime(2026, 9, 12, 20, 0),
            end_date=datetime(2026, 9, 13, 2, 0),
            location="Foyer",
            validated=True,
        )
    )

    db.commit()
