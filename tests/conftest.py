"""
Pytest fixtures for the test suite.

Data-layer and API tests use an in-memory SQLite engine and a session that
rolls back after each test, so tests do not affect each other.
"""
from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from portal.security.permissions import Permission
from portal.security.principal import User
from portal.security.session import SessionCodec

from factories import TEST_SECRET, make_user


TEST_DB_URL = "sqlite:///:memory:"


@pytest.fixture
def engine():
    """Create a fresh in-memory SQLite engine for each test."""
    return create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        echo=False,
    )


@pytest.fixture
def tables(engine):
    """Create all ORM tables on the test engine."""
    from portal.db.base import Base
    from portal.models import directory, security  # noqa: F401  (register tables)

    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture
def db_session(tables):
    """
    Provide a Session bound to the test DB; roll back after each test.

    The transaction is rolled back so the next test gets a clean state.
    """
    connection = tables.connect()
    transaction = connection.begin()
    TestSession = sessionmaker(
        bind=connection,
        autoflush=False,
        class_=Session,
    )
    session = TestSession()
    yield session
    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def codec() -> SessionCodec:
    return SessionCodec(TEST_SECRET)


@pytest.fixture
def site_admin() -> User:
    return make_user(permissions=Permission.SITE_ADMIN, login="root", user_id=99)


@pytest.fixture
def client(db_session):
    """
    TestClient on a fresh app wired to the test DB session.

    The lifespan (config file + init_db on the real database) is not run; the
    shipped security config is loaded and attached directly.
    """
    from fastapi.testclient import TestClient

    from portal.db.session import get_db
    from portal.main import configure_security, create_app
    from portal.security.config import load_security_config
    from portal.settings import Settings

    settings = Settings(auth_secret=TEST_SECRET, session_scheme="aes-cbc-hmac", seed_demo_data=False)
    app = create_app()
    configure_security(app, settings, load_security_config(settings.resolved_security_config_path()))

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    return TestClient(app)


@pytest.fixture
def portal_data(db_session):
    """
    Small directory: two associations, one list, four users.

    - wmaster: legacy admin flag
    - amartin: full president mask in bde
    - bdurand: EVENTS in bds, ROLES on the list
    - cpetit: plain member of bde
    """
    from types import SimpleNamespace

    from portal.models.directory import Association, StudentList
    from portal.models.security import Member
    from portal.models.security import User as UserModel

    bde = Association(handle="bde", name="Bureau des élèves")
    bds = Association(handle="bds", name="Bureau des sports")
    db_session.add_all([bde, bds])
    db_session.flush()

    liste = StudentList(handle="liste-2026", name="Liste 2026", association_id=bde.id, promo=2026)
    db_session.add(liste)
    db_session.flush()

    def _user(login: str, first: str, last: str, **extra) -> UserModel:
        return UserModel(first_name=first, last_name=last, login=login, email=f"{login}@example.org", **extra)

    wmaster = _user("wmaster", "Wendy", "Master", admin=True)
    amartin = _user("amartin", "Alice", "Martin", permissions=int(Permission.MEMBER), promo=2025)
    bdurand = _user("bdurand", "Bob", "Durand", permissions=int(Permission.MEMBER), promo=2026)
    cpetit = _user("cpetit", "Carol", "Petit", permissions=int(Permission.MEMBER), promo=2027)
    db_session.add_all([wmaster, amartin, bdurand, cpetit])
    db_session.flush()

    president = Permission.MEMBER | Permission.ROLES | Permission.EVENTS | Permission.ADMIN
    db_session.add_all(
        [
            Member(user_id=amartin.id, association_id=bde.id, role_name="Président", permissions=int(president), hierarchy=10),
            Member(
                user_id=bdurand.id,
                association_id=bds.id,
                role_name="Responsable événements",
                permissions=int(Permission.MEMBER | Permission.EVENTS),
                hierarchy=5,
            ),
            Member(
                user_id=bdurand.id,
                list_id=liste.id,
                role_name="Secrétaire",
                permissions=int(Permission.MEMBER | Permission.ROLES),
                hierarchy=8,
            ),
            Member(user_id=cpetit.id, association_id=bde.id, role_name="Membre", permissions=int(Permission.MEMBER), hierarchy=1),
        ]
    )
    db_session.commit()

    return SimpleNamespace(
        bde=bde, bds=bds, liste=liste, wmaster=wmaster, amartin=amartin, bdurand=bdurand, cpetit=cpetit
    )
