from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from portal.settings import get_settings


def _build_engine(url: str):
    # SQLite connections are shared with FastAPI's threadpool.
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


engine = _build_engine(get_settings().resolved_db_url())

SessionLocal = sessionmaker(bind=engine, autoflush=False, class_=Session)


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped DB session.

    Handlers commit explicitly; anything left uncommitted is discarded on close.
    The session materializer gets its own instance (`use_cache=False`) so a
    failed lookup there cannot poison the handler's transaction.
    """

    with SessionLocal() as db:
        yield db
