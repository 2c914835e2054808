from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from portal.db.session import get_db
from portal.models.directory import Association, ConfigEntry, Event
from portal.schemas.directory import EventIn, EventOut, SubmissionChangeOut, SubmissionStateOut
from portal.security.dependencies import get_principal
from portal.security.gate import (
    AuthorizationResult,
    check_association_permission,
    check_permission,
    forbidden_response,
    require_auth,
    require_permission,
    unauthorized_response,
)
from portal.security.permissions import Permission
from portal.security.principal import User
from portal.security.scopes import authorized_association_ids

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])

SUBMISSION_KEY = "event_submission_open"


def _get_or_404(db: Session, event_id: int) -> Event:
    event = db.get(Event, event_id)
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


def _ensure_association(db: Session, association_id: int) -> None:
    if db.get(Association, association_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Association not found")


def _check_event_owner(user: User | None, event: Event) -> AuthorizationResult:
    # Events without an association can only be handled with global EVENTS.
    if event.association_id is None:
        return check_permission(user, Permission.EVENTS)
    return check_association_permission(user, event.association_id, Permission.EVENTS)


@router.get("", response_model=list[EventOut])
def list_events(
    editable: bool = Query(default=False),
    db: Session = Depends(get_db),
    user: User | None = Depends(get_principal),
):
    stmt = select(Event).order_by(Event.start_date.desc())
    if not editable:
        return list(db.scalars(stmt).all())

    if user is None:
        return unauthorized_response()

    association_ids = authorized_association_ids(user, Permission.EVENTS)
    if association_ids is None:
        return list(db.scalars(stmt).all())
    if not association_ids:
        return []
    return list(db.scalars(stmt.where(Event.association_id.in_(association_ids))).all())


@router.post("", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(body: EventIn, db: Session = Depends(get_db), user: User | None = Depends(get_principal)):
    check = check_association_permission(user, body.association_id, Permission.EVENTS)
    if not check.authorized:
        return check.response

    _ensure_association(db, body.association_id)
    event = Event(**body.model_dump())
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


@router.put("/{event_id}", response_model=EventOut)
def update_event(
    event_id: int,
    body: EventIn,
    db: Session = Depends(get_db),
    user: User | None = Depends(get_principal),
):
    if user is None:
        return unauthorized_response()

    event = _get_or_404(db, event_id)
    check = _check_event_owner(user, event)
    if not check.authorized:
        return check.response

    if event.association_id != body.association_id:
        move = check_association_permission(user, body.association_id, Permission.EVENTS)
        if not move.authorized:
            return forbidden_response("Vous n'avez pas la permission de déplacer cet événement vers cette association")
        _ensure_association(db, body.association_id)

    for field, value in body.model_dump().items():
        setattr(event, field, value)
    db.commit()
    db.refresh(event)
    return event


@router.delete("/{event_id}")
def delete_event(event_id: int, db: Session = Depends(get_db), user: User | None = Depends(get_principal)):
    if user is None:
        return unauthorized_response()

    event = _get_or_404(db, event_id)
    check = _check_event_owner(user, event)
    if not check.authorized:
        return check.response

    db.delete(event)
    db.commit()
    return {"success": True}


def _submission_open(db: Session) -> bool:
    entry = db.get(ConfigEntry, SUBMISSION_KEY)
    return entry is not None and entry.value == "true"


def _set_submission_open(db: Session, is_open: bool) -> None:
    value = "true" if is_open else "false"
    entry = db.get(ConfigEntry, SUBMISSION_KEY)
    if entry is None:
        db.add(ConfigEntry(key_name=SUBMISSION_KEY, value=value))
    else:
        entry.value = value


@router.get("/submission-state", response_model=SubmissionStateOut)
def submission_state(db: Session = Depends(get_db), user: User | None = Depends(get_principal)):
    if require_auth(user) is None:
        return unauthorized_response()
    return SubmissionStateOut(open=_submission_open(db))


@router.post("/open-submissions", response_model=SubmissionChangeOut)
def open_submissions(db: Session = Depends(get_db), user: User | None = Depends(get_principal)):
    if require_auth(user) is None:
        return unauthorized_response()
    manager = require_permission(user, Permission.EVENTS)
    if manager is None:
        return forbidden_response("Vous n'avez pas la permission d'ouvrir les soumissions d'événements.")

    _set_submission_open(db, True)
    db.commit()
    logger.info("Event submissions opened by user_id=%s", manager.id)
    return SubmissionChangeOut(success=True, message="Les soumissions d'événements sont maintenant ouvertes.")


@router.post("/finalize-submission", response_model=SubmissionChangeOut)
def finalize_submission(db: Session = Depends(get_db), user: User | None = Depends(get_principal)):
    """Close the submission round and validate every pending event."""
    check = check_permission(user, Permission.EVENTS)
    if not check.authorized:
        return check.response

    _set_submission_open(db, False)
    validated = db.execute(update(Event).where(Event.validated.is_(False)).values(validated=True)).rowcount
    db.commit()
    logger.info("Event submissions finalized by user_id=%s validated=%s", check.user.id, validated)
    return SubmissionChangeOut(success=True, message="Soumission fermée et événements validés.")
