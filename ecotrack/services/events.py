import asyncio
import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ecotrack.config import settings
from ecotrack.db.session import SessionLocal
from ecotrack.models.event import Event, EventParticipant
from ecotrack.schemas.event_schema import CreatorSummary, EventCreate, EventResponse, ParticipationResponse

logger = logging.getLogger(__name__)


def delete_events(db: Session, event_ids: Iterable[str]) -> int:
    """Delete events and their participant rows in one transaction.

    Ids that are already gone are skipped, so a sweep racing a manual delete
    is harmless. Returns the number of events removed.
    """
    ids = list(event_ids)
    if not ids:
        return 0
    try:
        db.query(EventParticipant).filter(EventParticipant.event_id.in_(ids)).delete(
            synchronize_session=False)
        removed = db.query(Event).filter(Event.id.in_(ids)).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.expire_all()
    return removed


def purge_expired_events(db: Session, now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()
    cutoff = now - timedelta(hours=settings.EVENT_RETENTION_HOURS)
    expired = [row.id for row in db.query(Event.id).filter(Event.event_date < cutoff).all()]
    removed = delete_events(db, expired)
    if removed:
        logger.info(f"Retention sweep removed {removed} events older than {cutoff.isoformat()}")
    return removed


def _sweep_once() -> int:
    db = SessionLocal()
    try:
        return purge_expired_events(db)
    finally:
        db.close()


async def run_retention_sweeper(interval_s: Optional[int] = None) -> None:
    """Sweep now, then every interval, until cancelled."""
    interval = max(1, int(interval_s or settings.EVENT_SWEEP_INTERVAL_SECONDS))
    while True:
        try:
            await asyncio.to_thread(_sweep_once)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Event retention sweep failed")
        await asyncio.sleep(interval)


def _participant_counts(db: Session, event_ids: List[str]) -> dict:
    if not event_ids:
        return {}
    rows = (
        db.query(EventParticipant.event_id, func.count(EventParticipant.id))
        .filter(EventParticipant.event_id.in_(event_ids))
        .group_by(EventParticipant.event_id)
        .all()
    )
    return {event_id: count for event_id, count in rows}


def _event_response(event: Event, participant_count: int, is_participant: bool) -> EventResponse:
    return EventResponse(
        id=event.id,
        title=event.title,
        description=event.description,
        location=event.location,
        event_date=event.event_date,
        max_participants=event.max_participants,
        created_by=event.created_by,
        created_at=event.created_at,
        creator=CreatorSummary.model_validate(event.creator) if event.creator else None,
        participant_count=participant_count,
        is_participant=is_participant,
        is_full=participant_count >= event.max_participants,
        fill_percent=min(participant_count / event.max_participants * 100, 100.0),
    )


def list_events(db: Session, viewer_id: Optional[str] = None,
                now: Optional[datetime] = None) -> List[EventResponse]:
    now = now or datetime.utcnow()
    purge_expired_events(db, now=now)
    events = (
        db.query(Event)
        .options(selectinload(Event.creator))
        .filter(Event.event_date >= now)
        .order_by(Event.event_date.asc())
        .all()
    )
    ids = [event.id for event in events]
    counts = _participant_counts(db, ids)
    joined = set()
    if viewer_id and ids:
        joined = {
            row.event_id
            for row in db.query(EventParticipant.event_id)
            .filter(EventParticipant.user_id == viewer_id, EventParticipant.event_id.in_(ids))
            .all()
        }
    return [_event_response(e, counts.get(e.id, 0), e.id in joined) for e in events]


def get_event_or_404(db: Session, event_id: str) -> Event:
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def create_event(db: Session, user_id: str, data: EventCreate) -> EventResponse:
    event = Event(
        title=data.title.strip(),
        description=data.description.strip(),
        location=data.location.strip(),
        event_date=data.event_date,
        max_participants=data.max_participants,
        created_by=user_id,
        created_at=datetime.utcnow(),
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return _event_response(event, 0, False)


def participant_count(db: Session, event_id: str) -> int:
    return (
        db.query(func.count(EventParticipant.id))
        .filter(EventParticipant.event_id == event_id)
        .scalar()
        or 0
    )


def join_event(db: Session, user_id: str, event_id: str) -> ParticipationResponse:
    event = get_event_or_404(db, event_id)
    already = (
        db.query(EventParticipant)
        .filter(EventParticipant.event_id == event_id, EventParticipant.user_id == user_id)
        .first()
    )
    if already:
        raise HTTPException(status_code=409, detail="You have already joined this event")
    if participant_count(db, event_id) >= event.max_participants:
        raise HTTPException(status_code=409, detail="Event is full")
    try:
        db.add(EventParticipant(event_id=event_id, user_id=user_id, joined_at=datetime.utcnow()))
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="You have already joined this event")
    return ParticipationResponse(event_id=event_id, joined=True,
                                 participant_count=participant_count(db, event_id))


def leave_event(db: Session, user_id: str, event_id: str) -> ParticipationResponse:
    removed = (
        db.query(EventParticipant)
        .filter(EventParticipant.event_id == event_id, EventParticipant.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    if not removed:
        raise HTTPException(status_code=404, detail="You are not participating in this event")
    return ParticipationResponse(event_id=event_id, joined=False,
                                 participant_count=participant_count(db, event_id))


def delete_event(db: Session, user_id: str, event_id: str) -> None:
    event = get_event_or_404(db, event_id)
    if event.created_by != user_id:
        raise HTTPException(status_code=403, detail="Only the event creator can delete this event")
    delete_events(db, [event_id])
    logger.info(f"Event {event_id} deleted by {user_id}")
