from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ecotrack.core.session import AuthSession, get_optional_session, get_profile_session
from ecotrack.db.session import get_db
from ecotrack.schemas.event_schema import EventCreate, EventResponse, ParticipationResponse
from ecotrack.services import events as event_service

router = APIRouter(tags=["events"])

# ------------------------------------------
#  List upcoming events (sweeps expired ones first)
# ------------------------------------------
@router.get("/", response_model=List[EventResponse])
def list_events(db: Session = Depends(get_db),
                session: Optional[AuthSession] = Depends(get_optional_session)):
    return event_service.list_events(db, viewer_id=session.user_id if session else None)


# ------------------------------------------
#  Create Event
# ------------------------------------------
@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(data: EventCreate, session: AuthSession = Depends(get_profile_session),
                 db: Session = Depends(get_db)):
    return event_service.create_event(db, session.user_id, data)


# ------------------------------------------
#  Join / Leave
# ------------------------------------------
@router.post("/{event_id}/join", response_model=ParticipationResponse)
def join_event(event_id: str, session: AuthSession = Depends(get_profile_session),
               db: Session = Depends(get_db)):
    return event_service.join_event(db, session.user_id, event_id)


@router.delete("/{event_id}/join", response_model=ParticipationResponse)
def leave_event(event_id: str, session: AuthSession = Depends(get_profile_session),
                db: Session = Depends(get_db)):
    return event_service.leave_event(db, session.user_id, event_id)


# ------------------------------------------
#  Delete Event (creator only)
# ------------------------------------------
@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: str, session: AuthSession = Depends(get_profile_session),
                 db: Session = Depends(get_db)):
    event_service.delete_event(db, session.user_id, event_id)
