import uuid
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from ecotrack.db.session import Base


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    location = Column(String(200), nullable=False, default="")
    event_date = Column(DateTime, nullable=False, index=True)  # naive UTC
    created_by = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    max_participants = Column(Integer, nullable=False, default=50)
    created_at = Column(DateTime, default=datetime.utcnow)

    creator = relationship("User", back_populates="events_created")
    participants = relationship("EventParticipant", back_populates="event",
                                cascade="all, delete-orphan", passive_deletes=True)


class EventParticipant(Base):
    __tablename__ = "event_participants"
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_event_participants_event_user"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"),
                      nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    joined_at = Column(DateTime, default=datetime.utcnow)

    event = relationship("Event", back_populates="participants")
    user = relationship("User", back_populates="participations")
