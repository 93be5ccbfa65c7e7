import uuid
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from ecotrack.db.session import Base


class User(Base):
    __tablename__ = "users"

    # Same id as the platform auth identity
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, nullable=False, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    full_name = Column(String, nullable=False, default="")
    bio = Column(Text, nullable=False, default="")
    profile_photo = Column(String, nullable=False, default="")
    # Cached total of the actions ledger, only changed through services.points
    points = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    posts = relationship("Post", back_populates="user",
                         cascade="all, delete-orphan", passive_deletes=True)
    actions = relationship("Action", back_populates="user",
                           cascade="all, delete-orphan", passive_deletes=True)
    likes = relationship("PostLike", back_populates="user",
                         cascade="all, delete-orphan", passive_deletes=True)
    comments = relationship("PostComment", back_populates="user",
                            cascade="all, delete-orphan", passive_deletes=True)
    participations = relationship("EventParticipant", back_populates="user",
                                  cascade="all, delete-orphan", passive_deletes=True)
    events_created = relationship("Event", back_populates="creator",
                                  cascade="all, delete-orphan", passive_deletes=True)
