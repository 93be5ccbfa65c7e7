from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, timezone
from typing import Optional


class EventBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=2000)
    location: str = Field("", max_length=200)
    event_date: datetime
    max_participants: int = Field(50, ge=1, le=1000)


class EventCreate(EventBase):
    @field_validator("event_date")
    @classmethod
    def _to_naive_utc(cls, value: datetime) -> datetime:
        # Stored as naive UTC
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class CreatorSummary(BaseModel):
    username: str
    full_name: str

    model_config = ConfigDict(from_attributes=True)


class EventResponse(EventBase):
    id: str
    created_by: str
    created_at: Optional[datetime] = None
    creator: Optional[CreatorSummary] = None
    participant_count: int = 0
    is_participant: bool = False
    is_full: bool = False
    fill_percent: float = 0.0

    model_config = ConfigDict(from_attributes=True)


class ParticipationResponse(BaseModel):
    event_id: str
    joined: bool
    participant_count: int
