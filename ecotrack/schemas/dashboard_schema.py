from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Optional


class ActionResponse(BaseModel):
    id: str
    action_type: str
    description: str
    points: int
    post_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UpcomingEvent(BaseModel):
    id: str
    title: str
    event_date: datetime
    location: str

    model_config = ConfigDict(from_attributes=True)


class DashboardResponse(BaseModel):
    full_name: str
    total_posts: int
    total_points: int
    level: int
    next_level_points: int
    points_to_next_level: int
    progress_percent: float
    weekly_progress: int
    recent_actions: List[ActionResponse]
    upcoming_events: List[UpcomingEvent]
