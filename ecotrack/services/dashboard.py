from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ecotrack.core.session import AuthSession
from ecotrack.models.action import Action
from ecotrack.models.event import Event, EventParticipant
from ecotrack.models.post import Post
from ecotrack.schemas.dashboard_schema import ActionResponse, DashboardResponse, UpcomingEvent
from ecotrack.services.points import (
    level_for,
    next_level_points,
    points_to_next_level,
    progress_percent,
)

RECENT_ACTIONS_LIMIT = 5
WEEK = timedelta(days=7)


def build_dashboard(db: Session, session: AuthSession,
                    now: Optional[datetime] = None) -> DashboardResponse:
    """Everything the dashboard shows, recomputed from the rows on each call."""
    now = now or datetime.utcnow()
    user = session.profile

    total_posts = db.query(func.count(Post.id)).filter(Post.user_id == user.id).scalar() or 0

    recent_actions = (
        db.query(Action)
        .filter(Action.user_id == user.id)
        .order_by(Action.created_at.desc())
        .limit(RECENT_ACTIONS_LIMIT)
        .all()
    )

    weekly_progress = (
        db.query(func.count(Action.id))
        .filter(Action.user_id == user.id, Action.created_at >= now - WEEK)
        .scalar()
        or 0
    )

    upcoming_events = (
        db.query(Event)
        .join(EventParticipant, EventParticipant.event_id == Event.id)
        .filter(EventParticipant.user_id == user.id, Event.event_date >= now)
        .order_by(Event.event_date.asc())
        .all()
    )

    points = user.points or 0
    level = level_for(points)
    return DashboardResponse(
        full_name=user.full_name,
        total_posts=total_posts,
        total_points=points,
        level=level,
        next_level_points=next_level_points(level),
        points_to_next_level=points_to_next_level(points),
        progress_percent=progress_percent(points),
        weekly_progress=weekly_progress,
        recent_actions=[ActionResponse.model_validate(a) for a in recent_actions],
        upcoming_events=[UpcomingEvent.model_validate(e) for e in upcoming_events],
    )
