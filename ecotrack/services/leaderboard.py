from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ecotrack.models.action import Action
from ecotrack.models.user import User
from ecotrack.schemas.leaderboard_schema import LeaderboardEntry, LeaderboardResponse
from ecotrack.services.points import level_for

# timeframe -> ledger window; None ranks by the running total
TIMEFRAMES = {
    "all-time": None,
    "monthly": timedelta(days=30),
    "weekly": timedelta(days=7),
}
DEFAULT_LIMIT = 50


def _entry(rank: int, user: User, points: int) -> LeaderboardEntry:
    return LeaderboardEntry(
        rank=rank,
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        profile_photo=user.profile_photo or "",
        points=points,
        level=level_for(user.points or 0),
    )


def get_leaderboard(db: Session, timeframe: str = "all-time", limit: int = DEFAULT_LIMIT,
                    now: Optional[datetime] = None) -> LeaderboardResponse:
    if timeframe not in TIMEFRAMES:
        raise HTTPException(status_code=400,
                            detail=f"timeframe must be one of: {', '.join(TIMEFRAMES)}")
    window = TIMEFRAMES[timeframe]
    entries: List[LeaderboardEntry] = []

    if window is None:
        users = (
            db.query(User)
            .order_by(User.points.desc(), User.created_at.asc())
            .limit(limit)
            .all()
        )
        entries = [_entry(i + 1, user, user.points or 0) for i, user in enumerate(users)]
    else:
        since = (now or datetime.utcnow()) - window
        earned = func.sum(Action.points).label("earned")
        rows = (
            db.query(User, earned)
            .join(Action, Action.user_id == User.id)
            .filter(Action.created_at >= since)
            .group_by(User.id)
            .order_by(earned.desc(), User.created_at.asc())
            .limit(limit)
            .all()
        )
        entries = [_entry(i + 1, user, int(total or 0)) for i, (user, total) in enumerate(rows)]

    return LeaderboardResponse(timeframe=timeframe, entries=entries)
