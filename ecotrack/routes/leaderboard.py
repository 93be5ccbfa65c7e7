from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ecotrack.db.session import get_db
from ecotrack.schemas.leaderboard_schema import LeaderboardResponse
from ecotrack.services.leaderboard import DEFAULT_LIMIT, get_leaderboard

router = APIRouter()


@router.get("/", response_model=LeaderboardResponse)
def read_leaderboard(timeframe: str = Query("all-time", description="all-time, monthly or weekly"),
                     limit: int = Query(DEFAULT_LIMIT, ge=1, le=100),
                     db: Session = Depends(get_db)):
    return get_leaderboard(db, timeframe=timeframe, limit=limit)
