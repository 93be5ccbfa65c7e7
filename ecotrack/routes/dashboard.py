from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ecotrack.core.session import AuthSession, get_profile_session
from ecotrack.db.session import get_db
from ecotrack.schemas.dashboard_schema import DashboardResponse
from ecotrack.services.dashboard import build_dashboard

router = APIRouter()


@router.get("/", response_model=DashboardResponse)
def read_dashboard(session: AuthSession = Depends(get_profile_session),
                   db: Session = Depends(get_db)):
    return build_dashboard(db, session)
