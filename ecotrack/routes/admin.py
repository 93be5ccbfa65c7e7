from typing import Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ecotrack.core.platform import PlatformClient, get_platform
from ecotrack.core.session import AuthSession, get_auth_session
from ecotrack.db.session import get_db
from ecotrack.schemas.auth_schema import ConfirmRequest
from ecotrack.services.auth import reset_app

router = APIRouter()


@router.post("/reset", response_model=Dict[str, int])
def reset(body: ConfirmRequest, session: AuthSession = Depends(get_auth_session),
          db: Session = Depends(get_db), platform: PlatformClient = Depends(get_platform)):
    """Delete ALL data in every table. Returns deleted row counts per table."""
    if body.confirmation != "RESET":
        raise HTTPException(status_code=400, detail='Type "RESET" to confirm app reset')
    return reset_app(session, db, platform)
