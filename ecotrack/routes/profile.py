from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ecotrack.core.session import AuthSession, get_optional_session
from ecotrack.db.session import get_db
from ecotrack.schemas.post_schema import FeedPost
from ecotrack.schemas.profile_schema import PublicProfileResponse
from ecotrack.services.feed import list_user_posts
from ecotrack.services.profile import get_public_profile

router = APIRouter(prefix="/profiles", tags=["profiles"])

# Get profile by user_id

@router.get("/{user_id}", response_model=PublicProfileResponse)
def get_profile(user_id: str, db: Session = Depends(get_db)):
    return get_public_profile(db, user_id)

# Posts of a user, newest first

@router.get("/{user_id}/posts", response_model=List[FeedPost])
def get_profile_posts(user_id: str, db: Session = Depends(get_db),
                      session: Optional[AuthSession] = Depends(get_optional_session)):
    get_public_profile(db, user_id)
    return list_user_posts(db, user_id, viewer_id=session.user_id if session else None)
