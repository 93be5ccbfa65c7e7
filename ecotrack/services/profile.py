from typing import Optional

from fastapi import HTTPException, UploadFile
from sqlalchemy import func
from sqlalchemy.orm import Session

from ecotrack.config import settings
from ecotrack.core.platform import PlatformClient
from ecotrack.core.session import AuthSession
from ecotrack.models.post import Post
from ecotrack.models.user import User
from ecotrack.schemas.profile_schema import ProfileResponse, PublicProfileResponse
from ecotrack.services.auth import profile_response
from ecotrack.services.points import level_for
from ecotrack.services.uploads import upload_avatar


def get_public_profile(db: Session, user_id: str) -> PublicProfileResponse:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="Profile not found")
    post_count = db.query(func.count(Post.id)).filter(Post.user_id == user.id).scalar() or 0
    return PublicProfileResponse(
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        bio=user.bio or "",
        profile_photo=user.profile_photo or "",
        points=user.points or 0,
        level=level_for(user.points or 0),
        post_count=post_count,
        created_at=user.created_at,
    )


def update_profile_photo(db: Session, platform: PlatformClient, session: AuthSession,
                         file: Optional[UploadFile]) -> ProfileResponse:
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file selected")
    user = session.profile
    url = upload_avatar(platform, settings.PROFILES_BUCKET, user.id, file,
                        token=session.access_token)
    user.profile_photo = url
    db.commit()
    db.refresh(user)
    return profile_response(user)
