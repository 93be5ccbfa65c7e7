import logging
from typing import Any, Dict

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ecotrack.config import settings
from ecotrack.core.errors import PlatformError
from ecotrack.core.platform import PlatformClient
from ecotrack.core.session import AuthSession
from ecotrack.models import Action, Event, EventParticipant, Post, PostComment, PostLike, User
from ecotrack.schemas.auth_schema import AuthResponse, SignUpRequest, SignUpResponse
from ecotrack.schemas.profile_schema import AccountDeletedResponse, ProfileResponse, ProfileUpdate
from ecotrack.services.points import level_for

logger = logging.getLogger(__name__)

# Children first so a database without ON DELETE CASCADE still accepts the wipe
RESET_ORDER = [PostComment, PostLike, EventParticipant, Event, Action, Post, User]


def profile_response(user: User) -> ProfileResponse:
    response = ProfileResponse.model_validate(user)
    response.level = level_for(user.points or 0)
    return response


def _auth_response(payload: Dict[str, Any], db: Session) -> AuthResponse:
    user = payload.get("user") or {}
    profile = None
    if user.get("id"):
        profile = db.query(User).filter(User.id == user["id"]).first()
    return AuthResponse(
        access_token=payload["access_token"],
        refresh_token=payload.get("refresh_token"),
        expires_in=payload.get("expires_in"),
        user={"id": user.get("id"), "email": user.get("email")},
        profile=profile_response(profile) if profile else None,
    )


def register_user(data: SignUpRequest, db: Session, platform: PlatformClient) -> SignUpResponse:
    logger.debug(f"Registering user: {data.email} ({data.username})")
    if db.query(User).filter(User.username == data.username).first():
        raise HTTPException(status_code=400, detail="Username is already taken")
    if db.query(User).filter(User.email == data.email).first():
        raise HTTPException(status_code=400, detail="User with this email already exists")

    payload = platform.sign_up(data.email, data.password,
                               {"username": data.username, "full_name": data.full_name})
    # The user object is top-level when confirmation is pending, nested once a session exists
    auth_user = payload.get("user") or payload
    user_id = auth_user.get("id")
    if not user_id:
        raise HTTPException(status_code=502, detail="Sign-up did not return a user id")

    profile = User(
        id=user_id,
        email=auth_user.get("email") or data.email,
        username=data.username,
        full_name=data.full_name,
        points=0,
        bio="",
        profile_photo="",
    )
    try:
        db.add(profile)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating user profile for {user_id}: {e}")
        _discard_identity(platform, user_id)
        raise HTTPException(status_code=500, detail="Failed to create user profile")

    return SignUpResponse(user_id=user_id, email=profile.email)


def _discard_identity(platform: PlatformClient, user_id: str) -> None:
    if not platform.service_key:
        logger.warning(f"Auth identity {user_id} left without a profile (no service key to remove it)")
        return
    try:
        platform.admin_delete_user(user_id)
    except PlatformError as e:
        logger.error(f"Could not remove orphaned auth identity {user_id}: {e.message}")


def verify_signup_otp(email: str, token: str, type: str, db: Session,
                      platform: PlatformClient) -> AuthResponse:
    try:
        payload = platform.verify_otp(email.strip().lower(), token.strip(), type=type)
    except PlatformError as e:
        if e.status_code >= 500:
            raise
        logger.info(f"OTP verification failed for {email}: {e.message}")
        raise HTTPException(status_code=400,
                            detail="Invalid OTP. Please check your email and try again.")
    if not payload or not payload.get("access_token"):
        raise HTTPException(status_code=400, detail="Invalid OTP. Please check your email and try again.")
    return _auth_response(payload, db)


def login_user(email: str, password: str, db: Session, platform: PlatformClient) -> AuthResponse:
    logger.debug(f"Logging in user: {email}")
    payload = platform.sign_in_with_password(email, password)
    return _auth_response(payload, db)


def logout_user(session: AuthSession, platform: PlatformClient) -> None:
    try:
        platform.sign_out(session.access_token)
    except PlatformError as e:
        # The caller drops its token either way
        logger.error(f"Error signing out {session.user_id}: {e.message}")


def update_profile(session: AuthSession, updates: ProfileUpdate, db: Session) -> ProfileResponse:
    user = session.profile
    changes = updates.model_dump(exclude_unset=True, exclude_none=True)
    if "username" in changes:
        changes["username"] = changes["username"].strip()
        taken = (
            db.query(User)
            .filter(User.username == changes["username"], User.id != user.id)
            .first()
        )
        if taken:
            raise HTTPException(status_code=409, detail="Username is already taken")
    for key, value in changes.items():
        setattr(user, key, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Username is already taken")
    db.refresh(user)
    return profile_response(user)


def delete_account(session: AuthSession, db: Session, platform: PlatformClient) -> AccountDeletedResponse:
    user = session.profile
    try:
        db.delete(user)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting account {session.user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete account")

    auth_deleted = True
    try:
        platform.admin_delete_user(session.user_id)
    except PlatformError as e:
        auth_deleted = False
        logger.error(f"Error deleting auth user {session.user_id}: {e.message}")
    logout_user(session, platform)

    message = "Account deleted successfully"
    if not auth_deleted:
        message += ", but the sign-in identity could not be removed"
    return AccountDeletedResponse(profile_deleted=True, auth_deleted=auth_deleted, message=message)


def reset_app(session: AuthSession, db: Session, platform: PlatformClient) -> Dict[str, int]:
    """Delete every row of every table. Not scoped to the caller."""
    if not settings.ALLOW_APP_RESET:
        raise HTTPException(status_code=403, detail="App reset is disabled")
    logger.warning(f"App reset requested by {session.user_id}")
    deleted = {}
    try:
        for model in RESET_ORDER:
            deleted[model.__tablename__] = db.query(model).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error resetting app: {e}")
        raise HTTPException(status_code=500, detail="Failed to reset app")
    logout_user(session, platform)
    return deleted
