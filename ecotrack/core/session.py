"""Per-request auth session.

The current identity and its profile row are resolved from the bearer token
for each request and handed to services explicitly.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ecotrack.core.errors import PlatformError
from ecotrack.core.platform import PlatformClient, get_platform
from ecotrack.core.security import can_verify_locally, decode_access_token
from ecotrack.db.session import get_db
from ecotrack.models.user import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthSession:
    user_id: str
    email: Optional[str]
    access_token: str
    profile: Optional[User] = None


def _identity_from_token(token: str, platform: PlatformClient) -> Optional[dict]:
    if can_verify_locally():
        claims = decode_access_token(token)
        if not claims or not claims.get("sub"):
            return None
        return {"id": claims["sub"], "email": claims.get("email")}
    try:
        user = platform.get_user(token)
    except PlatformError as e:
        logger.info(f"Token lookup rejected by platform: {e.message}")
        return None
    if not user or not user.get("id"):
        return None
    return {"id": user["id"], "email": user.get("email")}


def resolve_session(token: str, db: Session, platform: PlatformClient) -> Optional[AuthSession]:
    identity = _identity_from_token(token, platform)
    if identity is None:
        return None
    profile = db.query(User).filter(User.id == identity["id"]).first()
    if profile is None:
        logger.warning(f"No user profile found for user: {identity['id']}")
    return AuthSession(user_id=identity["id"], email=identity["email"],
                       access_token=token, profile=profile)


def get_optional_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    platform: PlatformClient = Depends(get_platform),
) -> Optional[AuthSession]:
    if credentials is None:
        return None
    if not platform.configured and not can_verify_locally():
        return None
    return resolve_session(credentials.credentials, db, platform)


def get_auth_session(
    session: Optional[AuthSession] = Depends(get_optional_session),
) -> AuthSession:
    if session is None:
        raise HTTPException(status_code=401, detail="Not authenticated",
                            headers={"WWW-Authenticate": "Bearer"})
    return session


def get_profile_session(session: AuthSession = Depends(get_auth_session)) -> AuthSession:
    """Like get_auth_session, but the users row must exist too."""
    if session.profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return session
