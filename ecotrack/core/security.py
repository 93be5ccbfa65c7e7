import logging
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from ecotrack.config import settings

logger = logging.getLogger(__name__)

# Access tokens are minted by the platform's auth service; this module only checks them.


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a platform access token with the shared JWT secret.

    Returns the claims, or None when the token is invalid or expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except JWTError as e:
        logger.debug(f"Rejected access token: {e}")
        return None


def can_verify_locally() -> bool:
    return bool(settings.SUPABASE_JWT_SECRET)
