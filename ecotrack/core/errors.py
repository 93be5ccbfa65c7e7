import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PlatformError(Exception):
    """Failure reported by (or while talking to) the hosted backend platform."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class PlatformNotConfigured(PlatformError):
    status_code = 503


class PlatformUnavailable(PlatformError):
    status_code = 502


class AccessDenied(PlatformError):
    status_code = 403


class NotFound(PlatformError):
    status_code = 404


class MediaValidationError(PlatformError):
    status_code = 400


# Substrings of platform error text -> message shown to the user.
# Checked in order, first match wins.
_FRIENDLY_MESSAGES = [
    ("row-level security", "You don't have permission to do that. Please sign in again and retry."),
    ("violates row level security", "You don't have permission to do that. Please sign in again and retry."),
    ("bucket not found", "Media storage is not set up yet. Please contact an administrator."),
    ("payload too large", "The file is too large to upload."),
    ("exceeded the maximum allowed size", "The file is too large to upload."),
    ("mime type", "This file type is not supported."),
    ("invalid_mime_type", "This file type is not supported."),
    ("duplicate key", "That record already exists."),
    ("already registered", "An account with this email already exists."),
    ("invalid login credentials", "Incorrect email or password."),
    ("email not confirmed", "Please verify your email before signing in."),
    ("token has expired or is invalid", "Invalid or expired verification code."),
    ("jwt expired", "Your session has expired. Please sign in again."),
    ("failed to fetch", "Network error. Please check your connection and try again."),
    ("network", "Network error. Please check your connection and try again."),
]


def friendly_message(error_text: str | None) -> str:
    if not error_text:
        return "Something went wrong. Please try again."
    lowered = error_text.lower()
    for needle, message in _FRIENDLY_MESSAGES:
        if needle in lowered:
            return message
    return error_text


def classify(status_code: int, message: str) -> PlatformError:
    """Build the matching PlatformError subclass for a platform response."""
    lowered = (message or "").lower()
    if "row-level security" in lowered or "row level security" in lowered:
        return AccessDenied(message, status_code=403)
    if status_code == 404 or "not found" in lowered:
        return NotFound(message, status_code=404)
    if status_code in (401, 403):
        return AccessDenied(message, status_code=status_code)
    if status_code == 413 or "mime type" in lowered:
        return MediaValidationError(message, status_code=400)
    return PlatformError(message, status_code=status_code if status_code >= 400 else 500)


async def platform_error_handler(request: Request, exc: PlatformError):
    logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code,
                        content={"detail": friendly_message(exc.message)})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PlatformError, platform_error_handler)
