import os
import time
from dataclasses import dataclass
from typing import FrozenSet, Optional

from ecotrack.config import settings
from ecotrack.core.errors import MediaValidationError

IMAGE_MIME_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"})
VIDEO_MIME_TYPES = frozenset({"video/mp4", "video/webm"})

MB = 1024 * 1024


@dataclass(frozen=True)
class BucketPolicy:
    name: str
    allowed_mime_types: FrozenSet[str]
    max_size: int
    public: bool = True


BUCKET_POLICIES = {
    settings.POSTS_BUCKET: BucketPolicy(settings.POSTS_BUCKET,
                                        IMAGE_MIME_TYPES | VIDEO_MIME_TYPES, 10 * MB),
    settings.PROFILES_BUCKET: BucketPolicy(settings.PROFILES_BUCKET, IMAGE_MIME_TYPES, 5 * MB),
}


def get_policy(bucket: str) -> BucketPolicy:
    try:
        return BUCKET_POLICIES[bucket]
    except KeyError:
        raise MediaValidationError(f"Unknown storage bucket: {bucket}")


def check_media_type(content_type: Optional[str], bucket: str) -> BucketPolicy:
    policy = get_policy(bucket)
    content_type = (content_type or "").lower()
    if content_type not in policy.allowed_mime_types:
        allowed = ", ".join(sorted(t.split("/")[1].upper() for t in policy.allowed_mime_types))
        raise MediaValidationError(
            f"Unsupported file type '{content_type or 'unknown'}'. Allowed types: {allowed}")
    return policy


def check_media_size(size: int, bucket: str) -> None:
    policy = get_policy(bucket)
    if size <= 0:
        raise MediaValidationError("The selected file is empty")
    if size > policy.max_size:
        raise MediaValidationError(
            f"File is too large ({size / MB:.1f}MB). Maximum size is {policy.max_size // MB}MB")


def validate_media(content_type: Optional[str], size: int, bucket: str) -> None:
    """Reject files the bucket would refuse, with a reason a user can act on."""
    check_media_type(content_type, bucket)
    check_media_size(size, bucket)


def media_type_for(content_type: str) -> str:
    return "video" if content_type.lower().startswith("video/") else "image"


def file_extension(filename: Optional[str], content_type: str) -> str:
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower()
    if ext:
        return ext
    return content_type.split("/")[-1].lower()


def build_storage_path(user_id: str, filename: Optional[str], content_type: str,
                       prefix: str = "post", now: Optional[float] = None) -> str:
    """<user_id>/<prefix>_<epoch ms>.<ext>; the first segment is what bucket policies match on."""
    millis = int((now if now is not None else time.time()) * 1000)
    return f"{user_id}/{prefix}_{millis}.{file_extension(filename, content_type)}"


def avatar_path(user_id: str, filename: Optional[str], content_type: str) -> str:
    return f"{user_id}/avatar.{file_extension(filename, content_type)}"
