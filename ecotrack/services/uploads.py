import logging
from typing import Optional, Tuple

from fastapi import UploadFile

from ecotrack.core.errors import PlatformError
from ecotrack.core.platform import PlatformClient
from ecotrack.utils.file_utils import (
    avatar_path,
    build_storage_path,
    check_media_size,
    check_media_type,
    validate_media,
)

logger = logging.getLogger(__name__)


def probe_public_url(platform: PlatformClient, url: str, attempts: int = 2) -> bool:
    """Best-effort existence check of an uploaded object, for the logs only."""
    for attempt in range(1, attempts + 1):
        if platform.probe(url):
            logger.debug(f"Uploaded object reachable at {url}")
            return True
        logger.warning(f"Uploaded object not reachable yet (attempt {attempt}/{attempts}): {url}")
    return False


def read_media(file: UploadFile, bucket: str) -> Tuple[bytes, str]:
    """Check type and declared size, then read at most one byte past the ceiling."""
    content_type = (file.content_type or "").lower()
    policy = check_media_type(content_type, bucket)
    if file.size is not None:
        check_media_size(file.size, bucket)
    data = file.file.read(policy.max_size + 1)
    validate_media(content_type, len(data), bucket)
    return data, content_type


def store_bytes(platform: PlatformClient, bucket: str, path: str, data: bytes,
                content_type: str, upsert: bool = False, token: Optional[str] = None) -> str:
    try:
        platform.upload(bucket, path, data, content_type, upsert=upsert, token=token)
    except PlatformError as e:
        logger.error(f"Upload to {bucket}/{path} failed: {e.message}")
        raise
    url = platform.public_url(bucket, path)
    probe_public_url(platform, url)
    return url


def upload_media(platform: PlatformClient, bucket: str, user_id: str, file: UploadFile,
                 token: Optional[str] = None, prefix: str = "post") -> str:
    """Validate and store an uploaded file, returning its public URL."""
    data, content_type = read_media(file, bucket)
    path = build_storage_path(user_id, file.filename, content_type, prefix=prefix)
    logger.info(f"Uploading {len(data)} bytes ({content_type}) to {bucket}/{path}")
    return store_bytes(platform, bucket, path, data, content_type, token=token)


def upload_avatar(platform: PlatformClient, bucket: str, user_id: str, file: UploadFile,
                  token: Optional[str] = None) -> str:
    data, content_type = read_media(file, bucket)
    path = avatar_path(user_id, file.filename, content_type)
    return store_bytes(platform, bucket, path, data, content_type, upsert=True, token=token)
