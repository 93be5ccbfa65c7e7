"""Diagnose the storage setup: buckets present, public, with the expected limits.

With --upload, also stores a tiny PNG in the posts bucket and probes its public URL.
"""

from __future__ import annotations

import argparse
import base64
import sys
import time

from ecotrack.config import settings
from ecotrack.core.errors import PlatformError, friendly_message
from ecotrack.core.platform import PlatformClient
from ecotrack.utils.file_utils import BUCKET_POLICIES

# 1x1 transparent PNG
PIXEL_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


def check_buckets(client: PlatformClient) -> list[str]:
    problems = []
    buckets = {bucket.get("name"): bucket for bucket in client.list_buckets()}
    print(f"Buckets found: {sorted(b for b in buckets if b)}")
    for name, policy in BUCKET_POLICIES.items():
        bucket = buckets.get(name)
        if bucket is None:
            problems.append(f"{name} bucket not found (run scripts/setup_storage.py)")
            continue
        if not bucket.get("public"):
            problems.append(f"{name} bucket is not public; media URLs will not load")
        limit = bucket.get("file_size_limit")
        if limit and limit != policy.max_size:
            problems.append(f"{name} bucket size limit is {limit}, expected {policy.max_size}")
        print(f"  {name}: public={bucket.get('public')} "
              f"limit={limit} types={bucket.get('allowed_mime_types')}")
    return problems


def test_upload(client: PlatformClient) -> list[str]:
    path = f"diagnostics/check_{int(time.time() * 1000)}.png"
    try:
        client.upload(settings.POSTS_BUCKET, path, PIXEL_PNG, "image/png", upsert=True)
    except PlatformError as exc:
        return [f"test upload failed: {friendly_message(exc.message)} ({exc.message})"]
    url = client.public_url(settings.POSTS_BUCKET, path)
    print(f"Uploaded test object: {url}")
    if not client.probe(url):
        return [f"uploaded object is not publicly reachable: {url}"]
    return []


def main() -> None:
    parser = argparse.ArgumentParser(description="Check storage bucket setup")
    parser.add_argument("--upload", action="store_true", help="also try a test upload")
    args = parser.parse_args()

    if not settings.platform_configured:
        raise SystemExit("SUPABASE_URL / SUPABASE_ANON_KEY are not configured")

    client = PlatformClient(
        settings.SUPABASE_URL,
        settings.SUPABASE_ANON_KEY,
        service_key=settings.SUPABASE_SERVICE_ROLE_KEY,
        timeout=settings.PLATFORM_TIMEOUT_SECONDS,
    )
    try:
        problems = check_buckets(client)
        if args.upload and not problems:
            problems.extend(test_upload(client))
        files = client.list_objects(settings.POSTS_BUCKET)
        print(f"Objects at the root of {settings.POSTS_BUCKET}: {len(files)}")
    except PlatformError as exc:
        problems = [friendly_message(exc.message)]
    finally:
        client.close()

    if problems:
        for problem in problems:
            print(f"FAIL: {problem}")
        sys.exit(1)
    print("Storage setup looks good.")


if __name__ == "__main__":
    main()
