"""One-off helper to provision the media buckets and their access policies.

Needs SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY in the environment (or .env).
Safe to re-run: existing buckets are left alone and policies use IF NOT EXISTS.
"""

from __future__ import annotations

import argparse
import logging

from ecotrack.config import settings
from ecotrack.core.errors import PlatformError
from ecotrack.core.platform import PlatformClient
from ecotrack.utils.file_utils import BUCKET_POLICIES

logger = logging.getLogger("setup_storage")

# Uploads go under "<user id>/...", so the first path segment must be the caller
POLICY_TEMPLATE = """
CREATE POLICY IF NOT EXISTS "{label} upload own"
  ON storage.objects FOR INSERT TO authenticated
  WITH CHECK (bucket_id = '{bucket}' AND auth.uid()::text = (storage.foldername(name))[1]);

CREATE POLICY IF NOT EXISTS "{label} publicly viewable"
  ON storage.objects FOR SELECT TO public
  USING (bucket_id = '{bucket}');

CREATE POLICY IF NOT EXISTS "{label} update own"
  ON storage.objects FOR UPDATE TO authenticated
  USING (bucket_id = '{bucket}' AND auth.uid()::text = (storage.foldername(name))[1]);

CREATE POLICY IF NOT EXISTS "{label} delete own"
  ON storage.objects FOR DELETE TO authenticated
  USING (bucket_id = '{bucket}' AND auth.uid()::text = (storage.foldername(name))[1]);
"""


def policies_sql() -> str:
    return "\n".join(
        POLICY_TEMPLATE.format(label=f"{name.capitalize()} media", bucket=name)
        for name in BUCKET_POLICIES
    )


def ensure_buckets(client: PlatformClient) -> list[str]:
    existing = {bucket.get("name") for bucket in client.list_buckets()}
    logger.info("Existing buckets: %s", sorted(b for b in existing if b))
    created = []
    for name, policy in BUCKET_POLICIES.items():
        if name in existing:
            logger.info("%s bucket already exists", name)
            continue
        logger.info("Creating %s bucket...", name)
        try:
            client.create_bucket(
                name,
                public=policy.public,
                allowed_mime_types=sorted(policy.allowed_mime_types),
                file_size_limit=policy.max_size,
            )
        except PlatformError as exc:
            logger.error("Error creating %s bucket: %s", name, exc.message)
            continue
        created.append(name)
    return created


def install_policies(client: PlatformClient) -> bool:
    logger.info("Creating storage policies...")
    try:
        client.exec_sql(policies_sql())
    except PlatformError as exc:
        logger.error("Policy creation failed (%s). Run the printed SQL in the SQL editor instead.",
                     exc.message)
        print(policies_sql())
        return False
    logger.info("Storage policies created")
    return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Create storage buckets and policies")
    parser.add_argument("--skip-policies", action="store_true", help="only create buckets")
    parser.add_argument("--print-sql", action="store_true", help="print policy SQL and exit")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    if args.print_sql:
        print(policies_sql())
        return
    if not settings.platform_configured:
        raise SystemExit("SUPABASE_URL / SUPABASE_ANON_KEY are not configured")

    client = PlatformClient(
        settings.SUPABASE_URL,
        settings.SUPABASE_ANON_KEY,
        service_key=settings.SUPABASE_SERVICE_ROLE_KEY,
        timeout=settings.PLATFORM_TIMEOUT_SECONDS,
    )
    try:
        created = ensure_buckets(client)
        if not args.skip_policies:
            install_policies(client)
        final = [bucket.get("name") for bucket in client.list_buckets()]
        logger.info("Created: %s; final bucket list: %s", created or "none", final)
    finally:
        client.close()


if __name__ == "__main__":
    main()
