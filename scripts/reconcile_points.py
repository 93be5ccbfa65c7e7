"""Rebuild users.points from the actions ledger."""

from __future__ import annotations

import argparse

from ecotrack.db.session import SessionLocal
from ecotrack.services.points import reconcile_points


def main() -> None:
    parser = argparse.ArgumentParser(description="Recompute cached point totals from the ledger")
    parser.add_argument("--user-id", help="only this user")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        changed = reconcile_points(db, user_id=args.user_id)
    finally:
        db.close()
    print(f"Reconciled {changed} user(s)")


if __name__ == "__main__":
    main()
