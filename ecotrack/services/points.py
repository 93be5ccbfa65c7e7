"""Points ledger and level math.

The actions table is the source of truth for points; ``users.points`` is a
cached total that only moves together with a ledger row, inside the same
transaction.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ecotrack.models.action import Action
from ecotrack.models.user import User

logger = logging.getLogger(__name__)

POINTS_PER_LEVEL = 100
POST_CREATED_POINTS = 10
POST_DELETED_POINTS = -POST_CREATED_POINTS


def level_for(points: int) -> int:
    return max(points, 0) // POINTS_PER_LEVEL + 1


def next_level_points(level: int) -> int:
    return level * POINTS_PER_LEVEL


def progress_percent(points: int) -> float:
    """Share of the current level already earned, 0-100."""
    return (max(points, 0) % POINTS_PER_LEVEL) / POINTS_PER_LEVEL * 100


def points_to_next_level(points: int) -> int:
    return next_level_points(level_for(points)) - max(points, 0)


def record_action(db: Session, user: User, action_type: str, points: int,
                  description: str = "", post_id: Optional[str] = None) -> Action:
    """Append a ledger entry and move the cached total with it.

    Only flushes; the caller commits so the entry lands in the same
    transaction as the change it accounts for.
    """
    action = Action(
        user_id=user.id,
        action_type=action_type,
        description=description,
        points=points,
        post_id=post_id,
        created_at=datetime.utcnow(),
    )
    db.add(action)
    user.points = (user.points or 0) + points
    db.flush()
    logger.debug(f"Ledger {action_type} {points:+d} for user {user.id} -> {user.points}")
    return action


def ledger_total(db: Session, user_id: str, since: Optional[datetime] = None) -> int:
    query = db.query(func.coalesce(func.sum(Action.points), 0)).filter(Action.user_id == user_id)
    if since is not None:
        query = query.filter(Action.created_at >= since)
    return int(query.scalar() or 0)


def reconcile_points(db: Session, user_id: Optional[str] = None) -> int:
    """Reset cached totals to the ledger sum. Returns how many users changed."""
    query = db.query(User)
    if user_id is not None:
        query = query.filter(User.id == user_id)
    changed = 0
    for user in query.all():
        total = ledger_total(db, user.id)
        if user.points != total:
            logger.info(f"Reconciling user {user.id}: cached {user.points}, ledger {total}")
            user.points = total
            changed += 1
    db.commit()
    return changed
