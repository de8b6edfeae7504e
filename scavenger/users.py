"""Per-user history views for admins (and for users looking at themselves)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import selectinload

from extensions import db
from models import HistoryEntry, User

from .errors import ForbiddenError, NotFoundError
from .rate_limit import RateLimitPolicy, compute_rate_limit
from .settings import rate_limit_policy


def get_user_detail(user_id: int, viewer: User, now: Optional[datetime] = None) -> dict:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    if not viewer.is_admin and viewer.id != user.id:
        raise ForbiddenError("Forbidden: Admin access required")
    return serialize_user_detail(user, now or datetime.now(timezone.utc), rate_limit_policy())


def list_users_overview(now: Optional[datetime] = None) -> List[dict]:
    now = now or datetime.now(timezone.utc)
    policy = rate_limit_policy()
    users = (
        User.query.options(
            selectinload(User.claim_attempts),
            selectinload(User.history),
        )
        .order_by(User.email.asc())
        .all()
    )
    overview = []
    for user in users:
        attempts = user.claim_attempts
        failed = sum(1 for attempt in attempts if not attempt.success)
        overview.append(
            {
                **user.to_summary_dict(),
                "claimAttemptsCount": len(attempts),
                "failedAttemptsCount": failed,
                "itemsClaimed": len(user.history),
                "totalPoints": user.total_points,
                "rateLimit": compute_rate_limit(attempts, now, policy).to_dict(),
            }
        )
    return overview


def serialize_user_detail(user: User, now: datetime, policy: RateLimitPolicy) -> dict:
    history = (
        HistoryEntry.query.options(selectinload(HistoryEntry.item))
        .filter_by(user_id=user.id)
        .order_by(HistoryEntry.id.asc())
        .all()
    )
    return {
        **user.to_summary_dict(),
        "history": [entry.to_dict() for entry in history],
        "claim_attempts": [attempt.to_dict() for attempt in user.claim_attempts],
        "totalPoints": sum(entry.points_awarded or 0 for entry in history),
        "rateLimit": compute_rate_limit(user.claim_attempts, now, policy).to_dict(),
    }
