"""Player-facing claim flow: every request is recorded as a ClaimAttempt."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import ClaimAttempt, HistoryEntry, User

from .errors import ConflictError, InvalidArgumentError, NotFoundError, RateLimitedError
from .hunt_items import find_hunt_item_by_identifier
from .rate_limit import RateLimitStatus, compute_rate_limit
from .settings import rate_limit_policy


def submit_claim(user: User, identifier: Optional[str], now: Optional[datetime] = None) -> dict:
    """Redeem ``identifier`` for ``user``, enforcing the failed-attempt limit first."""
    cleaned = identifier.strip() if isinstance(identifier, str) else ""
    if not cleaned:
        raise InvalidArgumentError("Identifier is required")

    now = now or datetime.now(timezone.utc)
    policy = rate_limit_policy()
    status = compute_rate_limit(user.claim_attempts, now, policy)
    if status.is_rate_limited:
        current_app.logger.warning("Rate-limited claim attempt by %s", user.email)
        raise _with_rate_limit(
            RateLimitedError,
            f"Too many failed attempts. Try again in {policy.window_minutes} minutes.",
            status,
        )

    item = find_hunt_item_by_identifier(cleaned)
    if not item:
        _record_attempt(user, cleaned, False, now)
        db.session.commit()
        raise _with_rate_limit(
            NotFoundError,
            "No hunt item matches that identifier",
            compute_rate_limit(user.claim_attempts, now, policy),
        )

    already_claimed = HistoryEntry.query.filter_by(user_id=user.id, item_id=item.id).first()
    if already_claimed:
        _record_attempt(user, cleaned, False, now)
        db.session.commit()
        raise _with_rate_limit(
            ConflictError,
            "You have already claimed this hunt item",
            compute_rate_limit(user.claim_attempts, now, policy),
        )

    _record_attempt(user, cleaned, True, now, item_id=item.id)
    db.session.add(HistoryEntry(user_id=user.id, item_id=item.id, claimed_at=now, points_awarded=item.points))
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("You have already claimed this hunt item") from exc

    current_app.logger.info("%s claimed hunt item %s for %s points", user.email, item.id, item.points)
    return {
        "huntItem": item.to_dict(include_identifier=False),
        "pointsAwarded": item.points,
        "rateLimit": compute_rate_limit(user.claim_attempts, now, policy).to_dict(),
    }


def _record_attempt(
    user: User,
    identifier: str,
    success: bool,
    now: datetime,
    item_id: Optional[int] = None,
) -> ClaimAttempt:
    attempt = ClaimAttempt(identifier=identifier, success=success, timestamp=now, item_id=item_id)
    user.claim_attempts.append(attempt)
    return attempt


def _with_rate_limit(error_cls, message: str, status: RateLimitStatus):
    return error_cls(
        message,
        payload={"success": False, "error": message, "rateLimit": status.to_dict()},
    )
