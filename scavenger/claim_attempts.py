"""Admin monitoring and clearing of users' claim attempts."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from flask import current_app

from extensions import db
from models import ClaimAttempt, User

from .audit import log_admin_action
from .auth import find_user_by_email
from .errors import InvalidArgumentError, NotFoundError
from .rate_limit import (
    CLEAR_ALL,
    CLEAR_FAILED,
    CLEAR_RATE_LIMIT,
    CLEAR_TYPES,
    apply_clear_policy,
    is_valid_clear_type,
)
from .settings import default_claim_attempts_limit, rate_limit_policy

MAX_CLAIM_ATTEMPTS_LIMIT = 1000

CLEAR_ACTIONS = {
    CLEAR_FAILED: "CLEAR_CLAIM_ATTEMPTS_FAILED",
    CLEAR_ALL: "CLEAR_CLAIM_ATTEMPTS_ALL",
    CLEAR_RATE_LIMIT: "RESET_RATE_LIMIT",
}

CLEAR_MESSAGES = {
    CLEAR_FAILED: "failed",
    CLEAR_ALL: "all",
    CLEAR_RATE_LIMIT: "rate limit (recent failed attempts)",
}


def parse_limit(raw_value: Optional[str]) -> int:
    if raw_value is None or str(raw_value).strip() == "":
        return default_claim_attempts_limit()
    try:
        limit = int(str(raw_value).strip())
    except (TypeError, ValueError):
        raise InvalidArgumentError("Limit must be a positive integer") from None
    if limit <= 0:
        raise InvalidArgumentError("Limit must be a positive integer")
    if limit > MAX_CLAIM_ATTEMPTS_LIMIT:
        raise InvalidArgumentError(f"Limit must be at most {MAX_CLAIM_ATTEMPTS_LIMIT}")
    return limit


def query_claim_attempts(
    email: Optional[str] = None,
    failed_only: bool = False,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Return attempts across users (newest first, truncated) plus summary stats."""
    if limit is None:
        limit = default_claim_attempts_limit()

    query = db.session.query(ClaimAttempt, User).join(User, ClaimAttempt.user_id == User.id)
    cleaned_email = (email or "").strip().lower()
    if cleaned_email:
        query = query.filter(User.email == cleaned_email)
    if failed_only:
        query = query.filter(ClaimAttempt.success.is_(False))

    rows = (
        query.order_by(ClaimAttempt.timestamp.desc(), ClaimAttempt.id.desc())
        .limit(limit)
        .all()
    )

    claim_attempts: List[dict] = []
    for attempt, user in rows:
        entry = attempt.to_dict()
        entry["userEmail"] = user.email
        entry["userName"] = user.name
        claim_attempts.append(entry)

    # Stats describe the returned page, not the whole table.
    failed = sum(1 for entry in claim_attempts if not entry["success"])
    stats = {
        "totalAttempts": len(claim_attempts),
        "failedAttempts": failed,
        "successfulAttempts": len(claim_attempts) - failed,
        "uniqueUsers": len({entry["userEmail"] for entry in claim_attempts}),
    }
    return {
        "claimAttempts": claim_attempts,
        "stats": stats,
        "rateLimitPolicy": rate_limit_policy().to_dict(),
    }


def clear_claim_attempts(
    user_email: Optional[str],
    clear_type: Optional[str],
    admin_email: str,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Delete the subset of a user's attempts selected by ``clear_type``.

    Only rows observed here are deleted, so an attempt recorded while the
    clear is running survives it.
    """
    if not isinstance(user_email, str) or not user_email.strip():
        raise InvalidArgumentError("User email is required")
    if not is_valid_clear_type(clear_type):
        allowed = ", ".join(f"'{value}'" for value in CLEAR_TYPES)
        raise InvalidArgumentError(f"Invalid clear type. Must be one of {allowed}")

    user = find_user_by_email(user_email)
    if not user:
        raise NotFoundError("User not found")

    now = now or datetime.now(timezone.utc)
    previous = list(user.claim_attempts)
    kept = apply_clear_policy(previous, clear_type, now, rate_limit_policy())
    kept_ids = {attempt.id for attempt in kept}
    dropped_ids = [attempt.id for attempt in previous if attempt.id not in kept_ids]

    if dropped_ids:
        (
            db.session.query(ClaimAttempt)
            .filter(ClaimAttempt.id.in_(dropped_ids))
            .delete(synchronize_session=False)
        )

    log_admin_action(
        admin_email=admin_email,
        action=CLEAR_ACTIONS[clear_type],
        resource_type="claimAttempts",
        resource_id=str(user.id),
        target_user_email=user.email,
        details={"clearType": clear_type, "attemptsClearedCount": len(dropped_ids)},
        previous_data=_attempt_counts(previous),
        new_data=_attempt_counts(kept),
    )
    db.session.commit()
    db.session.expire(user, ["claim_attempts"])

    current_app.logger.info(
        "Cleared %s claim attempts (%s) for %s", len(dropped_ids), clear_type, user.email
    )
    return {
        "message": f"Cleared {CLEAR_MESSAGES[clear_type]} claim attempts for {user.email}",
        "attemptsClearedCount": len(dropped_ids),
    }


def _attempt_counts(attempts: List[ClaimAttempt]) -> dict:
    return {
        "claimAttemptsCount": len(attempts),
        "failedAttemptsCount": sum(1 for attempt in attempts if not attempt.success),
    }
