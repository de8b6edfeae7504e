"""Rate-limit accounting and clear policies over a user's claim attempts.

Both the claim endpoint (enforcement) and the dashboard (display) call
``compute_rate_limit`` so the limit shown to admins is the limit applied to
players.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence, TypeVar

DEFAULT_WINDOW_MINUTES = 15
DEFAULT_MAX_FAILED = 10

CLEAR_FAILED = "failed"
CLEAR_ALL = "all"
CLEAR_RATE_LIMIT = "rate-limit"
CLEAR_TYPES = (CLEAR_FAILED, CLEAR_ALL, CLEAR_RATE_LIMIT)


class AttemptLike(Protocol):
    success: bool

    @property
    def occurred_at(self) -> datetime: ...


A = TypeVar("A", bound=AttemptLike)


@dataclass(frozen=True)
class RateLimitPolicy:
    window_minutes: int = DEFAULT_WINDOW_MINUTES
    max_failed: int = DEFAULT_MAX_FAILED

    @property
    def window(self) -> timedelta:
        return timedelta(minutes=self.window_minutes)

    def to_dict(self) -> dict:
        return {"windowMinutes": self.window_minutes, "maxFailedAttempts": self.max_failed}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Optional["RateLimitPolicy"]:
        """Build a policy from a server ``rateLimit`` payload, or None if it carries none."""
        window = payload.get("windowMinutes")
        max_failed = payload.get("maxFailedAttempts")
        for value in (window, max_failed):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                return None
        return cls(window_minutes=window, max_failed=max_failed)


@dataclass(frozen=True)
class RateLimitStatus:
    recent_failed_attempts: int
    is_rate_limited: bool
    remaining_attempts: int
    window_minutes: int
    max_failed: int

    def to_dict(self) -> dict:
        payload = asdict(self)
        return {
            "recentFailedAttempts": payload["recent_failed_attempts"],
            "isRateLimited": payload["is_rate_limited"],
            "remainingAttempts": payload["remaining_attempts"],
            "windowMinutes": payload["window_minutes"],
            "maxFailedAttempts": payload["max_failed"],
        }


def window_start(now: datetime, policy: RateLimitPolicy) -> datetime:
    return now - policy.window


def count_recent_failed(attempts: Iterable[AttemptLike], now: datetime, policy: RateLimitPolicy) -> int:
    start = window_start(now, policy)
    return sum(1 for attempt in attempts if not attempt.success and attempt.occurred_at >= start)


def compute_rate_limit(
    attempts: Iterable[AttemptLike],
    now: datetime,
    policy: RateLimitPolicy = RateLimitPolicy(),
) -> RateLimitStatus:
    """Return the rate-limit state for ``attempts`` as of ``now``.

    Failed attempts with a timestamp at or after ``now - window`` count toward
    the limit; the user is limited once that count reaches ``max_failed``.
    """
    recent_failed = count_recent_failed(attempts, now, policy)
    return RateLimitStatus(
        recent_failed_attempts=recent_failed,
        is_rate_limited=recent_failed >= policy.max_failed,
        remaining_attempts=max(0, policy.max_failed - recent_failed),
        window_minutes=policy.window_minutes,
        max_failed=policy.max_failed,
    )


def apply_clear_policy(
    attempts: Sequence[A],
    clear_type: str,
    now: datetime,
    policy: RateLimitPolicy = RateLimitPolicy(),
) -> List[A]:
    """Return the attempts that survive ``clear_type``, in their stored order."""
    if clear_type == CLEAR_FAILED:
        return [attempt for attempt in attempts if attempt.success]
    if clear_type == CLEAR_ALL:
        return []
    if clear_type == CLEAR_RATE_LIMIT:
        start = window_start(now, policy)
        return [attempt for attempt in attempts if attempt.success or attempt.occurred_at < start]
    raise ValueError(f"Unknown clear type: {clear_type!r}")


def is_valid_clear_type(value: object) -> bool:
    return isinstance(value, str) and value in CLEAR_TYPES
