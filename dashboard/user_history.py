"""State holder behind the per-user history view."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from scavenger.rate_limit import CLEAR_TYPES, RateLimitPolicy, RateLimitStatus, compute_rate_limit

from .client import DashboardClient, DashboardError
from .records import ClaimAttemptView, clear_confirmation_message

logger = logging.getLogger(__name__)

RECENT_ATTEMPTS_SHOWN = 10

ConfirmPrompt = Callable[[str], bool]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class UserHistoryState:
    user_id: Optional[str] = None
    user_name: str = ""
    user_email: str = ""
    history: List[dict] = field(default_factory=list)
    claim_attempts: List[ClaimAttemptView] = field(default_factory=list)
    total_points: int = 0
    loading: bool = False
    error: Optional[str] = None
    is_clearing: bool = False
    message: Optional[str] = None


class UserHistoryPanel:
    def __init__(
        self,
        client: DashboardClient,
        confirm: ConfirmPrompt,
        clock: Clock = _utcnow,
        policy: Optional[RateLimitPolicy] = None,
    ):
        self.client = client
        self.confirm = confirm
        self.clock = clock
        self.policy = policy or RateLimitPolicy()
        self.is_open = False
        self.state = UserHistoryState()

    @property
    def display_name(self) -> str:
        return self.state.user_name or self.state.user_email

    @property
    def rate_limit(self) -> RateLimitStatus:
        # Recomputed on every read so the clock and the attempt list stay authoritative.
        return compute_rate_limit(self.state.claim_attempts, self.clock(), self.policy)

    @property
    def recent_attempts(self) -> List[ClaimAttemptView]:
        return self.state.claim_attempts[-RECENT_ATTEMPTS_SHOWN:]

    def open(self, user_id: Optional[str], user_name: str = "", user_email: str = "") -> None:
        self.is_open = True
        self.state = UserHistoryState(user_id=user_id, user_name=user_name, user_email=user_email)
        if user_id:
            self.fetch()

    def close(self) -> None:
        self.is_open = False
        self.state = UserHistoryState()

    def fetch(self) -> bool:
        if not self.state.user_id:
            return False

        self.state.loading = True
        self.state.error = None
        try:
            user = self.client.get_user(self.state.user_id)
        except DashboardError as exc:
            self.state.error = exc.message
            logger.error("Error fetching user history: %s", exc)
            return False
        finally:
            self.state.loading = False

        self.state.history = user.get("history") or []
        self.state.claim_attempts = [ClaimAttemptView.from_json(entry) for entry in user.get("claim_attempts") or []]
        self.state.total_points = user.get("totalPoints") or 0
        self.state.user_email = self.state.user_email or user.get("email") or ""
        self.state.user_name = self.state.user_name or user.get("name") or ""
        self._adopt_server_policy(user.get("rateLimit") or {})
        return True

    def clear_claim_attempts(self, clear_type: str) -> bool:
        """Ask for confirmation, clear the user's attempts, then refetch."""
        if clear_type not in CLEAR_TYPES:
            raise ValueError(f"Unknown clear type: {clear_type!r}")
        if not self.state.user_email:
            return False
        prompt = clear_confirmation_message(clear_type, self.display_name, self.policy.window_minutes)
        if not self.confirm(prompt):
            return False

        self.state.is_clearing = True
        self.state.message = None
        try:
            self.state.message = self.client.clear_claim_attempts(self.state.user_email, clear_type)
        except DashboardError as exc:
            self.state.error = exc.message
            logger.error("Error clearing claim attempts: %s", exc)
            return False
        finally:
            self.state.is_clearing = False

        self.fetch()
        return True

    def _adopt_server_policy(self, rate_limit: dict) -> None:
        self.policy = RateLimitPolicy.from_dict(rate_limit) or self.policy
