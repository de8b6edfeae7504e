"""State holder behind the claim attempts monitor."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from scavenger.rate_limit import CLEAR_TYPES, DEFAULT_WINDOW_MINUTES, RateLimitPolicy

from .client import DashboardClient, DashboardError
from .records import clear_confirmation_message

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100

ConfirmPrompt = Callable[[str], bool]


def _empty_stats() -> dict:
    return {"totalAttempts": 0, "failedAttempts": 0, "successfulAttempts": 0, "uniqueUsers": 0}


@dataclass
class ClaimAttemptsState:
    email_filter: str = ""
    failed_only: bool = False
    limit: int = DEFAULT_LIMIT
    claim_attempts: List[dict] = field(default_factory=list)
    stats: dict = field(default_factory=_empty_stats)
    loading: bool = False
    error: Optional[str] = None
    message: Optional[str] = None


class ClaimAttemptsMonitor:
    def __init__(
        self,
        client: DashboardClient,
        confirm: ConfirmPrompt,
        window_minutes: int = DEFAULT_WINDOW_MINUTES,
    ):
        self.client = client
        self.confirm = confirm
        self.window_minutes = window_minutes
        self.is_visible = False
        self.state = ClaimAttemptsState()

    def open(self) -> None:
        self.is_visible = True
        self.state = ClaimAttemptsState()
        self.refresh()

    def close(self) -> None:
        self.is_visible = False
        self.state = ClaimAttemptsState()

    def set_filters(
        self,
        email: Optional[str] = None,
        failed_only: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> bool:
        if email is not None:
            self.state.email_filter = email.strip()
        if failed_only is not None:
            self.state.failed_only = failed_only
        if limit is not None:
            self.state.limit = limit
        return self.refresh()

    def refresh(self) -> bool:
        self.state.loading = True
        self.state.error = None
        try:
            result = self.client.list_claim_attempts(
                email=self.state.email_filter or None,
                failed_only=self.state.failed_only,
                limit=self.state.limit,
            )
        except DashboardError as exc:
            self.state.error = exc.message
            logger.error("Error fetching claim attempts: %s", exc)
            return False
        finally:
            self.state.loading = False

        self.state.claim_attempts = result["claimAttempts"]
        self.state.stats = {**_empty_stats(), **result["stats"]}
        policy = RateLimitPolicy.from_dict(result.get("rateLimitPolicy") or {})
        if policy:
            self.window_minutes = policy.window_minutes
        return True

    def clear_for_user(self, user_email: str, clear_type: str, user_name: str = "") -> bool:
        if clear_type not in CLEAR_TYPES:
            raise ValueError(f"Unknown clear type: {clear_type!r}")
        prompt = clear_confirmation_message(clear_type, user_name or user_email, self.window_minutes)
        if not self.confirm(prompt):
            return False

        self.state.error = None
        try:
            self.state.message = self.client.clear_claim_attempts(user_email, clear_type)
        except DashboardError as exc:
            self.state.error = exc.message
            logger.error("Error clearing claim attempts: %s", exc)
            return False

        self.refresh()
        return True
