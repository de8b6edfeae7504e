"""Plain records the dashboard state holders keep between API calls."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser


@dataclass
class HuntItemForm:
    name: str = ""
    description: str = ""
    identifier: str = ""
    points: int = 0

    def to_payload(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ClaimAttemptView:
    identifier: str
    success: bool
    timestamp: datetime
    item_id: Optional[str] = None

    @property
    def occurred_at(self) -> datetime:
        return self.timestamp

    @classmethod
    def from_json(cls, payload: dict) -> "ClaimAttemptView":
        return cls(
            identifier=payload.get("identifier") or "",
            success=bool(payload.get("success")),
            timestamp=parse_timestamp(payload.get("timestamp")),
            item_id=payload.get("item_id"),
        )


def parse_timestamp(value: Any) -> datetime:
    """Parse an API timestamp into an aware UTC datetime (epoch when missing)."""
    if isinstance(value, datetime):
        dt = value
    elif value:
        try:
            dt = date_parser.isoparse(str(value))
        except (TypeError, ValueError):
            return datetime.fromtimestamp(0, tz=timezone.utc)
    else:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def clear_confirmation_message(clear_type: str, display_name: str, window_minutes: int) -> str:
    messages = {
        "failed": f"Clear all failed claim attempts for {display_name}?",
        "all": f"⚠️ Clear ALL claim attempts for {display_name}?\n\nThis will remove the complete audit trail.",
        "rate-limit": (
            f"Reset rate limit for {display_name}?\n\n"
            f"This will clear failed attempts from the last {window_minutes} minutes, "
            "allowing them to try again."
        ),
    }
    try:
        return messages[clear_type]
    except KeyError:
        raise ValueError(f"Unknown clear type: {clear_type!r}") from None
