"""Admin dashboard client and per-view state holders."""

from .claim_attempts import ClaimAttemptsMonitor
from .client import DashboardClient, DashboardError
from .hunt_items import HuntItemsPanel
from .user_history import UserHistoryPanel

__all__ = [
    "ClaimAttemptsMonitor",
    "DashboardClient",
    "DashboardError",
    "HuntItemsPanel",
    "UserHistoryPanel",
]
