"""Scavenger hunt admin package: hunt items, claim attempts, rate limits."""

from .rate_limit import RateLimitPolicy, RateLimitStatus, apply_clear_policy, compute_rate_limit
from .routes import create_scavenger_blueprint

__all__ = [
    "RateLimitPolicy",
    "RateLimitStatus",
    "apply_clear_policy",
    "compute_rate_limit",
    "create_scavenger_blueprint",
]
