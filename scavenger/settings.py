"""Read scavenger tunables from the Flask config with sane fallbacks."""

from __future__ import annotations

from flask import current_app

from .rate_limit import DEFAULT_MAX_FAILED, DEFAULT_WINDOW_MINUTES, RateLimitPolicy

DEFAULT_CLAIM_ATTEMPTS_LIMIT = 100


def rate_limit_policy() -> RateLimitPolicy:
    return RateLimitPolicy(
        window_minutes=_config_int("CLAIM_RATE_LIMIT_WINDOW_MINUTES", DEFAULT_WINDOW_MINUTES, minimum=1),
        max_failed=_config_int("CLAIM_RATE_LIMIT_MAX_FAILED", DEFAULT_MAX_FAILED, minimum=1),
    )


def default_claim_attempts_limit() -> int:
    return _config_int("CLAIM_ATTEMPTS_DEFAULT_LIMIT", DEFAULT_CLAIM_ATTEMPTS_LIMIT, minimum=1)


def claims_api_enabled() -> bool:
    return bool(current_app.config.get("ENABLE_CLAIMS_API", True))


def _config_int(key: str, default: int, minimum: int = 0) -> int:
    try:
        value = int(current_app.config.get(key, default))
    except (TypeError, ValueError):
        current_app.logger.warning("Invalid %s value %r; using default %s", key, current_app.config.get(key), default)
        value = default
    return max(minimum, value)
