from __future__ import annotations

from typing import Any, Dict, Optional


class ScavengerServiceError(Exception):
    """Raised when a scavenger service operation fails."""

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        self.message = message
        self.payload = payload or {"success": False, "error": message}


class UnauthorizedError(ScavengerServiceError):
    status_code = 401


class ForbiddenError(ScavengerServiceError):
    status_code = 403


class NotFoundError(ScavengerServiceError):
    status_code = 404


class InvalidArgumentError(ScavengerServiceError):
    status_code = 400


class ConflictError(ScavengerServiceError):
    status_code = 409


class RateLimitedError(ScavengerServiceError):
    status_code = 429
