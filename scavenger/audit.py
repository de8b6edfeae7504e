"""Admin audit trail: before/after snapshots of every admin mutation."""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import current_app, has_request_context, request

from extensions import db
from models import AdminAuditLog

SENSITIVE_KEYS = {"password", "password_hash", "token", "secret", "session", "authorization"}
REDACTED = "[REDACTED]"


def sanitize_data_for_logging(data: Any) -> Any:
    """Return a copy of ``data`` with credential-like keys redacted."""
    if isinstance(data, dict):
        cleaned: Dict[str, Any] = {}
        for key, value in data.items():
            if str(key).lower() in SENSITIVE_KEYS:
                cleaned[key] = REDACTED
            else:
                cleaned[key] = sanitize_data_for_logging(value)
        return cleaned
    if isinstance(data, (list, tuple)):
        return [sanitize_data_for_logging(item) for item in data]
    return data


def log_admin_action(
    *,
    admin_email: str,
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    target_user_email: Optional[str] = None,
    details: Optional[dict] = None,
    previous_data: Optional[dict] = None,
    new_data: Optional[dict] = None,
) -> AdminAuditLog:
    """Stage an audit row in the current session; the caller's commit persists it."""
    record = AdminAuditLog(
        admin_email=admin_email,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        target_user_email=target_user_email,
        details=sanitize_data_for_logging(details or {}),
        previous_data=sanitize_data_for_logging(previous_data),
        new_data=sanitize_data_for_logging(new_data),
    )
    if has_request_context():
        record.ip_address = _client_ip()
        record.user_agent = (request.headers.get("User-Agent") or "")[:255] or None
    db.session.add(record)
    current_app.logger.info(
        "Admin action %s on %s/%s by %s", action, resource_type, record.resource_id, admin_email
    )
    return record


def _client_ip() -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.remote_addr
