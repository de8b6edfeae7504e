"""Database models for the scavenger hunt admin app."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import validates

from extensions import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(db.Model):
    """Player or admin account; owns claim attempts and claimed-item history."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=True)
    account_type = db.Column(db.String(20), nullable=False, default="Player")
    password_hash = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Row id order is insertion order, which is chronological.
    claim_attempts = db.relationship(
        "ClaimAttempt",
        back_populates="user",
        order_by="ClaimAttempt.id",
        cascade="all, delete-orphan",
    )
    history = db.relationship(
        "HistoryEntry",
        back_populates="user",
        order_by="HistoryEntry.id",
        cascade="all, delete-orphan",
    )

    @validates("email")
    def _normalize_email(self, key: str, value: Optional[str]) -> Optional[str]:
        # Lookups lowercase their input, so stored emails must be lowercase too.
        return value.strip().lower() if isinstance(value, str) else value

    @property
    def is_admin(self) -> bool:
        return (self.account_type or "").lower() == "admin"

    @property
    def total_points(self) -> int:
        return sum(entry.points_awarded or 0 for entry in self.history)

    def to_summary_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "accountType": self.account_type,
        }

    def __repr__(self) -> str:  # pragma: no cover - helper for shell debugging
        return f"<User id={self.id} email={self.email!r} type={self.account_type!r}>"


class HuntItem(db.Model):
    """Admin-defined collectible with a unique claim code."""

    __tablename__ = "hunt_items"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    identifier = db.Column(db.String(120), unique=True, nullable=False, index=True)
    points = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint("points >= 0", name="ck_hunt_items_points_non_negative"),
    )

    def to_dict(self, include_identifier: bool = True) -> dict:
        """Serialize to the JSON shape the dashboard expects."""
        payload = {
            "_id": str(self.id),
            "name": self.name,
            "description": self.description or "",
            "points": self.points,
            "createdAt": _isoformat_or_none(self.created_at),
            "updatedAt": _isoformat_or_none(self.updated_at),
        }
        if include_identifier:
            payload["identifier"] = self.identifier
        return payload

    def __repr__(self) -> str:  # pragma: no cover - helper for shell debugging
        return f"<HuntItem id={self.id} identifier={self.identifier!r} points={self.points}>"


class ClaimAttempt(db.Model):
    """One recorded try at redeeming an identifier, successful or not."""

    __tablename__ = "claim_attempts"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    identifier = db.Column(db.String(120), nullable=False)
    success = db.Column(db.Boolean, nullable=False, default=False)
    timestamp = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("hunt_items.id", ondelete="SET NULL"), nullable=True)

    user = db.relationship("User", back_populates="claim_attempts")

    @property
    def occurred_at(self) -> datetime:
        return _ensure_aware(self.timestamp)

    def to_dict(self) -> dict:
        return {
            "identifier": self.identifier,
            "success": bool(self.success),
            "timestamp": _isoformat_or_none(self.timestamp),
            "item_id": str(self.item_id) if self.item_id is not None else None,
        }


class HistoryEntry(db.Model):
    """A hunt item a user has claimed, with the points awarded at the time."""

    __tablename__ = "claim_history"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    item_id = db.Column(db.Integer, db.ForeignKey("hunt_items.id", ondelete="CASCADE"), nullable=False)
    claimed_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    points_awarded = db.Column(db.Integer, nullable=False, default=0)

    user = db.relationship("User", back_populates="history")
    item = db.relationship("HuntItem")

    __table_args__ = (
        db.UniqueConstraint("user_id", "item_id", name="uq_claim_history_user_item"),
    )

    def to_dict(self) -> dict:
        payload = self.item.to_dict(include_identifier=True) if self.item else {}
        payload.update(
            {
                "claimedAt": _isoformat_or_none(self.claimed_at),
                "pointsAwarded": self.points_awarded,
            }
        )
        return payload


class AdminAuditLog(db.Model):
    """Before/after snapshot of an admin mutation."""

    __tablename__ = "admin_audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    admin_email = db.Column(db.String(255), nullable=False, index=True)
    action = db.Column(db.String(64), nullable=False)
    resource_type = db.Column(db.String(64), nullable=False)
    resource_id = db.Column(db.String(64), nullable=True)
    target_user_email = db.Column(db.String(255), nullable=True)
    details = db.Column(db.JSON, nullable=True)
    previous_data = db.Column(db.JSON, nullable=True)
    new_data = db.Column(db.JSON, nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "adminEmail": self.admin_email,
            "action": self.action,
            "resourceType": self.resource_type,
            "resourceId": self.resource_id,
            "targetUserEmail": self.target_user_email,
            "details": self.details or {},
            "previousData": self.previous_data,
            "newData": self.new_data,
            "createdAt": _isoformat_or_none(self.created_at),
        }


def _isoformat_or_none(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    aware = _ensure_aware(value)
    return aware.astimezone(timezone.utc).isoformat()


def _ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
