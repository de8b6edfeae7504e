"""Create, list, edit and delete hunt item definitions."""

from __future__ import annotations

import html
from typing import Any, Dict, List, Optional

import bleach
from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import ClaimAttempt, HistoryEntry, HuntItem

from .audit import log_admin_action
from .errors import ConflictError, InvalidArgumentError, NotFoundError

NAME_MAX_LENGTH = 120
IDENTIFIER_MAX_LENGTH = 120


def list_hunt_items() -> List[HuntItem]:
    return HuntItem.query.order_by(HuntItem.created_at.desc(), HuntItem.id.desc()).all()


def get_hunt_item(item_id: int) -> HuntItem:
    item = db.session.get(HuntItem, item_id)
    if not item:
        raise NotFoundError("Hunt item not found")
    return item


def find_hunt_item_by_identifier(identifier: Optional[str]) -> Optional[HuntItem]:
    cleaned = (identifier or "").strip()
    if not cleaned:
        return None
    return HuntItem.query.filter_by(identifier=cleaned).first()


def create_hunt_item(payload: Any, admin_email: str) -> HuntItem:
    payload = _require_mapping(payload)

    name = _clean_text(payload.get("name"))
    description = _clean_text(payload.get("description"))
    raw_identifier = payload.get("identifier")
    identifier = raw_identifier.strip() if isinstance(raw_identifier, str) else ""
    points = _parse_points(payload.get("points", 0))

    if not name:
        raise InvalidArgumentError("Name is required")
    if len(name) > NAME_MAX_LENGTH:
        raise InvalidArgumentError(f"Name must be at most {NAME_MAX_LENGTH} characters")
    if not identifier:
        raise InvalidArgumentError("Identifier is required")
    if len(identifier) > IDENTIFIER_MAX_LENGTH:
        raise InvalidArgumentError(f"Identifier must be at most {IDENTIFIER_MAX_LENGTH} characters")
    if find_hunt_item_by_identifier(identifier):
        raise ConflictError("A hunt item with this identifier already exists")

    item = HuntItem(name=name, description=description, identifier=identifier, points=points)
    db.session.add(item)
    try:
        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("A hunt item with this identifier already exists") from exc

    log_admin_action(
        admin_email=admin_email,
        action="CREATE_HUNT_ITEM",
        resource_type="huntItem",
        resource_id=str(item.id),
        new_data=item.to_dict(),
    )
    _commit("creating hunt item")
    return item


def update_hunt_item(item_id: int, payload: Any, admin_email: str) -> HuntItem:
    """Apply partial changes; the identifier is fixed once an item exists."""
    payload = _require_mapping(payload)
    item = get_hunt_item(item_id)

    changes: Dict[str, Any] = {}
    if "name" in payload:
        name = _clean_text(payload.get("name"))
        if not name:
            raise InvalidArgumentError("Name is required")
        if len(name) > NAME_MAX_LENGTH:
            raise InvalidArgumentError(f"Name must be at most {NAME_MAX_LENGTH} characters")
        changes["name"] = name
    if "description" in payload:
        changes["description"] = _clean_text(payload.get("description"))
    if "points" in payload:
        changes["points"] = _parse_points(payload.get("points"))

    if not changes:
        return item

    previous = item.to_dict()
    for key, value in changes.items():
        setattr(item, key, value)

    log_admin_action(
        admin_email=admin_email,
        action="UPDATE_HUNT_ITEM",
        resource_type="huntItem",
        resource_id=str(item.id),
        details={"fields": sorted(changes)},
        previous_data=previous,
        new_data={**previous, **changes},
    )
    _commit(f"updating hunt item {item_id}")
    return item


def delete_hunt_item(item_id: int, admin_email: str) -> None:
    item = get_hunt_item(item_id)
    previous = item.to_dict()

    # Attempts stay as an audit trail; claimed history for the item goes with it.
    (
        db.session.query(ClaimAttempt)
        .filter(ClaimAttempt.item_id == item.id)
        .update({ClaimAttempt.item_id: None}, synchronize_session=False)
    )
    (
        db.session.query(HistoryEntry)
        .filter(HistoryEntry.item_id == item.id)
        .delete(synchronize_session=False)
    )
    db.session.delete(item)

    log_admin_action(
        admin_email=admin_email,
        action="DELETE_HUNT_ITEM",
        resource_type="huntItem",
        resource_id=str(item_id),
        previous_data=previous,
    )
    _commit(f"deleting hunt item {item_id}")


def _require_mapping(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise InvalidArgumentError("Request body must be a JSON object")
    return payload


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidArgumentError("Text fields must be strings")
    # Tags are stripped; entities bleach escaped are decoded back for the JSON API.
    return html.unescape(bleach.clean(value, tags=[], attributes={}, strip=True)).strip()


def _parse_points(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidArgumentError("Points must be a non-negative integer")
    if isinstance(value, float) and not value.is_integer():
        raise InvalidArgumentError("Points must be a non-negative integer")
    try:
        points = int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError("Points must be a non-negative integer") from None
    if points < 0:
        raise InvalidArgumentError("Points must be a non-negative integer")
    return points


def _commit(action: str) -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.warning("Integrity error while %s: %s", action, exc)
        raise ConflictError("A hunt item with this identifier already exists") from exc
