"""JSON API for the scavenger hunt admin dashboard."""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Callable

from flask import Blueprint, abort, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from extensions import db

from . import auth, claim_attempts, claims, hunt_items, users
from .auth import UserProvider
from .errors import InvalidArgumentError, ScavengerServiceError
from .settings import claims_api_enabled


@dataclass
class FeatureGate:
    check: Callable[[], bool]

    def guard(self) -> None:
        if not self.check():
            abort(404)


claims_gate = FeatureGate(claims_api_enabled)


def json_endpoint(action: str):
    """Map service errors to their payloads and anything else to a logged 500."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except HTTPException:
                raise
            except ScavengerServiceError as exc:
                return jsonify(exc.payload), exc.status_code
            except Exception as exc:
                db.session.rollback()
                current_app.logger.exception("Error %s: %s", action, exc)
                return jsonify({"success": False, "error": "Internal server error"}), 500

        return wrapper

    return decorator


def _json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise InvalidArgumentError("Request body must be a JSON object")
    return payload


def create_scavenger_blueprint(current_user_provider: UserProvider = auth.session_user) -> Blueprint:
    """Factory so the host app can inject its own session-based user lookup."""

    bp = Blueprint("scavenger_api", __name__, url_prefix="/api")

    def _require_admin():
        return auth.require_admin(current_user_provider)

    def _require_user():
        return auth.require_user(current_user_provider)

    # ----- session -----

    @bp.post("/session")
    @json_endpoint("logging in")
    def create_session():
        payload = _json_body()
        user = auth.login(payload.get("email"), payload.get("password"))
        return jsonify({"success": True, "user": user.to_summary_dict()})

    @bp.delete("/session")
    @json_endpoint("logging out")
    def delete_session():
        auth.logout()
        return jsonify({"success": True})

    # ----- hunt items -----

    @bp.get("/hunt-items")
    @json_endpoint("fetching hunt items")
    def list_hunt_items():
        viewer = current_user_provider()
        include_identifier = bool(viewer and viewer.is_admin)
        items = hunt_items.list_hunt_items()
        return jsonify(
            {
                "success": True,
                "huntItems": [item.to_dict(include_identifier=include_identifier) for item in items],
            }
        )

    @bp.get("/hunt-items/<int:item_id>")
    @json_endpoint("fetching hunt item")
    def get_hunt_item(item_id: int):
        viewer = current_user_provider()
        item = hunt_items.get_hunt_item(item_id)
        return jsonify(
            {
                "success": True,
                "huntItem": item.to_dict(include_identifier=bool(viewer and viewer.is_admin)),
            }
        )

    @bp.post("/hunt-items")
    @json_endpoint("creating hunt item")
    def create_hunt_item():
        admin = _require_admin()
        item = hunt_items.create_hunt_item(request.get_json(silent=True), admin.email)
        return jsonify({"success": True, "huntItem": item.to_dict()}), 201

    @bp.put("/hunt-items/<int:item_id>")
    @json_endpoint("updating hunt item")
    def update_hunt_item(item_id: int):
        admin = _require_admin()
        item = hunt_items.update_hunt_item(item_id, request.get_json(silent=True), admin.email)
        return jsonify({"success": True, "huntItem": item.to_dict()})

    @bp.delete("/hunt-items/<int:item_id>")
    @json_endpoint("deleting hunt item")
    def delete_hunt_item(item_id: int):
        admin = _require_admin()
        hunt_items.delete_hunt_item(item_id, admin.email)
        return jsonify({"success": True})

    # ----- admin: claim attempts -----

    @bp.get("/admin/claim-attempts")
    @json_endpoint("fetching claim attempts")
    def list_claim_attempts():
        _require_admin()
        limit = claim_attempts.parse_limit(request.args.get("limit"))
        result = claim_attempts.query_claim_attempts(
            email=request.args.get("email"),
            failed_only=(request.args.get("failed") or "").lower() == "true",
            limit=limit,
        )
        return jsonify({"success": True, **result})

    @bp.post("/admin/claim-attempts")
    @json_endpoint("clearing claim attempts")
    def clear_claim_attempts():
        admin = _require_admin()
        payload = _json_body()
        result = claim_attempts.clear_claim_attempts(
            payload.get("userEmail"),
            payload.get("clearType"),
            admin_email=admin.email,
        )
        return jsonify({"success": True, "message": result["message"]})

    # ----- users -----

    @bp.get("/admin/users")
    @json_endpoint("fetching users")
    def list_users():
        _require_admin()
        return jsonify({"success": True, "users": users.list_users_overview()})

    @bp.get("/users/<int:user_id>")
    @json_endpoint("fetching user history")
    def get_user(user_id: int):
        viewer = _require_user()
        return jsonify({"success": True, "user": users.get_user_detail(user_id, viewer)})

    # ----- player claims -----

    @bp.post("/claims")
    @json_endpoint("claiming hunt item")
    def submit_claim():
        claims_gate.guard()
        user = _require_user()
        payload = _json_body()
        result = claims.submit_claim(user, payload.get("identifier"))
        return jsonify({"success": True, **result})

    return bp
