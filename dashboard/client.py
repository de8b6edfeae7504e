"""Thin ``requests`` client for the scavenger admin JSON API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests


class DashboardError(Exception):
    """Raised when an API call fails or answers with ``success: false``."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class DashboardClient:
    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    # ----- session -----

    def login(self, email: str, password: str) -> dict:
        data = self._request(
            "POST",
            "/api/session",
            "Failed to log in",
            json={"email": email, "password": password},
        )
        return data["user"]

    def logout(self) -> None:
        self._request("DELETE", "/api/session", "Failed to log out")

    # ----- hunt items -----

    def list_hunt_items(self) -> List[dict]:
        return self._request("GET", "/api/hunt-items", "Failed to fetch hunt items")["huntItems"]

    def create_hunt_item(self, payload: Dict[str, Any]) -> dict:
        data = self._request("POST", "/api/hunt-items", "Failed to create hunt item", json=payload)
        return data["huntItem"]

    def update_hunt_item(self, item_id: str, name: str, description: str, points: int) -> dict:
        data = self._request(
            "PUT",
            f"/api/hunt-items/{item_id}",
            "Failed to update hunt item",
            json={"name": name, "description": description, "points": points},
        )
        return data["huntItem"]

    def delete_hunt_item(self, item_id: str) -> None:
        self._request("DELETE", f"/api/hunt-items/{item_id}", "Failed to delete hunt item")

    # ----- claim attempts -----

    def list_claim_attempts(
        self,
        email: Optional[str] = None,
        failed_only: bool = False,
        limit: Optional[int] = None,
    ) -> dict:
        params: Dict[str, Any] = {}
        if email:
            params["email"] = email
        if failed_only:
            params["failed"] = "true"
        if limit is not None:
            params["limit"] = limit
        data = self._request(
            "GET",
            "/api/admin/claim-attempts",
            "Failed to fetch claim attempts",
            params=params,
        )
        return {
            "claimAttempts": data.get("claimAttempts") or [],
            "stats": data.get("stats") or {},
            "rateLimitPolicy": data.get("rateLimitPolicy") or {},
        }

    def clear_claim_attempts(self, user_email: str, clear_type: str) -> str:
        data = self._request(
            "POST",
            "/api/admin/claim-attempts",
            "Failed to clear claim attempts",
            json={"userEmail": user_email, "clearType": clear_type},
        )
        return data.get("message") or ""

    # ----- users -----

    def get_user(self, user_id: str) -> dict:
        return self._request("GET", f"/api/users/{user_id}", "Failed to fetch user history")["user"]

    def list_users(self) -> List[dict]:
        return self._request("GET", "/api/admin/users", "Failed to fetch users")["users"]

    def _request(self, method: str, path: str, failure_message: str, **kwargs) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise DashboardError(f"{failure_message}: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            raise DashboardError(failure_message, response.status_code) from None

        if not isinstance(data, dict) or not data.get("success"):
            message = data.get("error") if isinstance(data, dict) else None
            raise DashboardError(message or failure_message, response.status_code)
        return data
