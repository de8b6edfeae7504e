from datetime import datetime, timedelta, timezone

import pytest
import requests

from dashboard import ClaimAttemptsMonitor, DashboardClient, DashboardError, HuntItemsPanel, UserHistoryPanel
from dashboard.records import HuntItemForm

from conftest import ADMIN_EMAIL, PLAYER_EMAIL, login_as

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def iso(minutes_ago):
    return (NOW - timedelta(minutes=minutes_ago)).isoformat()


class FakeClient:
    """In-memory stand-in for DashboardClient; set ``fail`` to make calls raise."""

    def __init__(self):
        self.items = [{"_id": "1", "name": "Old", "description": "", "identifier": "OLD", "points": 1}]
        self.user = {"email": PLAYER_EMAIL, "name": "Player One", "history": [], "claim_attempts": []}
        self.fail = None
        self.calls = []
        self.next_id = 2

    def _check(self, name):
        self.calls.append(name)
        if self.fail == name:
            raise DashboardError(f"{name} failed", 500)

    def list_hunt_items(self):
        self._check("list_hunt_items")
        return list(self.items)

    def create_hunt_item(self, payload):
        self._check("create_hunt_item")
        item = {"_id": str(self.next_id), **payload}
        self.next_id += 1
        self.items.insert(0, item)
        return item

    def update_hunt_item(self, item_id, name, description, points):
        self._check("update_hunt_item")
        return {"_id": item_id, "name": name, "description": description, "points": points, "identifier": "OLD"}

    def delete_hunt_item(self, item_id):
        self._check("delete_hunt_item")

    def get_user(self, user_id):
        self._check("get_user")
        return dict(self.user)

    def clear_claim_attempts(self, user_email, clear_type):
        self._check("clear_claim_attempts")
        if clear_type == "all":
            self.user["claim_attempts"] = []
        return f"Cleared {clear_type} claim attempts for {user_email}"

    def list_claim_attempts(self, email=None, failed_only=False, limit=None):
        self._check("list_claim_attempts")
        self.calls.append(("filters", email, failed_only, limit))
        return {"claimAttempts": [{"userEmail": PLAYER_EMAIL, "success": False}], "stats": {"totalAttempts": 1}}


class Prompt:
    def __init__(self, answer=True):
        self.answer = answer
        self.messages = []

    def __call__(self, message):
        self.messages.append(message)
        return self.answer


# --- HuntItemsPanel ---

def test_open_fetches_and_resets_state():
    panel = HuntItemsPanel(FakeClient(), Prompt())
    panel.state.error = "stale"
    panel.state.show_add_form = True
    panel.open()
    assert panel.is_open
    assert [item["_id"] for item in panel.state.hunt_items] == ["1"]
    assert panel.state.error is None
    assert panel.state.show_add_form is False
    assert panel.state.loading is False


def test_create_prepends_and_resets_form():
    panel = HuntItemsPanel(FakeClient(), Prompt())
    panel.open()
    panel.start_add()
    panel.state.form = HuntItemForm(name="New", description="d", identifier="NEW", points=5)
    assert panel.create() is True
    assert [item["name"] for item in panel.state.hunt_items] == ["New", "Old"]
    assert panel.state.form == HuntItemForm()
    assert panel.state.show_add_form is False
    assert panel.state.is_submitting is False


def test_create_failure_keeps_form_and_sets_error(caplog):
    client = FakeClient()
    panel = HuntItemsPanel(client, Prompt())
    panel.open()
    panel.start_add()
    panel.state.form = HuntItemForm(name="New", identifier="NEW")
    client.fail = "create_hunt_item"
    assert panel.create() is False
    assert panel.state.error == "create_hunt_item failed"
    assert panel.state.form.name == "New"
    assert panel.state.is_submitting is False
    assert "Error creating hunt item" in caplog.text


def test_create_refused_while_submitting():
    client = FakeClient()
    panel = HuntItemsPanel(client, Prompt())
    panel.state.is_submitting = True
    assert panel.create() is False
    assert "create_hunt_item" not in client.calls


def test_update_replaces_matching_item():
    panel = HuntItemsPanel(FakeClient(), Prompt())
    panel.open()
    panel.start_edit(panel.state.hunt_items[0])
    assert panel.update({"_id": "1", "name": "Renamed", "description": "x", "points": 9}) is True
    assert panel.state.hunt_items[0]["name"] == "Renamed"
    assert panel.state.editing_item is None


def test_delete_needs_confirmation():
    client = FakeClient()
    prompt = Prompt(answer=False)
    panel = HuntItemsPanel(client, prompt)
    panel.open()
    assert panel.delete("1") is False
    assert "delete_hunt_item" not in client.calls
    assert prompt.messages == ["Are you sure you want to delete this hunt item?"]

    prompt.answer = True
    assert panel.delete("1") is True
    assert panel.state.hunt_items == []


def test_close_resets_everything():
    panel = HuntItemsPanel(FakeClient(), Prompt())
    panel.open()
    panel.close()
    assert not panel.is_open
    assert panel.state.hunt_items == []


# --- UserHistoryPanel ---

def make_history_panel(client, prompt=None, now=NOW):
    clock = {"now": now}
    panel = UserHistoryPanel(client, prompt or Prompt(), clock=lambda: clock["now"])
    return panel, clock


def test_rate_limit_is_recomputed_from_clock():
    client = FakeClient()
    client.user["claim_attempts"] = [
        {"identifier": "x", "success": False, "timestamp": iso(1)} for _ in range(10)
    ]
    panel, clock = make_history_panel(client)
    panel.open("7", "Player One", PLAYER_EMAIL)

    status = panel.rate_limit
    assert status.is_rate_limited is True
    assert status.remaining_attempts == 0

    clock["now"] = NOW + timedelta(minutes=15)
    assert panel.rate_limit.is_rate_limited is False
    assert panel.rate_limit.remaining_attempts == 10


def test_recent_attempts_are_the_last_ten():
    client = FakeClient()
    client.user["claim_attempts"] = [
        {"identifier": str(n), "success": True, "timestamp": iso(60 - n)} for n in range(12)
    ]
    panel, _ = make_history_panel(client)
    panel.open("7", "", PLAYER_EMAIL)
    assert [attempt.identifier for attempt in panel.recent_attempts] == [str(n) for n in range(2, 12)]


def test_panel_adopts_server_policy():
    client = FakeClient()
    client.user["rateLimit"] = {"windowMinutes": 5, "maxFailedAttempts": 3}
    client.user["claim_attempts"] = [
        {"identifier": "x", "success": False, "timestamp": iso(minutes)} for minutes in (1, 2, 3, 10)
    ]
    panel, _ = make_history_panel(client)
    panel.open("7", "", PLAYER_EMAIL)
    assert panel.rate_limit.recent_failed_attempts == 3
    assert panel.rate_limit.is_rate_limited is True


def test_clear_declined_sends_nothing():
    client = FakeClient()
    prompt = Prompt(answer=False)
    panel, _ = make_history_panel(client, prompt)
    panel.open("7", "Player One", PLAYER_EMAIL)
    assert panel.clear_claim_attempts("rate-limit") is False
    assert "clear_claim_attempts" not in client.calls
    assert prompt.messages[0].startswith("Reset rate limit for Player One?")
    assert "last 15 minutes" in prompt.messages[0]


def test_clear_confirmed_refetches():
    client = FakeClient()
    client.user["claim_attempts"] = [{"identifier": "x", "success": False, "timestamp": iso(1)}]
    panel, _ = make_history_panel(client)
    panel.open("7", "Player One", PLAYER_EMAIL)
    assert panel.clear_claim_attempts("all") is True
    assert panel.state.message == f"Cleared all claim attempts for {PLAYER_EMAIL}"
    assert panel.state.claim_attempts == []
    assert client.calls.count("get_user") == 2
    assert panel.state.is_clearing is False


def test_clear_failure_sets_error():
    client = FakeClient()
    panel, _ = make_history_panel(client)
    panel.open("7", "Player One", PLAYER_EMAIL)
    client.fail = "clear_claim_attempts"
    assert panel.clear_claim_attempts("failed") is False
    assert panel.state.error == "clear_claim_attempts failed"


def test_history_fetch_failure_and_close():
    client = FakeClient()
    client.fail = "get_user"
    panel, _ = make_history_panel(client)
    panel.open("7", "Player One", PLAYER_EMAIL)
    assert panel.state.error == "get_user failed"
    panel.close()
    assert panel.state.error is None
    assert panel.state.user_id is None


# --- ClaimAttemptsMonitor ---

def test_monitor_refresh_and_filters():
    client = FakeClient()
    monitor = ClaimAttemptsMonitor(client, Prompt())
    monitor.open()
    assert monitor.state.stats["totalAttempts"] == 1
    assert monitor.state.stats["uniqueUsers"] == 0

    monitor.set_filters(email=f" {PLAYER_EMAIL} ", failed_only=True, limit=20)
    assert ("filters", PLAYER_EMAIL, True, 20) in client.calls


def test_monitor_error_and_clear():
    client = FakeClient()
    prompt = Prompt()
    monitor = ClaimAttemptsMonitor(client, prompt)
    client.fail = "list_claim_attempts"
    monitor.open()
    assert monitor.state.error == "list_claim_attempts failed"

    client.fail = None
    assert monitor.clear_for_user(PLAYER_EMAIL, "failed") is True
    assert monitor.state.error is None
    assert prompt.messages == [f"Clear all failed claim attempts for {PLAYER_EMAIL}?"]


# --- DashboardClient ---

class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def request(self, method, url, timeout=None, **kwargs):
        self.requests.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response


def test_client_returns_payload_and_builds_urls():
    session = FakeSession(FakeResponse(200, {"success": True, "huntItems": [{"_id": "1"}]}))
    client = DashboardClient("http://admin.local/", session=session)
    assert client.list_hunt_items() == [{"_id": "1"}]
    assert session.requests[0][:2] == ("GET", "http://admin.local/api/hunt-items")


def test_client_surfaces_server_error_message():
    session = FakeSession(FakeResponse(403, {"success": False, "error": "Forbidden: Admin access required"}))
    client = DashboardClient("http://admin.local", session=session)
    with pytest.raises(DashboardError) as excinfo:
        client.list_claim_attempts(failed_only=True, limit=5)
    assert excinfo.value.message == "Forbidden: Admin access required"
    assert excinfo.value.status_code == 403
    assert session.requests[0][2]["params"] == {"failed": "true", "limit": 5}


def test_client_wraps_transport_and_decoding_errors():
    client = DashboardClient("http://admin.local", session=FakeSession(error=requests.ConnectionError("down")))
    with pytest.raises(DashboardError) as excinfo:
        client.get_user("1")
    assert excinfo.value.message.startswith("Failed to fetch user history")

    client = DashboardClient("http://admin.local", session=FakeSession(FakeResponse(502, None)))
    with pytest.raises(DashboardError) as excinfo:
        client.delete_hunt_item("1")
    assert excinfo.value.status_code == 502


# --- end to end through the Flask app ---

class FlaskSession:
    """Routes DashboardClient requests into a Flask test client."""

    def __init__(self, test_client):
        self.test_client = test_client

    def request(self, method, url, timeout=None, params=None, json=None):
        path = url.replace("http://testserver", "", 1)
        resp = self.test_client.open(path, method=method, query_string=params, json=json)
        return FakeResponse(resp.status_code, resp.get_json())


def test_panels_against_real_api(app, users, add_attempts):
    test_client = app.test_client()
    login_as(test_client, ADMIN_EMAIL)
    client = DashboardClient("http://testserver", session=FlaskSession(test_client))

    items = HuntItemsPanel(client, Prompt())
    items.open()
    items.state.form = HuntItemForm(name="Golden Acorn", description="Oak", identifier="ACORN-1", points=10)
    assert items.create() is True
    items.state.form = HuntItemForm(name="Imposter", identifier="ACORN-1", points=1)
    assert items.create() is False
    assert items.state.error == "A hunt item with this identifier already exists"

    add_attempts(PLAYER_EMAIL, [(False, 1) for _ in range(10)])
    history = UserHistoryPanel(client, Prompt())
    history.open(str(users["player"]), "Player One", PLAYER_EMAIL)
    assert history.rate_limit.is_rate_limited is True
    assert history.clear_claim_attempts("rate-limit") is True
    assert history.rate_limit.recent_failed_attempts == 0
    assert history.state.message.startswith("Cleared rate limit")


def test_monitor_prompt_follows_server_window():
    client = FakeClient()
    client.list_claim_attempts = lambda **kwargs: {
        "claimAttempts": [],
        "stats": {},
        "rateLimitPolicy": {"windowMinutes": 30, "maxFailedAttempts": 5},
    }
    prompt = Prompt(answer=False)
    monitor = ClaimAttemptsMonitor(client, prompt)
    monitor.open()
    assert monitor.window_minutes == 30
    monitor.clear_for_user(PLAYER_EMAIL, "rate-limit", user_name="Player One")
    assert "last 30 minutes" in prompt.messages[0]
