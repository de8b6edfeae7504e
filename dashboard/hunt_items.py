"""State holder behind the hunt items management view."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .client import DashboardClient, DashboardError
from .records import HuntItemForm

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "Are you sure you want to delete this hunt item?"

ConfirmPrompt = Callable[[str], bool]


@dataclass
class HuntItemsState:
    hunt_items: List[dict] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    editing_item: Optional[dict] = None
    show_add_form: bool = False
    form: HuntItemForm = field(default_factory=HuntItemForm)
    is_submitting: bool = False


class HuntItemsPanel:
    """Holds the list, form and error state for one open hunt items view."""

    def __init__(self, client: DashboardClient, confirm: ConfirmPrompt):
        self.client = client
        self.confirm = confirm
        self.is_open = False
        self.state = HuntItemsState()

    def open(self) -> None:
        self.is_open = True
        self.state = HuntItemsState()
        self.fetch()

    def close(self) -> None:
        self.is_open = False
        self.state = HuntItemsState()

    def start_add(self) -> None:
        self.state.form = HuntItemForm()
        self.state.show_add_form = True

    def start_edit(self, item: dict) -> None:
        self.state.editing_item = dict(item)

    def cancel_edit(self) -> None:
        self.state.editing_item = None

    def fetch(self) -> bool:
        self.state.loading = True
        self.state.error = None
        try:
            self.state.hunt_items = self.client.list_hunt_items()
            return True
        except DashboardError as exc:
            self._fail("Error fetching hunt items", exc)
            return False
        finally:
            self.state.loading = False

    def create(self) -> bool:
        if self.state.is_submitting:
            return False

        self.state.is_submitting = True
        self.state.error = None
        try:
            created = self.client.create_hunt_item(self.state.form.to_payload())
        except DashboardError as exc:
            self._fail("Error creating hunt item", exc)
            return False
        finally:
            self.state.is_submitting = False

        self.state.hunt_items = [created, *self.state.hunt_items]
        self.state.form = HuntItemForm()
        self.state.show_add_form = False
        return True

    def update(self, item: dict) -> bool:
        self.state.error = None
        try:
            updated = self.client.update_hunt_item(
                item["_id"],
                name=item.get("name", ""),
                description=item.get("description", ""),
                points=item.get("points", 0),
            )
        except DashboardError as exc:
            self._fail("Error updating hunt item", exc)
            return False

        self.state.hunt_items = [
            updated if existing.get("_id") == item["_id"] else existing
            for existing in self.state.hunt_items
        ]
        self.state.editing_item = None
        return True

    def delete(self, item_id: str) -> bool:
        if not self.confirm(DELETE_CONFIRMATION):
            return False

        self.state.error = None
        try:
            self.client.delete_hunt_item(item_id)
        except DashboardError as exc:
            self._fail("Error deleting hunt item", exc)
            return False

        self.state.hunt_items = [item for item in self.state.hunt_items if item.get("_id") != item_id]
        return True

    def _fail(self, context: str, exc: DashboardError) -> None:
        self.state.error = exc.message
        logger.error("%s: %s", context, exc)
