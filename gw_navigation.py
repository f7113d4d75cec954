# gw_navigation: the modal UI state and its transitions.
#
# Screens: SERVICE_SELECT -> ACTION_SELECT -> (ACTION_VIEW | INPUT), with
# CONFIRM reachable from ACTION_VIEW. The account switcher is an overlay that
# takes the arrow keys whenever it is visible.
#
# Nothing here performs I/O or raises on user input; the dispatcher feeds in
# results and status strings.

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields (*)"


class Screen(enum.Enum):
    SERVICE_SELECT = "service_select"
    ACTION_SELECT = "action_select"
    ACTION_VIEW = "action_view"
    INPUT = "input"
    CONFIRM = "confirm"


@dataclass
class ListItem:
    id: str
    title: str
    subtitle: str = ''
    metadata: dict = field(default_factory=dict)


@dataclass
class InputField:
    label: str
    placeholder: str = ''
    required: bool = False
    multiline: bool = False
    value: str = ''


@dataclass
class NavigationState:
    """Everything the renderer needs; mutated only through the methods below.

    `catalog` is a sequence of (service name, [action titles]) used to bound
    the service and action cursors.
    """

    catalog: Sequence = ()
    screen: Screen = Screen.SERVICE_SELECT
    selected_service_index: int = 0
    selected_action_index: int = 0
    items: List[ListItem] = field(default_factory=list)
    item_cursor: int = 0
    detail: Optional[dict] = None
    detail_is_drill_in: bool = False
    scroll_offset: int = 0
    input_fields: List[InputField] = field(default_factory=list)
    input_field_cursor: int = 0
    next_page_token: Optional[str] = None
    page_loader: Optional[Callable] = None
    view_action: Optional[str] = None
    confirm_message: str = ''
    account_switcher_visible: bool = False
    account_cursor: int = 0
    accounts: List[str] = field(default_factory=list)
    account_name: str = ''
    account_label: str = ''
    status: str = ''
    loading: bool = False
    should_quit: bool = False

    # -----------------------------
    # Lookups
    # -----------------------------
    def service_names(self) -> List[str]:
        return [name for name, _ in self.catalog]

    def action_titles(self) -> List[str]:
        if not self.catalog:
            return []
        return list(self.catalog[self.selected_service_index][1])

    def current_item(self) -> Optional[ListItem]:
        if 0 <= self.item_cursor < len(self.items):
            return self.items[self.item_cursor]
        return None

    def current_field(self) -> Optional[InputField]:
        if 0 <= self.input_field_cursor < len(self.input_fields):
            return self.input_fields[self.input_field_cursor]
        return None

    def selected_account(self) -> Optional[str]:
        if 0 <= self.account_cursor < len(self.accounts):
            return self.accounts[self.account_cursor]
        return None

    # -----------------------------
    # Cursor movement (saturating)
    # -----------------------------
    def _bound(self) -> int:
        if self.account_switcher_visible:
            return len(self.accounts)
        if self.screen == Screen.SERVICE_SELECT:
            return len(self.catalog)
        if self.screen == Screen.ACTION_SELECT:
            return len(self.action_titles())
        if self.screen == Screen.ACTION_VIEW:
            return len(self.items)
        if self.screen == Screen.INPUT:
            return len(self.input_fields)
        return 0

    def _step(self, delta: int) -> None:
        if self.screen == Screen.ACTION_VIEW and self.detail is not None and not self.account_switcher_visible:
            self.scroll_offset = max(0, self.scroll_offset + delta)
            return
        bound = self._bound()
        if bound == 0:
            return
        attr = {
            Screen.SERVICE_SELECT: 'selected_service_index',
            Screen.ACTION_SELECT: 'selected_action_index',
            Screen.ACTION_VIEW: 'item_cursor',
            Screen.INPUT: 'input_field_cursor',
        }.get(self.screen)
        if self.account_switcher_visible:
            attr = 'account_cursor'
        if attr is None:
            return
        current = getattr(self, attr)
        setattr(self, attr, min(bound - 1, max(0, current + delta)))

    def move_up(self) -> None:
        self._step(-1)

    def move_down(self) -> None:
        self._step(1)

    # -----------------------------
    # Forward transitions
    # -----------------------------
    def select_service(self) -> None:
        if self.screen != Screen.SERVICE_SELECT or not self.catalog:
            return
        self.screen = Screen.ACTION_SELECT
        self.selected_action_index = 0
        self.status = ''

    def begin_input(self, fields: Sequence[InputField]) -> None:
        self.input_fields = [InputField(f.label, f.placeholder, f.required, f.multiline, f.value) for f in fields]
        self.input_field_cursor = 0
        self.screen = Screen.INPUT
        self.status = "Tab: next field, Enter: submit, Esc: cancel"

    def show_items(self, items: Sequence[ListItem], next_page_token: Optional[str] = None,
                   loader: Optional[Callable] = None, status: str = '') -> None:
        """Replace the list with a fresh first page (never accumulates)."""
        self.items = list(items)
        self.item_cursor = 0
        self.detail = None
        self.detail_is_drill_in = False
        self.scroll_offset = 0
        self.next_page_token = next_page_token
        self.page_loader = loader if next_page_token else None
        self.input_fields = []
        self.input_field_cursor = 0
        self.screen = Screen.ACTION_VIEW
        self.status = status

    def append_items(self, items: Sequence[ListItem], next_page_token: Optional[str], status: str = '') -> None:
        self.items.extend(items)
        self.next_page_token = next_page_token
        if not next_page_token:
            self.page_loader = None
        if status:
            self.status = status

    def show_detail(self, doc: Optional[dict], status: str = '') -> None:
        """A singleton result: replaces any list."""
        self.items = []
        self.item_cursor = 0
        self.detail = doc if doc is not None else {}
        self.detail_is_drill_in = False
        self.scroll_offset = 0
        self.next_page_token = None
        self.page_loader = None
        self.input_fields = []
        self.input_field_cursor = 0
        self.screen = Screen.ACTION_VIEW
        self.status = status

    def open_detail(self, doc: Optional[dict], status: str = '') -> bool:
        """Drill into the selected item; a no-op while a detail is showing."""
        if self.screen != Screen.ACTION_VIEW or self.detail is not None:
            return False
        self.detail = doc if doc is not None else {}
        self.detail_is_drill_in = True
        self.scroll_offset = 0
        self.status = status or "Detail loaded. Up/Down to scroll, Esc to go back."
        return True

    def close_detail(self) -> None:
        self.detail = None
        self.detail_is_drill_in = False
        self.scroll_offset = 0

    def finish_input(self, status: str) -> None:
        self.input_fields = []
        self.input_field_cursor = 0
        self.screen = Screen.ACTION_SELECT
        self.status = status

    # -----------------------------
    # Confirm
    # -----------------------------
    def request_delete(self) -> bool:
        item = self.current_item()
        if self.screen != Screen.ACTION_VIEW or self.detail is not None or item is None:
            return False
        self.confirm_message = f"Delete '{item.title}'? (y/n)"
        self.screen = Screen.CONFIRM
        return True

    def cancel_confirm(self, status: str = "Cancelled") -> None:
        if self.screen != Screen.CONFIRM:
            return
        self.confirm_message = ''
        self.screen = Screen.ACTION_VIEW
        self.status = status

    def finish_confirm(self, status: str) -> None:
        self.confirm_message = ''
        self.screen = Screen.ACTION_VIEW
        self.status = status

    def remove_item(self, item_id: str) -> None:
        self.items = [it for it in self.items if it.id != item_id]
        if self.item_cursor >= len(self.items):
            self.item_cursor = max(0, len(self.items) - 1)

    # -----------------------------
    # Back navigation
    # -----------------------------
    def _clear_view(self) -> None:
        self.items = []
        self.item_cursor = 0
        self.detail = None
        self.detail_is_drill_in = False
        self.scroll_offset = 0
        self.next_page_token = None
        self.page_loader = None
        self.view_action = None

    def go_back(self) -> None:
        if self.screen == Screen.SERVICE_SELECT:
            self.should_quit = True
        elif self.screen == Screen.ACTION_SELECT:
            self.screen = Screen.SERVICE_SELECT
            self.status = ''
        elif self.screen == Screen.ACTION_VIEW:
            if self.detail is not None and self.detail_is_drill_in:
                self.close_detail()
                return
            self._clear_view()
            self.screen = Screen.ACTION_SELECT
        elif self.screen == Screen.INPUT:
            self.input_fields = []
            self.input_field_cursor = 0
            self.screen = Screen.ACTION_SELECT
        elif self.screen == Screen.CONFIRM:
            self.cancel_confirm()

    # -----------------------------
    # Input editing
    # -----------------------------
    def missing_required(self) -> List[str]:
        return [f.label for f in self.input_fields if f.required and not f.value.strip()]

    def input_ready(self) -> bool:
        if self.missing_required():
            self.status = REQUIRED_FIELDS_MESSAGE
            return False
        return True

    def next_field(self) -> None:
        if self.input_fields:
            self.input_field_cursor = (self.input_field_cursor + 1) % len(self.input_fields)

    def prev_field(self) -> None:
        if self.input_fields:
            self.input_field_cursor = (self.input_field_cursor - 1) % len(self.input_fields)

    def type_text(self, text: str) -> None:
        fld = self.current_field()
        if self.screen == Screen.INPUT and fld is not None:
            fld.value += text

    def backspace(self) -> None:
        fld = self.current_field()
        if self.screen == Screen.INPUT and fld is not None and fld.value:
            fld.value = fld.value[:-1]

    def newline(self) -> None:
        fld = self.current_field()
        if self.screen == Screen.INPUT and fld is not None and fld.multiline:
            fld.value += "\n"

    # -----------------------------
    # Account switcher overlay
    # -----------------------------
    def open_account_switcher(self, names: Sequence[str], active: str) -> None:
        self.accounts = list(names)
        self.account_cursor = self.accounts.index(active) if active in self.accounts else 0
        self.account_switcher_visible = True
        self.status = "Switch account: Up/Down select, Enter confirm, Esc cancel"

    def close_account_switcher(self) -> None:
        self.account_switcher_visible = False

    def set_account(self, name: str, label: str) -> None:
        self.account_name = name
        self.account_label = label

    def reset_after_switch(self, name: str, label: str) -> None:
        self.set_account(name, label)
        self.account_switcher_visible = False
        self._clear_view()
        self.input_fields = []
        self.input_field_cursor = 0
        self.confirm_message = ''
        self.selected_action_index = 0
        self.screen = Screen.SERVICE_SELECT
        self.status = f"Switched to {label or name}"
