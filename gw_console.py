#!/usr/bin/env python3
# gw_console.py
# Full-screen terminal console for Google Workspace with multiple accounts.
#
# Features
# - Ten services (Gmail, Calendar, Drive, Sheets, Docs, Slides, Forms, Tasks,
#   Contacts, Apps Script) driven from one service -> action menu.
# - Several named accounts in ~/.config/gw_console/accounts.yaml; Ctrl-A
#   switches the active one, Gmail "Unified Search" queries all of them.
# - Access tokens are refreshed automatically two minutes before expiry and
#   written back to the account store.
#
# Keys
# - Up/Down or k/j move, Enter selects, Esc or q goes back (q quits at the top)
# - d deletes the selected item (y/n to confirm), n loads the next page
# - On forms: Tab/Shift-Tab change field, Alt-Enter adds a newline, Enter submits
#
# Environment
# - GW_CONSOLE_ACCOUNTS (optional): path of the account store

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from typing import Callable, Dict, List, Optional, Tuple

import yaml
from prompt_toolkit import Application
from prompt_toolkit.filters import Condition
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import ConditionalContainer, Float, FloatContainer, HSplit, Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import Dimension
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Frame

from gw_accounts import CREDENTIAL_KEYS, DEFAULT_ACCOUNT, Account, AccountStore, Credentials, default_store_path
from gw_actions import Dispatcher, navigation_catalog
from gw_errors import ConfigError, WorkspaceError
from gw_navigation import NavigationState, Screen
from gw_session import DEFAULT_TIMEOUT, SessionManager

logger = logging.getLogger('gw_console')

CONFIG_DIR = os.path.expanduser("~/.config/gw_console")
DEFAULT_CONFIG_PATH = os.path.join(CONFIG_DIR, "config.yaml")
DEFAULT_LOG_PATH = os.path.join(CONFIG_DIR, "gw_console.log")
WELCOME = "Welcome! Select a service."
Fragments = List[Tuple[str, str]]


# -----------------------------
# Config
# -----------------------------
@dataclass
class Settings:
    page_size: int = 20
    request_timeout: float = DEFAULT_TIMEOUT
    script_timezone: str = "UTC"
    accounts_path: str = field(default_factory=default_store_path)
    log_file: str = DEFAULT_LOG_PATH


def load_config(path: str) -> Settings:
    if not os.path.exists(path):
        return Settings()
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError("Config: expected a mapping at the top level.")
    settings = Settings()
    try:
        settings.page_size = int(raw.get("page_size", settings.page_size))
    except (TypeError, ValueError):
        raise ValueError("Config: 'page_size' must be an integer.") from None
    if not 1 <= settings.page_size <= 500:
        raise ValueError("Config: 'page_size' must be between 1 and 500.")
    try:
        settings.request_timeout = float(raw.get("request_timeout", settings.request_timeout))
    except (TypeError, ValueError):
        raise ValueError("Config: 'request_timeout' must be a number of seconds.") from None
    if settings.request_timeout <= 0:
        raise ValueError("Config: 'request_timeout' must be positive.")
    tz = raw.get("script_timezone", settings.script_timezone)
    if not tz or not isinstance(tz, str):
        raise ValueError("Config: 'script_timezone' must be a timezone name, e.g. 'Europe/Prague'.")
    settings.script_timezone = tz
    if raw.get("accounts_path"):
        settings.accounts_path = os.path.expanduser(str(raw["accounts_path"]))
    if raw.get("log_file"):
        settings.log_file = os.path.expanduser(str(raw["log_file"]))
    return settings


def setup_logging(log_path: str, log_level: str = 'ERROR') -> logging.Logger:
    """Attach a rotating file handler to the 'gw_console' logger.

    The logger itself stays at DEBUG; the handler level follows --log-level.
    Never logs to the terminal, which belongs to the UI.
    """
    log = logging.getLogger('gw_console')
    for h in list(log.handlers):
        log.removeHandler(h)
        h.close()
    log.setLevel(logging.DEBUG)
    log.propagate = False
    os.makedirs(os.path.dirname(os.path.abspath(log_path)), exist_ok=True)
    fh = RotatingFileHandler(log_path, maxBytes=2000000, backupCount=2, encoding='utf-8')
    lvl = getattr(logging, str(log_level).upper(), logging.ERROR)
    if not isinstance(lvl, int):
        lvl = logging.ERROR
    fh.setLevel(lvl)
    fh.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(message)s'))
    log.addHandler(fh)
    return log


# -----------------------------
# Rendering
# -----------------------------
STYLE = {
    'header': 'bg:#1a73e8 #ffffff bold',
    'account': 'bg:#1a73e8 #ffeb3b',
    'loading': 'bg:#1a73e8 #ffffff italic',
    'title': '#1a73e8 bold',
    'selected': 'reverse',
    'subtitle': '#888888',
    'placeholder': '#666666 italic',
    'required': '#e53935',
    'field-active': '#ffeb3b bold',
    'status': '',
    'error': '#e53935 bold',
    'hint': '#888888',
    'detail': '',
    'active-account': '#34a853 bold',
}


def _line(frags: Fragments, style: str, text: str) -> None:
    frags.append((style, text))
    frags.append(('', '\n'))


def render_header(nav: NavigationState) -> Fragments:
    frags: Fragments = [('class:header', ' Google Workspace Console ')]
    if nav.account_name:
        frags.append(('class:account', f" {nav.account_label or nav.account_name} ({nav.account_name}) "))
    if nav.screen != Screen.SERVICE_SELECT:
        crumb = nav.service_names()[nav.selected_service_index]
        if nav.screen != Screen.ACTION_SELECT:
            crumb += f" > {nav.action_titles()[nav.selected_action_index]}"
        frags.append(('class:header', f" {crumb} "))
    if nav.loading:
        frags.append(('class:loading', ' Loading... '))
    return frags


def _render_menu(frags: Fragments, title: str, entries: List[str], cursor: int) -> None:
    _line(frags, 'class:title', title)
    _line(frags, '', '')
    for i, text in enumerate(entries):
        if i == cursor:
            _line(frags, 'class:selected', f" > {text} ")
        else:
            _line(frags, '', f"   {text}")


def _render_detail(frags: Fragments, nav: NavigationState) -> None:
    lines = json.dumps(nav.detail, indent=2, ensure_ascii=False, default=str).splitlines() or ['{}']
    start = min(nav.scroll_offset, len(lines) - 1)
    for text in lines[start:]:
        _line(frags, 'class:detail', text)


def _render_items(frags: Fragments, nav: NavigationState) -> None:
    if not nav.items:
        _line(frags, 'class:hint', "(no results)")
        return
    for i, item in enumerate(nav.items):
        style = 'class:selected' if i == nav.item_cursor else ''
        marker = '>' if i == nav.item_cursor else ' '
        frags.append((style, f" {marker} {item.title}"))
        if item.subtitle:
            frags.append(('class:subtitle', f"  {item.subtitle}"))
        frags.append(('', '\n'))
    if nav.next_page_token:
        _line(frags, 'class:hint', "   ... more results, press n to load")


def _render_input(frags: Fragments, nav: NavigationState) -> None:
    for i, fld in enumerate(nav.input_fields):
        active = i == nav.input_field_cursor
        frags.append(('class:field-active' if active else '', f"{'>' if active else ' '} {fld.label}"))
        if fld.required:
            frags.append(('class:required', '*'))
        frags.append(('', ': '))
        if fld.value:
            lines = fld.value.split('\n')
            frags.append(('', lines[0]))
            for extra in lines[1:]:
                frags.append(('', '\n    ' + extra))
        else:
            frags.append(('class:placeholder', fld.placeholder))
        if active:
            frags.append(('class:field-active', '_'))
        frags.append(('', '\n'))
    frags.append(('', '\n'))
    _line(frags, 'class:hint', "Fields marked * are required.")


def render_body(nav: NavigationState) -> Fragments:
    frags: Fragments = []
    services = nav.service_names()
    if nav.screen == Screen.SERVICE_SELECT:
        _render_menu(frags, "Services", services, nav.selected_service_index)
    elif nav.screen == Screen.ACTION_SELECT:
        _render_menu(frags, f"{services[nav.selected_service_index]} actions", nav.action_titles(), nav.selected_action_index)
    elif nav.screen == Screen.INPUT:
        title = nav.action_titles()[nav.selected_action_index]
        _line(frags, 'class:title', f"{services[nav.selected_service_index]} / {title}")
        _line(frags, '', '')
        _render_input(frags, nav)
    elif nav.detail is not None:
        _render_detail(frags, nav)
    else:
        _render_items(frags, nav)
    return frags


_HINTS = {
    Screen.SERVICE_SELECT: "Enter: open  Ctrl-A: accounts  q: quit",
    Screen.ACTION_SELECT: "Enter: run  Ctrl-A: accounts  Esc: back",
    Screen.ACTION_VIEW: "Enter: open  d: delete  n: more  Esc: back",
    Screen.INPUT: "Tab: next field  Alt-Enter: newline  Enter: submit  Esc: cancel",
    Screen.CONFIRM: "y: confirm  n: cancel",
}


def render_status(nav: NavigationState) -> Fragments:
    style = 'class:error' if nav.status.startswith("Error") else 'class:status'
    hint = "Up/Down: scroll  Esc: back" if nav.screen == Screen.ACTION_VIEW and nav.detail is not None else _HINTS[nav.screen]
    if nav.account_switcher_visible:
        hint = "Enter: switch  Esc: cancel"
    return [(style, f" {nav.status}"), ('', '\n'), ('class:hint', f" {hint}")]


def render_switcher(nav: NavigationState, labels: Dict[str, str]) -> Fragments:
    frags: Fragments = []
    for i, name in enumerate(nav.accounts):
        active = '*' if name == nav.account_name else ' '
        text = f" {active} {labels.get(name) or name} ({name}) "
        if i == nav.account_cursor:
            _line(frags, 'class:selected', text)
        else:
            _line(frags, 'class:active-account' if active == '*' else '', text)
    return frags


def render_confirm(nav: NavigationState) -> Fragments:
    return [('class:error', f" {nav.confirm_message} ")]


# -----------------------------
# Controller
# -----------------------------
class Console:
    """Key handlers, one method per key, independent of prompt_toolkit.

    The async handlers are scheduled as background tasks by the key bindings;
    while a request is in flight (`nav.loading`) they do nothing.
    """

    def __init__(self, dispatcher: Dispatcher):
        self.dispatcher = dispatcher
        self.nav = dispatcher.nav

    @property
    def busy(self) -> bool:
        return self.nav.loading

    def on_up(self) -> None:
        if not self.busy:
            self.nav.move_up()

    def on_down(self) -> None:
        if not self.busy:
            self.nav.move_down()

    async def on_enter(self) -> None:
        nav = self.nav
        if self.busy:
            return
        if nav.account_switcher_visible:
            await self.dispatcher.switch_account()
        elif nav.screen == Screen.SERVICE_SELECT:
            nav.select_service()
        elif nav.screen == Screen.ACTION_SELECT:
            await self.dispatcher.select_action()
        elif nav.screen == Screen.ACTION_VIEW:
            await self.dispatcher.open_item()
        elif nav.screen == Screen.INPUT:
            await self.dispatcher.submit_input()

    def on_back(self) -> bool:
        """Returns True when the console should exit."""
        if self.nav.account_switcher_visible:
            self.nav.close_account_switcher()
            self.nav.status = "Account switch cancelled"
            return False
        if self.busy and self.nav.screen != Screen.SERVICE_SELECT:
            return False
        self.nav.go_back()
        return self.nav.should_quit

    def on_delete(self) -> None:
        if not self.busy:
            self.dispatcher.request_delete()

    async def on_next_page(self) -> None:
        if not self.busy:
            await self.dispatcher.load_more()

    def on_toggle_accounts(self) -> None:
        if self.nav.screen == Screen.INPUT or self.busy:
            return
        if self.nav.account_switcher_visible:
            self.nav.close_account_switcher()
        else:
            self.dispatcher.open_account_switcher()

    async def on_confirm(self, yes: bool) -> None:
        if self.busy or self.nav.screen != Screen.CONFIRM:
            return
        if yes:
            await self.dispatcher.confirm_delete()
        else:
            self.nav.cancel_confirm()

    def on_char(self, ch: str) -> None:
        if ch and ch not in ('\r', '\n') and not self.busy:
            self.nav.type_text(ch)

    def on_backspace(self) -> None:
        if not self.busy:
            self.nav.backspace()

    def on_tab(self) -> None:
        if not self.busy:
            self.nav.next_field()

    def on_backtab(self) -> None:
        if not self.busy:
            self.nav.prev_field()

    def on_newline(self) -> None:
        if not self.busy:
            self.nav.newline()


def build_key_bindings(console: Console, spawn: Callable, exit_app: Callable[[], None]) -> KeyBindings:
    nav = console.nav
    kb = KeyBindings()

    is_switcher = Condition(lambda: nav.account_switcher_visible)
    is_input = Condition(lambda: nav.screen == Screen.INPUT and not nav.account_switcher_visible)
    is_confirm = Condition(lambda: nav.screen == Screen.CONFIRM and not nav.account_switcher_visible)
    is_browse = Condition(lambda: nav.screen not in (Screen.INPUT, Screen.CONFIRM) and not nav.account_switcher_visible)

    @kb.add('up')
    @kb.add('k', filter=is_browse | is_switcher)
    def _(event):
        console.on_up()

    @kb.add('down')
    @kb.add('j', filter=is_browse | is_switcher)
    def _(event):
        console.on_down()

    @kb.add('enter')
    def _(event):
        spawn(console.on_enter())

    @kb.add('escape')
    @kb.add('q', filter=is_browse | is_switcher)
    def _(event):
        if console.on_back():
            exit_app()

    @kb.add('c-c')
    def _(event):
        exit_app()

    @kb.add('c-a', filter=~is_input)
    def _(event):
        console.on_toggle_accounts()

    @kb.add('d', filter=is_browse)
    def _(event):
        console.on_delete()

    @kb.add('n', filter=is_browse)
    def _(event):
        spawn(console.on_next_page())

    @kb.add('y', filter=is_confirm)
    def _(event):
        spawn(console.on_confirm(True))

    @kb.add('n', filter=is_confirm)
    def _(event):
        spawn(console.on_confirm(False))

    @kb.add('tab', filter=is_input)
    def _(event):
        console.on_tab()

    @kb.add('s-tab', filter=is_input)
    def _(event):
        console.on_backtab()

    @kb.add('escape', 'enter', filter=is_input)
    def _(event):
        console.on_newline()

    @kb.add('backspace', filter=is_input)
    def _(event):
        console.on_backspace()

    @kb.add(Keys.Any, filter=is_input)
    def _(event):
        console.on_char(event.data or '')

    return kb


def run_ui(session: SessionManager, settings: Settings) -> None:
    nav = NavigationState(catalog=navigation_catalog(), status=WELCOME)
    dispatcher = Dispatcher(session, nav, settings.page_size, settings.script_timezone)
    dispatcher.sync_account()
    console = Console(dispatcher)

    header_window = Window(height=1, content=FormattedTextControl(lambda: render_header(nav)), style='class:header')
    body_window = Window(content=FormattedTextControl(lambda: render_body(nav)), wrap_lines=False, always_hide_cursor=True)
    status_window = Window(height=2, content=FormattedTextControl(lambda: render_status(nav)))
    root_content = HSplit([
        header_window,
        Window(height=1, char='─'),
        body_window,
        Window(height=1, char='─'),
        status_window,
    ])

    switcher = ConditionalContainer(
        Frame(
            body=Window(
                content=FormattedTextControl(lambda: render_switcher(nav, session.account_labels())),
                width=Dimension(min=30, preferred=50), always_hide_cursor=True,
            ),
            title="Switch account",
        ),
        filter=Condition(lambda: nav.account_switcher_visible),
    )
    confirm = ConditionalContainer(
        Frame(body=Window(content=FormattedTextControl(lambda: render_confirm(nav)), height=1), title="Confirm"),
        filter=Condition(lambda: nav.screen == Screen.CONFIRM),
    )
    container = FloatContainer(content=root_content, floats=[Float(content=switcher), Float(content=confirm)])

    app: Application = None  # type: ignore[assignment]

    def spawn(coro) -> None:
        async def _wrapped():
            try:
                await coro
            finally:
                app.invalidate()
        app.create_background_task(_wrapped())
        app.invalidate()

    def exit_app() -> None:
        logger.info("Console closed")
        app.exit()

    kb = build_key_bindings(console, spawn, exit_app)
    app = Application(layout=Layout(container), key_bindings=kb, full_screen=True, style=Style.from_dict(STYLE))
    logger.info("Console started for account '%s'", nav.account_name)
    app.run()


# -----------------------------
# Account setup and management
# -----------------------------
def normalize_account_name(raw: str) -> str:
    return raw.strip().lower().replace(' ', '-')


def prompt_account(input_fn: Callable[[str], str] = input) -> Account:
    name = normalize_account_name(input_fn(f"Account name [{DEFAULT_ACCOUNT}]: ")) or DEFAULT_ACCOUNT
    label = input_fn(f"Display label [{name}]: ").strip() or name
    values = {key: input_fn(f"{key}: ").strip() for key in CREDENTIAL_KEYS}
    missing = [key for key, value in values.items() if not value]
    if missing:
        raise ConfigError(f"Missing credential values: {', '.join(missing)}")
    # Expiry "now" forces a refresh on first use
    return Account(name, label, Credentials(**values))


def setup_account_flow(path: str, input_fn: Callable[[str], str] = input, out: Callable[[str], None] = print) -> AccountStore:
    """Interactive first-run (or --setup) flow: add one account and save."""
    store = AccountStore.load(path) if os.path.exists(path) else AccountStore(path)
    out("Google Workspace account setup")
    out("Paste the OAuth client and tokens for the account.")
    account = prompt_account(input_fn)
    if account.name in store.accounts:
        out(f"Replacing existing account '{account.name}'")
    store.add(account.name, account)
    store.save()
    logger.info("Account '%s' saved to %s", account.name, path)
    out(f"Saved account '{account.name}' to {path}")
    return store


def _print_accounts(store: AccountStore, out: Callable[[str], None]) -> None:
    for name in store.names():
        marker = '*' if name == store.active_account else ' '
        out(f" {marker} {name}  ({store.accounts[name].label})")


def manage_accounts_menu(store: AccountStore, input_fn: Callable[[str], str] = input,
                         out: Callable[[str], None] = print) -> AccountStore:
    while True:
        out("")
        out("Accounts:")
        _print_accounts(store, out)
        choice = input_fn("[a]dd  [r]emove  [l]abel  [s]et active  [q]uit: ").strip().lower()
        if choice in ('q', ''):
            return store
        if choice == 'a':
            account = prompt_account(input_fn)
            store.add(account.name, account)
            store.save()
            out(f"Added '{account.name}'")
            continue
        if choice not in ('r', 'l', 's'):
            out(f"Unknown choice '{choice}'")
            continue
        name = normalize_account_name(input_fn("Account name: "))
        if name not in store.accounts:
            out(f"No account named '{name}'")
            continue
        if choice == 'r':
            if len(store.accounts) == 1:
                out("Cannot remove the only account")
                continue
            store.remove(name)
            out(f"Removed '{name}'")
        elif choice == 'l':
            label = input_fn("New label: ").strip()
            if not label:
                out("Label unchanged")
                continue
            store.set_label(name, label)
            out(f"Label for '{name}' set to '{label}'")
        else:
            store.switch(name)
            out(f"Active account is now '{name}'")
        store.save()


# -----------------------------
# CLI
# -----------------------------
def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Multi-account Google Workspace terminal console")
    ap.add_argument("--accounts", help="Path to the account store (default ~/.config/gw_console/accounts.yaml)")
    ap.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to YAML settings (optional file)")
    ap.add_argument("--log-level", default="ERROR", help="File log level (DEBUG, INFO, WARNING, ERROR)")
    ap.add_argument("--setup", action="store_true", help="Add an account interactively, then start")
    ap.add_argument("--manage", action="store_true", help="Add, remove, relabel or activate accounts, then start")
    ap.add_argument("--list-accounts", action="store_true", help="Print the configured accounts and exit")
    args = ap.parse_args(argv)

    try:
        settings = load_config(os.path.expanduser(args.config))
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Config error: {e}", file=sys.stderr)
        sys.exit(1)
    setup_logging(settings.log_file, args.log_level)
    path = os.path.expanduser(args.accounts) if args.accounts else settings.accounts_path

    try:
        if args.setup:
            setup_account_flow(path)
        elif not os.path.exists(path):
            print("No accounts configured yet.")
            setup_account_flow(path)
        store = AccountStore.load(path)
        if args.list_accounts:
            _print_accounts(store, print)
            return
        if args.manage:
            manage_accounts_menu(store)
        if not store.validate_active():
            print(f"Active account '{store.active_account}' is missing or has incomplete credentials; "
                  "run with --setup or --manage.", file=sys.stderr)
            sys.exit(1)
        session = SessionManager(store, timeout=settings.request_timeout)
    except WorkspaceError as e:
        logger.error("Startup failed: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (EOFError, KeyboardInterrupt):
        print("\nAborted.", file=sys.stderr)
        sys.exit(1)

    run_ui(session, settings)


if __name__ == "__main__":
    main()
