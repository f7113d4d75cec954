# gw_actions: the service x action catalogue and the dispatcher that runs it.
#
# Every action is an ActionSpec in CATALOG. An action either runs immediately
# (no fields) or collects its typed fields on the Input screen first. Handlers
# are plain functions run in an executor thread; they return an Outcome that
# the Dispatcher applies to the NavigationState on the event loop.

from __future__ import annotations

import asyncio
import datetime as dt
import enum
import json
import logging
import mimetypes
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import gw_resources as res
from gw_errors import ActionError, WorkspaceError
from gw_navigation import InputField, ListItem, NavigationState, Screen

logger = logging.getLogger('gw_console')


class Service(enum.Enum):
    GMAIL = "Gmail"
    CALENDAR = "Calendar"
    DRIVE = "Drive"
    SHEETS = "Sheets"
    DOCS = "Docs"
    SLIDES = "Slides"
    FORMS = "Forms"
    TASKS = "Tasks"
    PEOPLE = "Contacts"
    APPS_SCRIPT = "Apps Script"


# -----------------------------
# Field schema
# -----------------------------
FIELD_KINDS = ("text", "int", "float", "bool", "json", "csv")
_TRUE = {"true", "yes", "y", "1", "on"}
_FALSE = {"false", "no", "n", "0", "off"}


@dataclass(frozen=True)
class FieldSpec:
    label: str
    placeholder: str = ''
    required: bool = False
    multiline: bool = False
    kind: str = "text"
    default: object = None

    def to_input(self) -> InputField:
        return InputField(self.label, self.placeholder, self.required, self.multiline)

    def parse(self, raw: str):
        """Typed value for `raw`; empty input yields the field default."""
        text = (raw or '').strip()
        if not text:
            return self.default
        if self.kind == "text":
            return raw if self.multiline else text
        if self.kind == "int":
            try:
                return int(text)
            except ValueError:
                raise ActionError(f"{self.label} must be a number") from None
        if self.kind == "float":
            try:
                return float(text)
            except ValueError:
                raise ActionError(f"{self.label} must be a number") from None
        if self.kind == "bool":
            low = text.lower()
            if low in _TRUE:
                return True
            if low in _FALSE:
                return False
            raise ActionError(f"{self.label} must be true or false")
        if self.kind == "json":
            try:
                return json.loads(text)
            except ValueError as exc:
                raise ActionError(f"Invalid JSON in {self.label}: {exc}") from None
        if self.kind == "csv":
            return [part.strip() for part in text.split(',') if part.strip()]
        raise ActionError(f"Unknown field kind {self.kind!r}")


# -----------------------------
# Outcomes and actions
# -----------------------------
@dataclass
class Outcome:
    status: str = ''
    kind: str = "status"  # status | items | detail
    items: List[ListItem] = field(default_factory=list)
    detail: Optional[dict] = None
    next_page_token: Optional[str] = None
    loader: Optional[Callable[[str], "Outcome"]] = None


def _listing(items: List[ListItem], status: str = '', next_page_token: Optional[str] = None,
             loader: Optional[Callable[[str], Outcome]] = None) -> Outcome:
    return Outcome(status=status, kind="items", items=items, next_page_token=next_page_token or None, loader=loader)


def _single(doc: Optional[dict], status: str = '') -> Outcome:
    return Outcome(status=status, kind="detail", detail=doc if doc is not None else {})


def _done(status: str) -> Outcome:
    return Outcome(status=status)


@dataclass
class ActionContext:
    session: object
    page_size: int = 20
    script_timezone: str = "UTC"


@dataclass(frozen=True)
class ActionSpec:
    key: str
    title: str
    run: Callable[[ActionContext, tuple], Outcome]
    fields: Tuple[FieldSpec, ...] = ()
    open: Optional[Callable[[ActionContext, ListItem], Optional[dict]]] = None
    delete: Optional[Callable[[ActionContext, ListItem], object]] = None

    def parse(self, raw_values: Sequence[str]) -> tuple:
        return tuple(spec.parse(raw) for spec, raw in zip(self.fields, raw_values))


# -----------------------------
# Extraction helpers
# -----------------------------
def _str(doc, *path, default: str = '') -> str:
    cur = doc
    for key in path:
        if isinstance(cur, dict):
            cur = cur.get(key)
        elif isinstance(cur, list) and isinstance(key, int) and -len(cur) <= key < len(cur):
            cur = cur[key]
        else:
            return default
    if cur is None or cur == '':
        return default
    return str(cur)


def _items(doc, key: str) -> List[dict]:
    value = doc.get(key) if isinstance(doc, dict) else None
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit - 3] + "..."


def _token(doc) -> Optional[str]:
    return _str(doc, 'nextPageToken') or None


def _simple_items(docs: List[dict], id_key: str, title_key: str, subtitle_key: str,
                  title_default: str = '', subtitle_default: str = '') -> List[ListItem]:
    return [
        ListItem(_str(d, id_key), _str(d, title_key, default=title_default), _str(d, subtitle_key, default=subtitle_default), d)
        for d in docs
    ]


# -----------------------------
# Gmail
# -----------------------------
def _message_items(doc) -> List[ListItem]:
    out = []
    for m in _items(doc, 'messages'):
        mid = _str(m, 'id')
        out.append(ListItem(mid, f"Message {mid[:12]}", _truncate(_str(m, 'snippet'), 80), m))
    return out


def _gmail_messages(ctx: ActionContext, query: Optional[str], page_token: Optional[str] = None,
                    status: str = "{n} messages loaded") -> Outcome:
    doc = res.gmail_list_messages(ctx.session, query=query, max_results=ctx.page_size, page_token=page_token)
    items = _message_items(doc)
    return _listing(items, status.format(n=len(items)), _token(doc), lambda tok: _gmail_messages(ctx, query, tok, status))


def _gmail_inbox(ctx, values):
    return _gmail_messages(ctx, "in:inbox")


def _gmail_search(ctx, values):
    return _gmail_messages(ctx, values[0], status="{n} messages found")


def _gmail_compose(ctx, values):
    to, subject, cc, bcc, body = values
    res.gmail_send_message(ctx.session, res.build_raw_email(to, subject, body, cc, bcc))
    return _done("Email sent successfully!")


def _gmail_labels(ctx, values):
    labels = _items(res.gmail_list_labels(ctx.session), 'labels')
    items = _simple_items(labels, 'id', 'name', 'type', 'Unnamed', 'user')
    return _listing(items, f"{len(items)} labels")


def _gmail_drafts(ctx, values, page_token=None):
    doc = res.gmail_list_drafts(ctx.session, ctx.page_size, page_token)
    items = [ListItem(_str(d, 'id'), f"Draft {_str(d, 'id')}", "Draft message", d) for d in _items(doc, 'drafts')]
    return _listing(items, f"{len(items)} drafts", _token(doc), lambda tok: _gmail_drafts(ctx, values, tok))


def _gmail_threads(ctx, values, page_token=None):
    doc = res.gmail_list_threads(ctx.session, None, ctx.page_size, page_token)
    items = [
        ListItem(_str(t, 'id'), f"Thread {_str(t, 'id')}", _truncate(_str(t, 'snippet'), 80), t)
        for t in _items(doc, 'threads')
    ]
    return _listing(items, f"{len(items)} threads", _token(doc), lambda tok: _gmail_threads(ctx, values, tok))


def _gmail_filters(ctx, values):
    items = [ListItem(_str(f, 'id'), f"Filter {_str(f, 'id')}", "Gmail filter", f) for f in _items(res.gmail_list_filters(ctx.session), 'filter')]
    return _listing(items, f"{len(items)} filters")


def _gmail_settings(ctx, values):
    return _single(res.gmail_get_vacation_settings(ctx.session), "Vacation settings loaded")


def _gmail_forwarding(ctx, values):
    addrs = _items(res.gmail_list_forwarding_addresses(ctx.session), 'forwardingAddresses')
    items = _simple_items(addrs, 'forwardingEmail', 'forwardingEmail', 'verificationStatus')
    return _listing(items, f"{len(items)} forwarding addresses")


def _gmail_send_as(ctx, values):
    aliases = _items(res.gmail_list_send_as(ctx.session), 'sendAs')
    items = _simple_items(aliases, 'sendAsEmail', 'sendAsEmail', 'displayName')
    return _listing(items, f"{len(items)} send-as aliases")


def _gmail_delegates(ctx, values):
    delegates = _items(res.gmail_list_delegates(ctx.session), 'delegates')
    items = _simple_items(delegates, 'delegateEmail', 'delegateEmail', 'verificationStatus')
    return _listing(items, f"{len(items)} delegates")


def _gmail_unified_search(ctx, values):
    """Run one Gmail query against every account, then restore the original one."""
    query = values[0]
    session = ctx.session
    original = session.active_account_name()
    names = session.account_names()
    items: List[ListItem] = []
    errors: List[str] = []
    try:
        for name in names:
            if name != session.active_account_name():
                try:
                    session.switch_account(name)
                except WorkspaceError as exc:
                    errors.append(f"{name}: {exc}")
                    continue
            label = session.active_account_label() or name
            try:
                doc = res.gmail_list_messages(session, query=query, max_results=10)
            except WorkspaceError as exc:
                errors.append(f"{label}: {exc}")
                continue
            for m in _items(doc, 'messages'):
                mid = _str(m, 'id')
                meta = dict(m)
                meta['_account'] = name
                meta['_label'] = label
                items.append(ListItem(mid, f"[{label}] Message {mid[:10]}", _truncate(_str(m, 'snippet'), 60), meta))
    finally:
        if session.active_account_name() != original:
            try:
                session.switch_account(original)
            except WorkspaceError as exc:
                logger.error("Could not switch back to '%s' after unified search: %s", original, exc)
                errors.append(f"restore {original}: {exc}")
    status = f"{len(items)} results across {len(names)} accounts"
    if errors:
        logger.warning("Unified search errors: %s", "; ".join(errors))
        status += f" (errors: {', '.join(errors)})"
    return _listing(items, status)


def _open_message(ctx, item):
    return res.gmail_get_message(ctx.session, item.id, "full")


def _trash_message(ctx, item):
    return res.gmail_trash_message(ctx.session, item.id)


# -----------------------------
# Calendar
# -----------------------------
def _day_window(days: int) -> Tuple[str, str]:
    start = dt.datetime.now().astimezone().replace(hour=0, minute=0, second=0, microsecond=0)
    return start.isoformat(), (start + dt.timedelta(days=days)).isoformat()


def _event_items(doc, calendar_id: str) -> List[ListItem]:
    out = []
    for e in _items(doc, 'items'):
        meta = dict(e)
        meta.setdefault('calendarId', calendar_id)
        start = _str(e, 'start', 'dateTime') or _str(e, 'start', 'date') or "No date"
        out.append(ListItem(_str(e, 'id'), _str(e, 'summary', default="(No title)"), start, meta))
    return out


def _calendar_events(ctx, window: Optional[Tuple[str, str]], label: str, page_token: Optional[str] = None) -> Outcome:
    time_min, time_max = window if window else (None, None)
    doc = res.calendar_list_events(ctx.session, "primary", time_min, time_max, 50, page_token)
    items = _event_items(doc, "primary")
    return _listing(
        items, f"{len(items)} events{label}", _token(doc),
        lambda tok: _calendar_events(ctx, window, label, tok),
    )


def _calendar_today(ctx, values):
    return _calendar_events(ctx, _day_window(1), " today")


def _calendar_week(ctx, values):
    return _calendar_events(ctx, _day_window(7), " this week")


def _calendar_all(ctx, values):
    return _calendar_events(ctx, None, "")


def _calendar_quick_add(ctx, values):
    res.calendar_quick_add(ctx.session, "primary", values[0])
    return _done("Event created via quick add!")


def _calendar_list(ctx, values):
    cals = _items(res.calendar_list_calendars(ctx.session), 'items')
    items = _simple_items(cals, 'id', 'summary', 'accessRole', 'Unnamed')
    return _listing(items, f"{len(items)} calendars")


def _calendar_create(ctx, values):
    summary, start, end, location, description, attendees = values
    event: Dict[str, object] = {'summary': summary, 'start': {'dateTime': start}, 'end': {'dateTime': end}}
    if location:
        event['location'] = location
    if description:
        event['description'] = description
    if attendees:
        event['attendees'] = [{'email': email} for email in attendees]
    res.calendar_create_event(ctx.session, "primary", event)
    return _done("Event created!")


def _calendar_acl(ctx, values):
    rules = _items(res.calendar_list_acl(ctx.session, "primary"), 'items')
    items = [ListItem(_str(a, 'id'), _str(a, 'scope', 'value'), _str(a, 'role'), a) for a in rules]
    return _listing(items, f"{len(items)} ACL rules")


def _calendar_settings(ctx, values):
    return _single(res.calendar_list_settings(ctx.session), "Calendar settings loaded")


def _calendar_free_busy(ctx, values):
    calendar_id, time_min, time_max = values
    return _single(res.calendar_query_free_busy(ctx.session, calendar_id, time_min, time_max), "Free/busy loaded")


def _open_event(ctx, item):
    return res.calendar_get_event(ctx.session, _str(item.metadata, 'calendarId', default="primary"), item.id)


def _delete_event(ctx, item):
    return res.calendar_delete_event(ctx.session, _str(item.metadata, 'calendarId', default="primary"), item.id)


# -----------------------------
# Drive (and Drive-backed listings for the editors)
# -----------------------------
_MIME_TAGS = (
    ("folder", "[dir]"),
    ("spreadsheet", "[sheet]"),
    ("document", "[doc]"),
    ("presentation", "[slides]"),
    ("form", "[form]"),
    ("script", "[script]"),
    ("image", "[img]"),
    ("pdf", "[pdf]"),
)


def _mime_tag(mime: str) -> str:
    for needle, tag in _MIME_TAGS:
        if needle in mime:
            return tag
    return "[file]"


def _file_items(doc) -> List[ListItem]:
    return [
        ListItem(
            _str(f, 'id'),
            f"{_mime_tag(_str(f, 'mimeType'))} {_str(f, 'name', default='Unnamed')}",
            _str(f, 'modifiedTime'),
            f,
        )
        for f in _items(doc, 'files')
    ]


def _drive_files(ctx, query: Optional[str], order_by: Optional[str] = None, page_token: Optional[str] = None,
                 status: str = "{n} files") -> Outcome:
    doc = res.drive_list_files(ctx.session, query, ctx.page_size, page_token, order_by)
    items = _file_items(doc)
    return _listing(
        items, status.format(n=len(items)), _token(doc),
        lambda tok: _drive_files(ctx, query, order_by, tok, status),
    )


def _mime_listing(mime: str) -> Callable[[ActionContext, tuple], Outcome]:
    def run(ctx, values):
        return _drive_files(ctx, f"mimeType='{mime}' and trashed=false", "modifiedTime desc")
    return run


def _drive_my_files(ctx, values):
    return _drive_files(ctx, "'root' in parents and trashed=false", "modifiedTime desc")


def _drive_search(ctx, values):
    return _drive_files(ctx, values[0], status="{n} files found")


def _drive_upload(ctx, values):
    path, folder = values
    with open(path, 'rb') as f:
        content = f.read()
    name = os.path.basename(path) or "upload"
    mime = mimetypes.guess_type(path)[0] or "application/octet-stream"
    meta: Dict[str, object] = {'name': name}
    if folder and folder != "root":
        meta['parents'] = [folder]
    res.drive_upload_file(ctx.session, meta, content, mime)
    return _done(f"Uploaded {name}!")


def _drive_download(ctx, values):
    file_id, path = values
    content = res.drive_download_file(ctx.session, file_id)
    path = os.path.expanduser(path)
    with open(path, 'wb') as f:
        f.write(content)
    return _done(f"Downloaded {len(content)} bytes to {path}")


def _drive_create_folder(ctx, values):
    name, parent = values
    res.drive_create_folder(ctx.session, name, parent)
    return _done(f"Folder '{name}' created!")


def _drive_shared(ctx, values):
    return _drive_files(ctx, "sharedWithMe=true", "modifiedTime desc")


def _drive_recent(ctx, values):
    return _drive_files(ctx, "trashed=false", "viewedByMeTime desc")


def _drive_starred(ctx, values):
    return _drive_files(ctx, "starred=true and trashed=false")


def _drive_trash(ctx, values):
    return _drive_files(ctx, "trashed=true")


def _drive_storage(ctx, values):
    return _single(res.drive_get_about(ctx.session), "Drive storage info loaded")


def _drive_shared_drives(ctx, values):
    drives = _items(res.drive_list_shared_drives(ctx.session), 'drives')
    items = [ListItem(_str(d, 'id'), _str(d, 'name'), "Shared Drive", d) for d in drives]
    return _listing(items, f"{len(items)} shared drives")


def _open_file(ctx, item):
    return res.drive_get_file(ctx.session, item.id)


def _delete_file(ctx, item):
    return res.drive_delete_file(ctx.session, item.id)


# -----------------------------
# Sheets
# -----------------------------
def _require_rows(values, label: str) -> list:
    if not isinstance(values, list) or not all(isinstance(row, list) for row in values):
        raise ActionError(f"{label} must be a JSON array of rows, e.g. [[\"a\",\"b\"]]")
    return values


def _sheets_create(ctx, values):
    doc = res.sheets_create(ctx.session, values[0])
    return _done(f"Spreadsheet created: {_str(doc, 'spreadsheetId', default='unknown')}")


def _sheets_read(ctx, values):
    sheet_id, a1 = values
    return _single(res.sheets_get_values(ctx.session, sheet_id, a1), "Values loaded")


def _sheets_write(ctx, values):
    sheet_id, a1, rows = values
    res.sheets_update_values(ctx.session, sheet_id, a1, _require_rows(rows, "Values"))
    return _done("Values written!")


def _sheets_append(ctx, values):
    sheet_id, a1, rows = values
    res.sheets_append_values(ctx.session, sheet_id, a1, _require_rows(rows, "Values"))
    return _done("Data appended!")


def _sheets_add_sheet(ctx, values):
    sheet_id, title = values
    res.sheets_add_sheet(ctx.session, sheet_id, title)
    return _done(f"Sheet '{title}' added!")


def _sheets_named_range(ctx, values):
    spreadsheet_id, name, sheet_id, start_row, end_row, start_col, end_col = values
    res.sheets_create_named_range(ctx.session, spreadsheet_id, name, sheet_id, start_row, end_row, start_col, end_col)
    return _done("Named range created!")


def _sheets_sort(ctx, values):
    spreadsheet_id, sheet_id, sort_col, ascending = values
    res.sheets_sort_range(ctx.session, spreadsheet_id, sheet_id, 0, 1000, 0, 26, sort_col, ascending)
    return _done("Range sorted!")


def _open_spreadsheet(ctx, item):
    return res.sheets_get(ctx.session, item.id)


# -----------------------------
# Docs
# -----------------------------
def _docs_create(ctx, values):
    doc = res.docs_create(ctx.session, values[0])
    return _done(f"Document created: {_str(doc, 'documentId', default='unknown')}")


def _docs_insert_text(ctx, values):
    doc_id, text, index = values
    res.docs_insert_text(ctx.session, doc_id, text, index)
    return _done("Text inserted!")


def _docs_replace_text(ctx, values):
    doc_id, find, replace = values
    res.docs_replace_all_text(ctx.session, doc_id, find, replace)
    return _done("Text replaced!")


def _docs_format(ctx, values):
    doc_id, start, end, bold, italic, font_size = values
    if bold is None and italic is None and font_size is None:
        raise ActionError("Nothing to format: set bold, italic or font size")
    res.docs_update_text_style(ctx.session, doc_id, start, end, bold, italic, font_size)
    return _done("Formatting applied!")


def _docs_header_footer(ctx, values):
    doc_id, which = values
    which = which.lower()
    if which == "header":
        res.docs_create_header(ctx.session, doc_id)
        return _done("Header created!")
    if which == "footer":
        res.docs_create_footer(ctx.session, doc_id)
        return _done("Footer created!")
    raise ActionError("Type must be 'header' or 'footer'")


def _docs_table(ctx, values):
    doc_id, rows, cols, index = values
    res.docs_insert_table(ctx.session, doc_id, rows, cols, index)
    return _done("Table inserted!")


def _open_document(ctx, item):
    return res.docs_get(ctx.session, item.id)


# -----------------------------
# Slides
# -----------------------------
def _slides_create(ctx, values):
    doc = res.slides_create(ctx.session, values[0])
    return _done(f"Presentation created: {_str(doc, 'presentationId', default='unknown')}")


def _slides_add_slide(ctx, values):
    pres_id, layout, index = values
    res.slides_create_slide(ctx.session, pres_id, layout, index)
    return _done("Slide added!")


def _slides_edit_text(ctx, values):
    pres_id, find, replace = values
    res.slides_replace_all_text(ctx.session, pres_id, find, replace)
    return _done("Text replaced!")


def _slides_shape(ctx, values):
    pres_id, page_id, shape_type, x, y, width, height = values
    res.slides_create_shape(ctx.session, pres_id, page_id, shape_type, x, y, width, height)
    return _done("Shape created!")


def _slides_image(ctx, values):
    pres_id, page_id, url, x, y, width, height = values
    res.slides_create_image(ctx.session, pres_id, page_id, url, x, y, width, height)
    return _done("Image inserted!")


def _slides_table(ctx, values):
    pres_id, page_id, rows, cols = values
    res.slides_create_table(ctx.session, pres_id, page_id, rows, cols)
    return _done("Table created!")


def _slides_notes(ctx, values):
    pres_id, slide_id, text = values
    res.slides_create_speaker_notes(ctx.session, pres_id, slide_id, text)
    return _done("Speaker notes added!")


def _open_presentation(ctx, item):
    return res.slides_get(ctx.session, item.id)


# -----------------------------
# Forms
# -----------------------------
def _forms_create(ctx, values):
    doc = res.forms_create(ctx.session, values[0], values[1])
    return _done(f"Form created: {_str(doc, 'formId', default='unknown')}")


def _forms_add_question(ctx, values):
    form_id, title, kind, required, options = values
    kind = kind.lower()
    if kind not in res.QUESTION_KINDS:
        raise ActionError(f"Type must be one of: {'/'.join(res.QUESTION_KINDS)}")
    if kind == "choice" and not options:
        raise ActionError("Choice questions need at least one option")
    res.forms_add_question(ctx.session, form_id, title, kind, required, options or ())
    return _done("Question added!")


def _forms_responses(ctx, values):
    return _single(res.forms_list_responses(ctx.session, values[0], 50), "Responses loaded")


def _forms_watches(ctx, values):
    return _single(res.forms_list_watches(ctx.session, values[0]), "Watches loaded")


def _forms_settings(ctx, values):
    form_id, title, description = values
    if title is None and description is None:
        raise ActionError("Nothing to update: set a title or a description")
    res.forms_update_info(ctx.session, form_id, title, description)
    return _done("Form info updated!")


def _forms_grid(ctx, values):
    form_id, title, rows, cols = values
    res.forms_add_grid_question(ctx.session, form_id, title, rows, cols)
    return _done("Grid question added!")


def _open_form(ctx, item):
    return res.forms_get(ctx.session, item.id)


# -----------------------------
# Tasks
# -----------------------------
def _tasks_lists(ctx, values, page_token=None):
    doc = res.tasks_list_task_lists(ctx.session, ctx.page_size, page_token)
    items = _simple_items(_items(doc, 'items'), 'id', 'title', 'updated', 'Untitled')
    return _listing(items, f"{len(items)} task lists", _token(doc), lambda tok: _tasks_lists(ctx, values, tok))


def _task_items(doc, task_list_id: str) -> List[ListItem]:
    out = []
    for t in _items(doc, 'items'):
        mark = "[x]" if _str(t, 'status') == "completed" else "[ ]"
        meta = dict(t)
        meta['taskListId'] = task_list_id
        out.append(ListItem(_str(t, 'id'), f"{mark} {_str(t, 'title', default='Untitled')}", _str(t, 'due', default="No due date"), meta))
    return out


def _tasks_view(ctx, values, page_token=None):
    task_list_id = values[0]
    doc = res.tasks_list_tasks(ctx.session, task_list_id, 50, page_token)
    items = _task_items(doc, task_list_id)
    return _listing(items, f"{len(items)} tasks loaded", _token(doc), lambda tok: _tasks_view(ctx, values, tok))


def _tasks_create(ctx, values):
    list_id, title, notes, due = values
    res.tasks_create_task(ctx.session, list_id, title, notes, due)
    return _done("Task created!")


def _tasks_toggle(ctx, values):
    list_id, task_id, action = values
    if action.lower() == "complete":
        res.tasks_complete_task(ctx.session, list_id, task_id)
        return _done("Task completed!")
    res.tasks_uncomplete_task(ctx.session, list_id, task_id)
    return _done("Task uncompleted!")


def _tasks_move(ctx, values):
    list_id, task_id, parent, previous = values
    res.tasks_move_task(ctx.session, list_id, task_id, parent, previous)
    return _done("Task moved!")


def _tasks_clear(ctx, values):
    res.tasks_clear_completed(ctx.session, values[0])
    return _done("Completed tasks cleared!")


def _open_task(ctx, item):
    return res.tasks_get_task(ctx.session, _str(item.metadata, 'taskListId'), item.id)


def _delete_task(ctx, item):
    return res.tasks_delete_task(ctx.session, _str(item.metadata, 'taskListId'), item.id)


# -----------------------------
# People
# -----------------------------
def _person_item(person: dict, subtitle: Optional[str] = None) -> ListItem:
    name = _str(person, 'names', 0, 'displayName', default="Unnamed")
    sub = subtitle if subtitle is not None else _str(person, 'emailAddresses', 0, 'value')
    return ListItem(_str(person, 'resourceName'), name, sub, person)


def _people_contacts(ctx, values, page_token=None):
    doc = res.people_list_contacts(ctx.session, ctx.page_size, page_token)
    items = [_person_item(c) for c in _items(doc, 'connections')]
    return _listing(items, f"{len(items)} contacts loaded", _token(doc), lambda tok: _people_contacts(ctx, values, tok))


def _people_search(ctx, values):
    results = _items(res.people_search_contacts(ctx.session, values[0], 20), 'results')
    items = [_person_item(r['person'], "Search result") for r in results if isinstance(r.get('person'), dict)]
    return _listing(items, f"{len(items)} contacts found")


def _people_create(ctx, values):
    first, last, email, phone, org = values
    person: Dict[str, object] = {'names': [{'givenName': first, 'familyName': last}]}
    if email:
        person['emailAddresses'] = [{'value': email}]
    if phone:
        person['phoneNumbers'] = [{'value': phone}]
    if org:
        person['organizations'] = [{'name': org}]
    res.people_create_contact(ctx.session, person)
    return _done("Contact created!")


def _people_groups(ctx, values):
    groups = _items(res.people_list_contact_groups(ctx.session, 20), 'contactGroups')
    items = [
        ListItem(_str(g, 'resourceName'), _str(g, 'name', default="Unnamed"), f"{_str(g, 'memberCount', default='0')} members", g)
        for g in groups
    ]
    return _listing(items, f"{len(items)} groups")


def _people_other(ctx, values, page_token=None):
    doc = res.people_list_other_contacts(ctx.session, ctx.page_size, page_token)
    items = [_person_item(c, "Other contact") for c in _items(doc, 'otherContacts')]
    return _listing(items, f"{len(items)} other contacts", _token(doc), lambda tok: _people_other(ctx, values, tok))


def _people_directory(ctx, values):
    return _single(res.people_search_directory(ctx.session, values[0], 20), "Directory search results loaded")


def _open_person(ctx, item):
    return res.people_get_person(ctx.session, item.id)


def _delete_person(ctx, item):
    return res.people_delete_contact(ctx.session, item.id)


# -----------------------------
# Apps Script
# -----------------------------
def _script_create(ctx, values):
    doc = res.script_create_project(ctx.session, values[0], values[1])
    return _done(f"Project created: {_str(doc, 'scriptId', default='unknown')}")


def _script_edit(ctx, values):
    script_id, name, source = values
    files = [res.script_file(name, source), res.script_manifest(ctx.script_timezone)]
    res.script_update_content(ctx.session, script_id, files)
    return _done("Code updated!")


def _script_versions(ctx, values):
    return _single(res.script_list_versions(ctx.session, values[0], 20), "Versions loaded")


def _script_deployments(ctx, values):
    return _single(res.script_list_deployments(ctx.session, values[0], 20), "Deployments loaded")


def _script_run(ctx, values):
    script_id, function, params, dev_mode = values
    if params is not None and not isinstance(params, list):
        raise ActionError("Parameters must be a JSON array")
    result = res.script_run(ctx.session, script_id, function, params or None, bool(dev_mode))
    return _single(result, "Function executed!")


def _script_processes(ctx, values):
    return _single(res.script_list_processes(ctx.session, 20), "Processes loaded")


def _open_script(ctx, item):
    return res.script_get_project(ctx.session, item.id)


# -----------------------------
# Catalogue
# -----------------------------
def F(label, placeholder='', required=True, kind="text", default=None, multiline=False) -> FieldSpec:
    return FieldSpec(label, placeholder, required, multiline, kind, default)


_DOC_ID = F("Document ID", "paste doc ID")
_PRES_ID = F("Presentation ID", "paste ID")
_PAGE_ID = F("Page/Slide ID", "page ID")
_FORM_ID = F("Form ID", "paste form ID")
_LIST_ID = F("Task List ID", "paste task list ID")
_SCRIPT_ID = F("Script ID", "paste script ID")
_SHEET_ID = F("Spreadsheet ID", "paste spreadsheet ID")

CATALOG: Dict[Service, Tuple[ActionSpec, ...]] = {
    Service.GMAIL: (
        ActionSpec("gmail.inbox", "Inbox", _gmail_inbox, open=_open_message, delete=_trash_message),
        ActionSpec("gmail.search", "Search", _gmail_search, (F("Search Query", "from:someone@gmail.com"),),
                   open=_open_message, delete=_trash_message),
        ActionSpec("gmail.compose", "Compose", _gmail_compose, (
            F("To", "recipient@example.com"),
            F("Subject", "Email subject"),
            F("CC", "cc@example.com", required=False),
            F("BCC", "bcc@example.com", required=False),
            F("Body", "Type your message...", multiline=True),
        )),
        ActionSpec("gmail.labels", "Labels", _gmail_labels,
                   open=lambda ctx, item: res.gmail_get_label(ctx.session, item.id)),
        ActionSpec("gmail.drafts", "Drafts", _gmail_drafts,
                   open=lambda ctx, item: res.gmail_get_draft(ctx.session, item.id),
                   delete=lambda ctx, item: res.gmail_delete_draft(ctx.session, item.id)),
        ActionSpec("gmail.threads", "Threads", _gmail_threads,
                   open=lambda ctx, item: res.gmail_get_thread(ctx.session, item.id)),
        ActionSpec("gmail.filters", "Filters", _gmail_filters,
                   delete=lambda ctx, item: res.gmail_delete_filter(ctx.session, item.id)),
        ActionSpec("gmail.settings", "Settings", _gmail_settings),
        ActionSpec("gmail.forwarding", "Forwarding", _gmail_forwarding),
        ActionSpec("gmail.send_as", "Send-As", _gmail_send_as),
        ActionSpec("gmail.delegates", "Delegates", _gmail_delegates),
        ActionSpec("gmail.unified_search", "Unified Search", _gmail_unified_search,
                   (F("Search Query (all accounts)", "from:someone@gmail.com"),)),
    ),
    Service.CALENDAR: (
        ActionSpec("calendar.today", "Today", _calendar_today, open=_open_event, delete=_delete_event),
        ActionSpec("calendar.week", "Week View", _calendar_week, open=_open_event, delete=_delete_event),
        ActionSpec("calendar.events", "Events", _calendar_all, open=_open_event, delete=_delete_event),
        ActionSpec("calendar.quick_add", "Quick Add", _calendar_quick_add,
                   (F("Quick Add", "Meeting with Bob tomorrow at 3pm"),)),
        ActionSpec("calendar.calendars", "Calendars", _calendar_list),
        ActionSpec("calendar.create", "Create Event", _calendar_create, (
            F("Summary", "Meeting title"),
            F("Start (RFC3339)", "2026-01-15T10:00:00-05:00"),
            F("End (RFC3339)", "2026-01-15T11:00:00-05:00"),
            F("Location", "Conference Room", required=False),
            F("Description", "Event details", required=False),
            F("Attendees (comma-sep)", "a@b.com,c@d.com", required=False, kind="csv"),
        )),
        ActionSpec("calendar.acl", "ACL/Sharing", _calendar_acl),
        ActionSpec("calendar.settings", "Settings", _calendar_settings),
        ActionSpec("calendar.free_busy", "Free/Busy", _calendar_free_busy, (
            F("Calendar ID", "primary"),
            F("Start (RFC3339)", "2026-01-15T00:00:00Z"),
            F("End (RFC3339)", "2026-01-16T00:00:00Z"),
        )),
    ),
    Service.DRIVE: (
        ActionSpec("drive.my_files", "My Files", _drive_my_files, open=_open_file, delete=_delete_file),
        ActionSpec("drive.search", "Search", _drive_search, (F("Search Query", "name contains 'report'"),),
                   open=_open_file, delete=_delete_file),
        ActionSpec("drive.upload", "Upload", _drive_upload, (
            F("File Path", "/path/to/file.txt"),
            F("Folder ID (optional)", "root", required=False),
        )),
        ActionSpec("drive.download", "Download", _drive_download, (
            F("File ID", "paste file ID"),
            F("Save To", "/path/to/local-copy"),
        )),
        ActionSpec("drive.create_folder", "Create Folder", _drive_create_folder, (
            F("Folder Name", "New Folder"),
            F("Parent Folder ID", "root", required=False),
        )),
        ActionSpec("drive.shared", "Shared", _drive_shared, open=_open_file),
        ActionSpec("drive.recent", "Recent", _drive_recent, open=_open_file, delete=_delete_file),
        ActionSpec("drive.starred", "Starred", _drive_starred, open=_open_file, delete=_delete_file),
        ActionSpec("drive.trash", "Trash", _drive_trash, open=_open_file, delete=_delete_file),
        ActionSpec("drive.storage", "Storage Info", _drive_storage),
        ActionSpec("drive.shared_drives", "Shared Drives", _drive_shared_drives),
    ),
    Service.SHEETS: (
        ActionSpec("sheets.open", "Open Sheet", _mime_listing("application/vnd.google-apps.spreadsheet"),
                   open=_open_spreadsheet),
        ActionSpec("sheets.create", "Create Sheet", _sheets_create, (F("Spreadsheet Title", "New Spreadsheet"),)),
        ActionSpec("sheets.read", "Read Range", _sheets_read, (_SHEET_ID, F("Range", "Sheet1!A1:Z100"))),
        ActionSpec("sheets.write", "Write Range", _sheets_write, (
            _SHEET_ID,
            F("Range", "Sheet1!A1"),
            F("Values (JSON array)", '[["a","b"],["c","d"]]', kind="json", multiline=True),
        )),
        ActionSpec("sheets.append", "Append Data", _sheets_append, (
            _SHEET_ID,
            F("Range", "Sheet1!A1"),
            F("Values (JSON array)", '[["new","row"]]', kind="json", multiline=True),
        )),
        ActionSpec("sheets.manage", "Manage Sheets", _sheets_add_sheet, (_SHEET_ID, F("New Sheet Title", "Sheet2"))),
        ActionSpec("sheets.named_ranges", "Named Ranges", _sheets_named_range, (
            _SHEET_ID,
            F("Range Name", "MyRange"),
            F("Sheet ID (number)", "0", kind="int", default=0),
            F("Start Row", "0", kind="int", default=0),
            F("End Row", "10", kind="int", default=10),
            F("Start Col", "0", kind="int", default=0),
            F("End Col", "5", kind="int", default=5),
        )),
        ActionSpec("sheets.sort", "Sort", _sheets_sort, (
            _SHEET_ID,
            F("Sheet ID (number)", "0", kind="int", default=0),
            F("Sort Column Index", "0", kind="int", default=0),
            F("Ascending (true/false)", "true", kind="bool", default=True),
        )),
    ),
    Service.DOCS: (
        ActionSpec("docs.open", "Open Doc", _mime_listing("application/vnd.google-apps.document"), open=_open_document),
        ActionSpec("docs.create", "Create Doc", _docs_create, (F("Document Title", "New Document"),)),
        ActionSpec("docs.insert_text", "Insert Text", _docs_insert_text, (
            _DOC_ID,
            F("Text", "Hello, World!", multiline=True),
            F("Insert at index", "1", kind="int", default=1),
        )),
        ActionSpec("docs.replace_text", "Replace Text", _docs_replace_text, (
            _DOC_ID, F("Find", "old text"), F("Replace With", "new text"),
        )),
        ActionSpec("docs.format", "Formatting", _docs_format, (
            _DOC_ID,
            F("Start Index", "1", kind="int", default=1),
            F("End Index", "10", kind="int", default=10),
            F("Bold (true/false)", "true", required=False, kind="bool"),
            F("Italic (true/false)", "", required=False, kind="bool"),
            F("Font Size (pt)", "", required=False, kind="float"),
        )),
        ActionSpec("docs.header_footer", "Headers/Footers", _docs_header_footer, (
            _DOC_ID, F("Type (header/footer)", "header"),
        )),
        ActionSpec("docs.tables", "Tables", _docs_table, (
            _DOC_ID,
            F("Rows", "3", kind="int", default=3),
            F("Columns", "3", kind="int", default=3),
            F("Insert at index", "1", kind="int", default=1),
        )),
    ),
    Service.SLIDES: (
        ActionSpec("slides.open", "Open Presentation", _mime_listing("application/vnd.google-apps.presentation"),
                   open=_open_presentation),
        ActionSpec("slides.create", "Create Presentation", _slides_create, (F("Presentation Title", "New Presentation"),)),
        ActionSpec("slides.add_slide", "Add Slide", _slides_add_slide, (
            _PRES_ID,
            F("Layout", "BLANK", default="BLANK"),
            F("Insert at index (optional)", "", required=False, kind="int"),
        )),
        ActionSpec("slides.edit_text", "Edit Text", _slides_edit_text, (
            _PRES_ID, F("Find Text", "placeholder"), F("Replace With", "actual text"),
        )),
        ActionSpec("slides.shapes", "Shapes", _slides_shape, (
            _PRES_ID,
            _PAGE_ID,
            F("Shape Type", "TEXT_BOX"),
            F("X (pt)", "100", kind="float", default=100.0),
            F("Y (pt)", "100", kind="float", default=100.0),
            F("Width (pt)", "300", kind="float", default=300.0),
            F("Height (pt)", "100", kind="float", default=100.0),
        )),
        ActionSpec("slides.images", "Images", _slides_image, (
            _PRES_ID,
            _PAGE_ID,
            F("Image URL", "https://example.com/img.png"),
            F("X (pt)", "100", kind="float", default=100.0),
            F("Y (pt)", "100", kind="float", default=100.0),
            F("Width (pt)", "300", kind="float", default=300.0),
            F("Height (pt)", "200", kind="float", default=200.0),
        )),
        ActionSpec("slides.tables", "Tables", _slides_table, (
            _PRES_ID,
            _PAGE_ID,
            F("Rows", "3", kind="int", default=3),
            F("Columns", "3", kind="int", default=3),
        )),
        ActionSpec("slides.notes", "Notes", _slides_notes, (
            _PRES_ID,
            F("Slide ID", "slide object ID"),
            F("Notes Text", "Speaker notes here", multiline=True),
        )),
    ),
    Service.FORMS: (
        ActionSpec("forms.open", "Open Form", _mime_listing("application/vnd.google-apps.form"), open=_open_form),
        ActionSpec("forms.create", "Create Form", _forms_create, (
            F("Form Title", "New Form"), F("Document Title", "My Survey"),
        )),
        ActionSpec("forms.add_question", "Add Question", _forms_add_question, (
            _FORM_ID,
            F("Question Title", "Your question here"),
            F("Type (text/choice/scale/date/time)", "text", default="text"),
            F("Required (true/false)", "true", kind="bool", default=True),
            F("Options (comma-sep, for choice)", "Option A,Option B,Option C", required=False, kind="csv"),
        )),
        ActionSpec("forms.responses", "Responses", _forms_responses, (_FORM_ID,)),
        ActionSpec("forms.watches", "Watches", _forms_watches, (_FORM_ID,)),
        ActionSpec("forms.settings", "Settings", _forms_settings, (
            _FORM_ID, F("Title", required=False), F("Description", required=False),
        )),
        ActionSpec("forms.grid", "Grid Questions", _forms_grid, (
            _FORM_ID,
            F("Title", "Rate the following"),
            F("Rows (comma-sep)", "Quality,Speed,Price", kind="csv"),
            F("Columns (comma-sep)", "1,2,3,4,5", kind="csv"),
        )),
    ),
    Service.TASKS: (
        ActionSpec("tasks.lists", "Task Lists", _tasks_lists),
        ActionSpec("tasks.view", "View Tasks", _tasks_view, (_LIST_ID,), open=_open_task, delete=_delete_task),
        ActionSpec("tasks.create", "Create Task", _tasks_create, (
            _LIST_ID,
            F("Title", "Buy groceries"),
            F("Notes", "Milk, eggs, bread", required=False),
            F("Due (RFC3339)", "2026-01-20T00:00:00Z", required=False),
        )),
        ActionSpec("tasks.toggle", "Complete/Toggle", _tasks_toggle, (
            _LIST_ID, F("Task ID", "paste task ID"), F("Action (complete/uncomplete)", "complete"),
        )),
        ActionSpec("tasks.move", "Move Task", _tasks_move, (
            _LIST_ID,
            F("Task ID", "paste task ID"),
            F("Parent Task ID (optional)", required=False),
            F("Previous Task ID (optional)", required=False),
        )),
        ActionSpec("tasks.clear", "Clear Completed", _tasks_clear, (_LIST_ID,)),
    ),
    Service.PEOPLE: (
        ActionSpec("people.contacts", "Contacts", _people_contacts, open=_open_person, delete=_delete_person),
        ActionSpec("people.search", "Search", _people_search, (F("Search Query", "John"),),
                   open=_open_person, delete=_delete_person),
        ActionSpec("people.create", "Create Contact", _people_create, (
            F("First Name", "John"),
            F("Last Name", "Doe"),
            F("Email", "john@example.com", required=False),
            F("Phone", "+1-555-0100", required=False),
            F("Organization", "Acme Corp", required=False),
        )),
        ActionSpec("people.groups", "Groups", _people_groups),
        ActionSpec("people.other", "Other Contacts", _people_other),
        ActionSpec("people.directory", "Directory", _people_directory, (F("Search Query", "Jane"),)),
    ),
    Service.APPS_SCRIPT: (
        ActionSpec("script.projects", "Projects", _mime_listing("application/vnd.google-apps.script"), open=_open_script),
        ActionSpec("script.create", "Create Project", _script_create, (
            F("Project Title", "My Script"), F("Parent Doc ID (optional)", required=False),
        )),
        ActionSpec("script.edit", "Edit Code", _script_edit, (
            _SCRIPT_ID,
            F("File Name", "Code"),
            F("Source Code", "function main() { Logger.log('Hello'); }", multiline=True),
        )),
        ActionSpec("script.versions", "Versions", _script_versions, (_SCRIPT_ID,)),
        ActionSpec("script.deployments", "Deployments", _script_deployments, (_SCRIPT_ID,)),
        ActionSpec("script.run", "Run Function", _script_run, (
            _SCRIPT_ID,
            F("Function Name", "main"),
            F("Parameters (JSON array)", "[]", required=False, kind="json"),
            F("Dev Mode (true/false)", "true", required=False, kind="bool", default=False),
        )),
        ActionSpec("script.processes", "Processes", _script_processes),
    ),
}


def _check_catalog(catalog: Dict[Service, Tuple[ActionSpec, ...]]) -> None:
    seen = set()
    for service in Service:
        actions = catalog.get(service)
        if not actions:
            raise RuntimeError(f"No actions registered for {service.value}")
        for spec in actions:
            if spec.key in seen:
                raise RuntimeError(f"Duplicate action key {spec.key}")
            if not callable(spec.run):
                raise RuntimeError(f"Action {spec.key} has no handler")
            for fld in spec.fields:
                if fld.kind not in FIELD_KINDS:
                    raise RuntimeError(f"Action {spec.key}: unknown field kind {fld.kind!r}")
            seen.add(spec.key)


_check_catalog(CATALOG)


def navigation_catalog(catalog: Dict[Service, Tuple[ActionSpec, ...]] = CATALOG) -> List[Tuple[str, List[str]]]:
    return [(service.value, [spec.title for spec in actions]) for service, actions in catalog.items()]


# -----------------------------
# Dispatcher
# -----------------------------
class Dispatcher:
    """Runs catalogue actions against the session and shapes NavigationState.

    Every coroutine here is awaited from the UI loop one at a time; the
    blocking handler runs in the default executor and only the returned
    Outcome touches `nav`.
    """

    def __init__(self, session, nav: NavigationState, page_size: int = 20, script_timezone: str = "UTC",
                 catalog: Optional[Dict[Service, Tuple[ActionSpec, ...]]] = None):
        self.session = session
        self.nav = nav
        self.catalog = catalog or CATALOG
        self.services = list(self.catalog.keys())
        self._by_key = {spec.key: spec for specs in self.catalog.values() for spec in specs}
        self.ctx = ActionContext(session, page_size, script_timezone)

    def current_service(self) -> Service:
        return self.services[self.nav.selected_service_index]

    def current_action(self) -> Optional[ActionSpec]:
        actions = self.catalog[self.current_service()]
        if 0 <= self.nav.selected_action_index < len(actions):
            return actions[self.nav.selected_action_index]
        return None

    def view_action(self) -> Optional[ActionSpec]:
        """The action whose result is on screen, independent of the menu cursor."""
        return self._by_key.get(self.nav.view_action) if self.nav.view_action else None

    async def _call(self, fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: fn(*args))

    async def _run(self, fn, *args):
        """Run a blocking handler; errors become the status line. Returns (ok, result)."""
        self.nav.loading = True
        try:
            return True, await self._call(fn, *args)
        except (WorkspaceError, OSError) as exc:
            logger.warning("Action failed: %s", exc)
            self.nav.status = f"Error: {exc}"
        except Exception as exc:
            logger.exception("Unexpected error while running action")
            self.nav.status = f"Error: {exc}"
        finally:
            self.nav.loading = False
        return False, None

    def _apply(self, outcome: Outcome, spec: ActionSpec) -> None:
        nav = self.nav
        if outcome.kind == "items":
            nav.show_items(outcome.items, outcome.next_page_token, outcome.loader,
                           outcome.status or f"{len(outcome.items)} items")
            nav.view_action = spec.key
        elif outcome.kind == "detail":
            nav.show_detail(outcome.detail, outcome.status or "Loaded")
            nav.view_action = spec.key
        elif nav.screen == Screen.INPUT:
            nav.finish_input(outcome.status or "Done")
        else:
            nav.status = outcome.status

    def sync_account(self) -> None:
        self.nav.set_account(self.session.active_account_name(), self.session.active_account_label())

    # --- screen actions ---
    async def select_action(self) -> None:
        spec = self.current_action()
        if spec is None or self.nav.screen != Screen.ACTION_SELECT:
            return
        if spec.fields:
            self.nav.begin_input([f.to_input() for f in spec.fields])
            return
        ok, outcome = await self._run(spec.run, self.ctx, ())
        if ok:
            self._apply(outcome, spec)

    async def submit_input(self) -> bool:
        nav = self.nav
        spec = self.current_action()
        if spec is None or nav.screen != Screen.INPUT:
            return False
        if not nav.input_ready():
            return False
        try:
            values = spec.parse([f.value for f in nav.input_fields])
        except ActionError as exc:
            nav.status = f"Error: {exc}"
            return False
        ok, outcome = await self._run(spec.run, self.ctx, values)
        if ok:
            self._apply(outcome, spec)
        return ok

    async def open_item(self) -> None:
        nav = self.nav
        item = nav.current_item()
        if nav.screen != Screen.ACTION_VIEW or nav.detail is not None or item is None:
            return
        spec = self.view_action()
        if spec is None or spec.open is None:
            nav.open_detail(item.metadata)
            return
        ok, doc = await self._run(spec.open, self.ctx, item)
        if ok:
            nav.open_detail(doc)

    def request_delete(self) -> bool:
        nav = self.nav
        if nav.screen != Screen.ACTION_VIEW or nav.detail is not None or nav.current_item() is None:
            return False
        spec = self.view_action()
        if spec is None or spec.delete is None:
            nav.status = "Delete not supported for this view"
            return False
        return nav.request_delete()

    async def confirm_delete(self) -> None:
        nav = self.nav
        item = nav.current_item()
        spec = self.view_action()
        if nav.screen != Screen.CONFIRM or item is None or spec is None or spec.delete is None:
            nav.cancel_confirm()
            return
        ok, _ = await self._run(spec.delete, self.ctx, item)
        if ok:
            nav.remove_item(item.id)
            nav.finish_confirm("Deleted successfully")
        else:
            nav.finish_confirm(nav.status)

    async def load_more(self) -> None:
        nav = self.nav
        if nav.screen != Screen.ACTION_VIEW or nav.detail is not None:
            return
        token, loader = nav.next_page_token, nav.page_loader
        if not token or loader is None:
            nav.status = "No more results"
            return
        nav.status = "Loading next page..."
        ok, outcome = await self._run(loader, token)
        if ok:
            nav.append_items(outcome.items, outcome.next_page_token)
            nav.status = f"{len(nav.items)} items loaded" + (" (more available)" if nav.next_page_token else "")

    # --- accounts ---
    def open_account_switcher(self) -> None:
        self.nav.open_account_switcher(self.session.account_names(), self.session.active_account_name())

    async def switch_account(self) -> None:
        nav = self.nav
        name = nav.selected_account()
        if name is None:
            nav.close_account_switcher()
            return
        ok, _ = await self._run(self.session.switch_account, name)
        if ok:
            nav.reset_after_switch(name, self.session.active_account_label())
