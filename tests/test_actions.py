import asyncio

import pytest

import gw_actions
import gw_resources as res
from gw_actions import CATALOG, ActionSpec, Dispatcher, FieldSpec, Service, navigation_catalog
from gw_errors import ActionError, StorageError
from gw_navigation import REQUIRED_FIELDS_MESSAGE, NavigationState, Screen


def _dispatcher(session, service, key, page_size=2):
    nav = NavigationState(catalog=navigation_catalog())
    d = Dispatcher(session, nav, page_size=page_size)
    d.sync_account()
    nav.selected_service_index = d.services.index(service)
    nav.select_service()
    nav.selected_action_index = [spec.key for spec in CATALOG[service]].index(key)
    return d


def _fill(nav, *values):
    for fld, value in zip(nav.input_fields, values):
        fld.value = value


def _run(coro):
    return asyncio.run(coro)


def _gmail_pages(response):
    pages = {
        None: {'messages': [{'id': 'abcdefghijklmnop', 'snippet': 'x' * 90}, {'id': 'm2', 'snippet': 'short'}],
               'nextPageToken': 'p2'},
        'p2': {'messages': [{'id': 'm3', 'snippet': 'third'}]},
    }

    def handler(method, url, kwargs):
        if url == f"{res.GMAIL}/messages":
            return response(200, pages[(kwargs['params'] or {}).get('pageToken')])
        if url.endswith('/trash'):
            return response(200, {'id': 'trashed'})
        return response(200, {'id': url.rsplit('/', 1)[-1]})
    return handler


# -----------------------------
# Listings and pagination
# -----------------------------
def test_inbox_lists_first_page(session, fake_http, response):
    fake_http.handler = _gmail_pages(response)
    d = _dispatcher(session, Service.GMAIL, 'gmail.inbox')
    _run(d.select_action())
    nav = d.nav
    assert nav.screen == Screen.ACTION_VIEW
    assert nav.status == "2 messages loaded"
    first = nav.items[0]
    assert first.title == "Message abcdefghijkl"
    assert first.subtitle == 'x' * 77 + '...'
    assert nav.next_page_token == 'p2'
    params = fake_http.calls[0][2]['params']
    assert params == {'maxResults': 2, 'q': 'in:inbox'}
    assert not nav.loading


def test_load_more_appends_then_rerun_starts_over(session, fake_http, response):
    fake_http.handler = _gmail_pages(response)
    d = _dispatcher(session, Service.GMAIL, 'gmail.inbox')
    nav = d.nav
    _run(d.select_action())
    _run(d.load_more())
    assert [it.id for it in nav.items] == ['abcdefghijklmnop', 'm2', 'm3']
    assert nav.next_page_token is None
    assert nav.page_loader is None
    assert nav.status == "3 items loaded"
    _run(d.load_more())
    assert nav.status == "No more results"

    nav.go_back()
    _run(d.select_action())
    assert [it.id for it in nav.items] == ['abcdefghijklmnop', 'm2']
    assert nav.next_page_token == 'p2'


def test_singleton_result_shows_detail(session, fake_http, response):
    fake_http.responses = [response(200, {'enableAutoReply': False})]
    d = _dispatcher(session, Service.GMAIL, 'gmail.settings')
    _run(d.select_action())
    assert d.nav.screen == Screen.ACTION_VIEW
    assert d.nav.detail == {'enableAutoReply': False}
    assert d.nav.items == []
    assert d.nav.status == "Vacation settings loaded"


# -----------------------------
# Input flows
# -----------------------------
def test_compose_requires_fields_before_sending(session, fake_http):
    d = _dispatcher(session, Service.GMAIL, 'gmail.compose')
    nav = d.nav
    _run(d.select_action())
    assert nav.screen == Screen.INPUT
    assert [f.label for f in nav.input_fields] == ["To", "Subject", "CC", "BCC", "Body"]
    assert [f.required for f in nav.input_fields] == [True, True, False, False, True]
    assert nav.input_fields[4].multiline

    _fill(nav, "a@example.com", "Hi")
    assert _run(d.submit_input()) is False
    assert fake_http.calls == []
    assert nav.screen == Screen.INPUT
    assert nav.status == REQUIRED_FIELDS_MESSAGE


def test_compose_sends_and_returns_to_actions(session, fake_http, response):
    fake_http.responses = [response(200, {'id': 'sent'})]
    d = _dispatcher(session, Service.GMAIL, 'gmail.compose')
    nav = d.nav
    _run(d.select_action())
    _fill(nav, "a@example.com", "Hi", "", "", "line one\nline two")
    assert _run(d.submit_input()) is True
    method, url, kwargs = fake_http.calls[0]
    assert (method, url) == ('POST', f"{res.GMAIL}/messages/send")
    assert kwargs['json']['raw'] == res.build_raw_email("a@example.com", "Hi", "line one\nline two")
    assert nav.screen == Screen.ACTION_SELECT
    assert nav.status == "Email sent successfully!"
    assert nav.input_fields == []


def test_search_from_input_shows_results(session, fake_http, response):
    fake_http.responses = [response(200, {'messages': [{'id': 'm1'}]})]
    d = _dispatcher(session, Service.GMAIL, 'gmail.search')
    _run(d.select_action())
    _fill(d.nav, "from:boss")
    _run(d.submit_input())
    assert d.nav.screen == Screen.ACTION_VIEW
    assert d.nav.status == "1 messages found"
    assert fake_http.calls[0][2]['params']['q'] == "from:boss"


def test_api_error_keeps_screen_and_reports(session, fake_http, response):
    fake_http.responses = [response(500, text='backend error')]
    d = _dispatcher(session, Service.GMAIL, 'gmail.search')
    _run(d.select_action())
    _fill(d.nav, "anything")
    assert _run(d.submit_input()) is False
    assert d.nav.screen == Screen.INPUT
    assert d.nav.status == "Error: API error (500): backend error"
    assert d.nav.input_fields[0].value == "anything"
    assert not d.nav.loading


def test_bad_json_field_is_rejected_before_any_request(session, fake_http):
    d = _dispatcher(session, Service.SHEETS, 'sheets.write')
    _run(d.select_action())
    _fill(d.nav, "sheet-1", "Sheet1!A1", "[[1, 2]")
    _run(d.submit_input())
    assert fake_http.calls == []
    assert d.nav.screen == Screen.INPUT
    assert d.nav.status.startswith("Error: Invalid JSON in Values (JSON array)")


def test_write_range_requires_rows(session, fake_http):
    d = _dispatcher(session, Service.SHEETS, 'sheets.write')
    _run(d.select_action())
    _fill(d.nav, "sheet-1", "Sheet1!A1", '{"a": 1}')
    _run(d.submit_input())
    assert fake_http.calls == []
    assert d.nav.status.startswith("Error: Values must be a JSON array of rows")


def test_docs_format_needs_a_style(session, fake_http):
    d = _dispatcher(session, Service.DOCS, 'docs.format')
    _run(d.select_action())
    _fill(d.nav, "doc-1", "1", "10", "", "", "")
    _run(d.submit_input())
    assert fake_http.calls == []
    assert d.nav.status == "Error: Nothing to format: set bold, italic or font size"


def test_named_range_uses_numeric_defaults(session, fake_http, response):
    fake_http.responses = [response(200, {})]
    d = _dispatcher(session, Service.SHEETS, 'sheets.named_ranges')
    _run(d.select_action())
    _fill(d.nav, "sheet-1", "Totals", "0")
    _run(d.submit_input())
    body = fake_http.calls[0][2]['json']
    rng = body['requests'][0]['addNamedRange']['namedRange']['range']
    assert rng == {'sheetId': 0, 'startRowIndex': 0, 'endRowIndex': 10, 'startColumnIndex': 0, 'endColumnIndex': 5}
    assert d.nav.status == "Named range created!"


def test_drive_upload_reads_file_and_sets_parent(session, fake_http, response, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_bytes(b"hello drive")
    fake_http.responses = [response(200, {'id': 'f1'})]
    d = _dispatcher(session, Service.DRIVE, 'drive.upload')
    _run(d.select_action())
    _fill(d.nav, str(path), "folder-9")
    _run(d.submit_input())
    method, url, kwargs = fake_http.calls[0]
    assert url == res.DRIVE_UPLOAD
    assert b'"parents": ["folder-9"]' in kwargs['data']
    assert b'Content-Type: text/plain' in kwargs['data']
    assert b'hello drive' in kwargs['data']
    assert d.nav.status == "Uploaded notes.txt!"


def test_drive_upload_missing_file_reports_error(session, fake_http, tmp_path):
    d = _dispatcher(session, Service.DRIVE, 'drive.upload')
    _run(d.select_action())
    _fill(d.nav, str(tmp_path / "missing.bin"))
    _run(d.submit_input())
    assert fake_http.calls == []
    assert d.nav.screen == Screen.INPUT
    assert d.nav.status.startswith("Error: ")


def test_drive_download_writes_file_contents(session, fake_http, response, tmp_path):
    fake_http.responses = [response(200, text="report body")]
    target = tmp_path / "report.txt"
    d = _dispatcher(session, Service.DRIVE, 'drive.download')
    _run(d.select_action())
    _fill(d.nav, "file/1", str(target))
    assert _run(d.submit_input()) is True
    method, url, kwargs = fake_http.calls[0]
    assert (method, url) == ('GET', f"{res.DRIVE}/files/file%2F1")
    assert kwargs['params'] == {'alt': 'media'}
    assert target.read_bytes() == b"report body"
    assert d.nav.screen == Screen.ACTION_SELECT
    assert d.nav.status == f"Downloaded 11 bytes to {target}"


def test_drive_download_of_missing_file_writes_nothing(session, fake_http, response, tmp_path):
    fake_http.responses = [response(404, {'error': {'code': 404}})]
    target = tmp_path / "gone.txt"
    d = _dispatcher(session, Service.DRIVE, 'drive.download')
    _run(d.select_action())
    _fill(d.nav, "f9", str(target))
    assert _run(d.submit_input()) is False
    assert not target.exists()
    assert d.nav.status == "Error: Not found: Resource not found"


def test_script_edit_sends_code_and_manifest(session, fake_http, response):
    fake_http.responses = [response(200, {})]
    nav = NavigationState(catalog=navigation_catalog())
    d = Dispatcher(session, nav, script_timezone="Europe/Prague")
    nav.selected_service_index = d.services.index(Service.APPS_SCRIPT)
    nav.select_service()
    nav.selected_action_index = [s.key for s in CATALOG[Service.APPS_SCRIPT]].index('script.edit')
    _run(d.select_action())
    _fill(nav, "script-1", "Code", "function main() {}")
    _run(d.submit_input())
    files = fake_http.calls[0][2]['json']['files']
    assert files[0] == res.script_file("Code", "function main() {}")
    assert files[1] == res.script_manifest("Europe/Prague")


# -----------------------------
# Item operations
# -----------------------------
def test_open_item_fetches_full_resource(session, fake_http, response):
    pages = {'files': [{'id': 'f1', 'name': 'Report', 'mimeType': 'application/vnd.google-apps.document',
                        'modifiedTime': '2026-01-01T00:00:00Z'}]}
    fake_http.responses = [response(200, pages), response(200, {'id': 'f1', 'name': 'Report', 'size': '10'})]
    d = _dispatcher(session, Service.DRIVE, 'drive.my_files')
    _run(d.select_action())
    assert d.nav.items[0].title == "[doc] Report"
    assert d.nav.items[0].subtitle == '2026-01-01T00:00:00Z'
    _run(d.open_item())
    assert fake_http.calls[1][1] == f"{res.DRIVE}/files/f1"
    assert d.nav.detail['size'] == '10'
    _run(d.open_item())
    assert len(fake_http.calls) == 2


def test_open_item_without_fetch_shows_metadata(session, fake_http, response):
    fake_http.responses = [response(200, {'filter': [{'id': 'flt', 'criteria': {'from': 'x'}}]})]
    d = _dispatcher(session, Service.GMAIL, 'gmail.filters')
    _run(d.select_action())
    _run(d.open_item())
    assert d.nav.detail == {'id': 'flt', 'criteria': {'from': 'x'}}
    assert len(fake_http.calls) == 1


def test_delete_confirmed_removes_item(session, fake_http, response):
    fake_http.handler = _gmail_pages(response)
    d = _dispatcher(session, Service.GMAIL, 'gmail.inbox')
    nav = d.nav
    _run(d.select_action())
    nav.move_down()
    assert d.request_delete()
    assert nav.screen == Screen.CONFIRM
    _run(d.confirm_delete())
    assert fake_http.calls[-1][:2] == ('POST', f"{res.GMAIL}/messages/m2/trash")
    assert [it.id for it in nav.items] == ['abcdefghijklmnop']
    assert nav.screen == Screen.ACTION_VIEW
    assert nav.status == "Deleted successfully"


def test_failed_delete_keeps_item(session, fake_http, response):
    fake_http.responses = [
        response(200, {'messages': [{'id': 'm1'}]}),
        response(404, {'error': {'code': 404}}),
    ]
    d = _dispatcher(session, Service.GMAIL, 'gmail.inbox')
    _run(d.select_action())
    d.request_delete()
    _run(d.confirm_delete())
    assert [it.id for it in d.nav.items] == ['m1']
    assert d.nav.screen == Screen.ACTION_VIEW
    assert d.nav.status == "Error: Not found: Resource not found"


def test_delete_unsupported_for_view(session, fake_http, response):
    fake_http.responses = [response(200, {'labels': [{'id': 'INBOX', 'name': 'INBOX', 'type': 'system'}]})]
    d = _dispatcher(session, Service.GMAIL, 'gmail.labels')
    _run(d.select_action())
    assert not d.request_delete()
    assert d.nav.screen == Screen.ACTION_VIEW
    assert d.nav.status == "Delete not supported for this view"


def test_tasks_carry_their_list_id(session, fake_http, response):
    fake_http.responses = [
        response(200, {'items': [{'id': 't1', 'title': 'Milk', 'status': 'completed'},
                                 {'id': 't2', 'title': 'Eggs', 'status': 'needsAction', 'due': '2026-02-01'}]}),
        response(204),
    ]
    d = _dispatcher(session, Service.TASKS, 'tasks.view')
    _run(d.select_action())
    _fill(d.nav, "list-7")
    _run(d.submit_input())
    assert [it.title for it in d.nav.items] == ["[x] Milk", "[ ] Eggs"]
    assert d.nav.items[0].subtitle == "No due date"
    assert d.nav.items[1].metadata['taskListId'] == 'list-7'
    d.request_delete()
    _run(d.confirm_delete())
    assert fake_http.calls[-1][:2] == ('DELETE', f"{res.TASKS}/lists/list-7/tasks/t1")


def test_item_operations_follow_the_listing_not_the_menu_cursor(session, fake_http, response):
    fake_http.responses = [response(200, {'items': [{'id': 'L1', 'title': 'Groceries'}]})]
    d = _dispatcher(session, Service.TASKS, 'tasks.lists')
    _run(d.select_action())
    d.nav.selected_action_index = [spec.key for spec in CATALOG[Service.TASKS]].index('tasks.view')
    assert d.view_action().key == 'tasks.lists'
    assert not d.request_delete()
    assert d.nav.status == "Delete not supported for this view"
    _run(d.open_item())
    assert d.nav.detail == {'id': 'L1', 'title': 'Groceries'}
    assert len(fake_http.calls) == 1


def test_going_back_forgets_the_listed_action(session, fake_http, response):
    fake_http.responses = [response(200, {'items': []})]
    d = _dispatcher(session, Service.TASKS, 'tasks.lists')
    _run(d.select_action())
    d.nav.go_back()
    assert d.nav.view_action is None
    assert d.view_action() is None


def test_calendar_events_default_to_primary(session, fake_http, response):
    fake_http.responses = [
        response(200, {'items': [{'id': 'e1', 'summary': 'Standup', 'start': {'date': '2026-03-01'}},
                                 {'id': 'e2', 'start': {'dateTime': '2026-03-02T09:00:00Z'}}]}),
        response(200, {'id': 'e1'}),
    ]
    d = _dispatcher(session, Service.CALENDAR, 'calendar.events')
    _run(d.select_action())
    assert [(it.title, it.subtitle) for it in d.nav.items] == [
        ("Standup", "2026-03-01"),
        ("(No title)", "2026-03-02T09:00:00Z"),
    ]
    _run(d.open_item())
    assert fake_http.calls[-1][1] == f"{res.CALENDAR}/calendars/primary/events/e1"


# -----------------------------
# Cross-account search
# -----------------------------
def _per_account_handler(response, failing_token):
    def handler(method, url, kwargs):
        token = kwargs['headers']['Authorization'].split()[-1]
        if token == failing_token:
            return response(500, text='boom')
        return response(200, {'messages': [{'id': f"{token}-0123456789", 'snippet': 'hello'}]})
    return handler


def test_unified_search_merges_and_restores_active(session, fake_http, response):
    session.switch_account('personal')
    fake_http.handler = _per_account_handler(response, failing_token='personal-token')
    d = _dispatcher(session, Service.GMAIL, 'gmail.unified_search')
    _run(d.select_action())
    _fill(d.nav, "is:unread")
    _run(d.submit_input())
    nav = d.nav
    assert session.active_account_name() == 'personal'
    assert session.ensure_token() == 'personal-token'
    assert nav.screen == Screen.ACTION_VIEW
    assert [it.title for it in nav.items] == ["[Work] Message work-token"]
    assert nav.items[0].metadata['_account'] == 'work'
    assert nav.items[0].metadata['_label'] == 'Work'
    assert nav.status.startswith("1 results across 2 accounts (errors: Personal: API error (500)")
    assert nav.next_page_token is None
    assert all(call[2]['params']['maxResults'] == 10 for call in fake_http.calls)


def test_unified_search_restores_after_unexpected_failure(session, fake_http):
    def handler(method, url, kwargs):
        raise RuntimeError("socket exploded")

    session.switch_account('personal')
    fake_http.handler = handler
    d = _dispatcher(session, Service.GMAIL, 'gmail.unified_search')
    _run(d.select_action())
    _fill(d.nav, "x")
    _run(d.submit_input())
    assert session.active_account_name() == 'personal'
    assert d.nav.status == "Error: socket exploded"
    assert d.nav.screen == Screen.INPUT


def test_unified_search_keeps_results_when_switching_back_fails(session, fake_http, response, monkeypatch):
    fake_http.handler = _per_account_handler(response, failing_token=None)
    real_switch = session.switch_account

    def switch(name):
        if name == 'work':
            raise StorageError("disk full")
        real_switch(name)
    monkeypatch.setattr(session, 'switch_account', switch)

    d = _dispatcher(session, Service.GMAIL, 'gmail.unified_search')
    _run(d.select_action())
    _fill(d.nav, "is:unread")
    assert _run(d.submit_input()) is True
    assert d.nav.screen == Screen.ACTION_VIEW
    assert len(d.nav.items) == 2
    assert d.nav.status == "2 results across 2 accounts (errors: restore work: IO error: disk full)"
    assert session.active_account_name() == 'personal'


# -----------------------------
# Accounts
# -----------------------------
def test_switch_from_overlay_resets_navigation(session, fake_http):
    d = _dispatcher(session, Service.DRIVE, 'drive.my_files')
    nav = d.nav
    d.open_account_switcher()
    assert nav.accounts == ['work', 'personal']
    assert nav.account_cursor == 0
    nav.move_down()
    _run(d.switch_account())
    assert session.active_account_name() == 'personal'
    assert nav.screen == Screen.SERVICE_SELECT
    assert nav.account_name == 'personal'
    assert nav.status == "Switched to Personal"
    assert not nav.account_switcher_visible


# -----------------------------
# Catalogue and field schema
# -----------------------------
def test_every_service_has_actions_with_unique_keys():
    keys = [spec.key for actions in CATALOG.values() for spec in actions]
    assert len(keys) == len(set(keys))
    assert set(CATALOG) == set(Service)
    names = [name for name, _ in navigation_catalog()]
    assert names == [s.value for s in CATALOG]


def test_catalog_check_rejects_missing_service():
    partial = {s: a for s, a in CATALOG.items() if s is not Service.FORMS}
    with pytest.raises(RuntimeError):
        gw_actions._check_catalog(partial)
    dup = dict(CATALOG)
    dup[Service.FORMS] = CATALOG[Service.FORMS] + (ActionSpec("gmail.inbox", "Again", lambda ctx, v: None),)
    with pytest.raises(RuntimeError):
        gw_actions._check_catalog(dup)


@pytest.mark.parametrize("kind,raw,expected", [
    ("int", "42", 42),
    ("float", "10.5", 10.5),
    ("bool", "Yes", True),
    ("bool", "false", False),
    ("csv", " a, b ,,c ", ["a", "b", "c"]),
    ("json", '[["x"]]', [["x"]]),
    ("text", "  padded  ", "padded"),
])
def test_field_parsing(kind, raw, expected):
    assert FieldSpec("F", kind=kind).parse(raw) == expected


def test_empty_field_uses_default_and_bad_values_raise():
    assert FieldSpec("Rows", kind="int", default=3).parse("  ") == 3
    assert FieldSpec("Body", multiline=True).parse("a\n  b\n") == "a\n  b\n"
    with pytest.raises(ActionError) as exc:
        FieldSpec("Rows", kind="int").parse("three")
    assert str(exc.value) == "Rows must be a number"
    with pytest.raises(ActionError):
        FieldSpec("Flag", kind="bool").parse("maybe")
