# gw_resources: stateless Google Workspace REST calls.
#
# Each function takes the SessionManager (anything with get/post/put/patch/
# delete/upload/download) and returns the parsed JSON document, or None for
# empty responses. Failures are the typed errors raised by the session.

from __future__ import annotations

import base64
import json
from typing import Dict, List, Optional, Sequence
from urllib.parse import quote

from gw_errors import NotFoundError

GMAIL = "https://gmail.googleapis.com/gmail/v1/users/me"
CALENDAR = "https://www.googleapis.com/calendar/v3"
DRIVE = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD = "https://www.googleapis.com/upload/drive/v3/files"
SHEETS = "https://sheets.googleapis.com/v4/spreadsheets"
DOCS = "https://docs.googleapis.com/v1/documents"
SLIDES = "https://slides.googleapis.com/v1/presentations"
FORMS = "https://forms.googleapis.com/v1/forms"
TASKS = "https://tasks.googleapis.com/tasks/v1"
PEOPLE = "https://people.googleapis.com/v1"
SCRIPT = "https://script.googleapis.com/v1"

FOLDER_MIME = "application/vnd.google-apps.folder"
DRIVE_LIST_FIELDS = "nextPageToken, files(id, name, mimeType, modifiedTime, size, parents)"
DRIVE_FILE_FIELDS = "id,name,mimeType,size,modifiedTime,createdTime,owners,parents,webViewLink,description,starred,trashed"
PERSON_FIELDS = "names,emailAddresses,phoneNumbers,organizations,addresses,biographies,birthdays,urls"


def _seg(value: str) -> str:
    return quote(str(value), safe='')


def _clean(params: Dict[str, object]) -> Dict[str, object]:
    return {k: v for k, v in params.items() if v is not None}


# -----------------------------
# Gmail
# -----------------------------
def build_raw_email(to: str, subject: str, body: str, cc: Optional[str] = None, bcc: Optional[str] = None) -> str:
    """RFC 822 text/plain message, base64url encoded without padding."""
    msg = f"To: {to}\r\nSubject: {subject}\r\n"
    if cc:
        msg += f"Cc: {cc}\r\n"
    if bcc:
        msg += f"Bcc: {bcc}\r\n"
    msg += "Content-Type: text/plain; charset=utf-8\r\n\r\n"
    msg += body
    return base64.urlsafe_b64encode(msg.encode('utf-8')).decode('ascii').rstrip('=')


def gmail_list_messages(session, query: Optional[str] = None, max_results: int = 20, page_token: Optional[str] = None):
    return session.get(f"{GMAIL}/messages", params=_clean({'maxResults': max_results, 'q': query, 'pageToken': page_token}))


def gmail_get_message(session, message_id: str, fmt: str = "full"):
    return session.get(f"{GMAIL}/messages/{_seg(message_id)}", params={'format': fmt})


def gmail_send_message(session, raw: str):
    return session.post(f"{GMAIL}/messages/send", {'raw': raw})


def gmail_trash_message(session, message_id: str):
    return session.post_empty(f"{GMAIL}/messages/{_seg(message_id)}/trash")


def gmail_list_threads(session, query: Optional[str] = None, max_results: int = 20, page_token: Optional[str] = None):
    return session.get(f"{GMAIL}/threads", params=_clean({'maxResults': max_results, 'q': query, 'pageToken': page_token}))


def gmail_get_thread(session, thread_id: str, fmt: str = "full"):
    return session.get(f"{GMAIL}/threads/{_seg(thread_id)}", params={'format': fmt})


def gmail_list_labels(session):
    return session.get(f"{GMAIL}/labels")


def gmail_get_label(session, label_id: str):
    return session.get(f"{GMAIL}/labels/{_seg(label_id)}")


def gmail_list_drafts(session, max_results: int = 20, page_token: Optional[str] = None):
    return session.get(f"{GMAIL}/drafts", params=_clean({'maxResults': max_results, 'pageToken': page_token}))


def gmail_get_draft(session, draft_id: str, fmt: str = "full"):
    return session.get(f"{GMAIL}/drafts/{_seg(draft_id)}", params={'format': fmt})


def gmail_delete_draft(session, draft_id: str):
    return session.delete(f"{GMAIL}/drafts/{_seg(draft_id)}")


def gmail_list_filters(session):
    return session.get(f"{GMAIL}/settings/filters")


def gmail_delete_filter(session, filter_id: str):
    return session.delete(f"{GMAIL}/settings/filters/{_seg(filter_id)}")


def gmail_get_vacation_settings(session):
    return session.get(f"{GMAIL}/settings/vacation")


def gmail_list_forwarding_addresses(session):
    return session.get(f"{GMAIL}/settings/forwardingAddresses")


def gmail_list_send_as(session):
    return session.get(f"{GMAIL}/settings/sendAs")


def gmail_list_delegates(session):
    return session.get(f"{GMAIL}/settings/delegates")


# -----------------------------
# Calendar
# -----------------------------
def calendar_list_events(
    session,
    calendar_id: str = "primary",
    time_min: Optional[str] = None,
    time_max: Optional[str] = None,
    max_results: int = 50,
    page_token: Optional[str] = None,
    single_events: bool = True,
    order_by: Optional[str] = "startTime",
):
    params = _clean({
        'timeMin': time_min,
        'timeMax': time_max,
        'maxResults': max_results,
        'pageToken': page_token,
        'singleEvents': 'true' if single_events else 'false',
        'orderBy': order_by,
    })
    return session.get(f"{CALENDAR}/calendars/{_seg(calendar_id)}/events", params=params)


def calendar_get_event(session, calendar_id: str, event_id: str):
    return session.get(f"{CALENDAR}/calendars/{_seg(calendar_id)}/events/{_seg(event_id)}")


def calendar_create_event(session, calendar_id: str, event: dict):
    return session.post(f"{CALENDAR}/calendars/{_seg(calendar_id)}/events", event)


def calendar_quick_add(session, calendar_id: str, text: str):
    return session.post_empty(f"{CALENDAR}/calendars/{_seg(calendar_id)}/events/quickAdd", params={'text': text})


def calendar_delete_event(session, calendar_id: str, event_id: str):
    return session.delete(f"{CALENDAR}/calendars/{_seg(calendar_id)}/events/{_seg(event_id)}")


def calendar_list_calendars(session, page_token: Optional[str] = None):
    return session.get(f"{CALENDAR}/users/me/calendarList", params=_clean({'pageToken': page_token}))


def calendar_list_acl(session, calendar_id: str = "primary"):
    return session.get(f"{CALENDAR}/calendars/{_seg(calendar_id)}/acl")


def calendar_list_settings(session):
    return session.get(f"{CALENDAR}/users/me/settings")


def calendar_query_free_busy(session, calendar_id: str, time_min: str, time_max: str):
    body = {'timeMin': time_min, 'timeMax': time_max, 'items': [{'id': calendar_id}]}
    return session.post(f"{CALENDAR}/freeBusy", body)


# -----------------------------
# Drive
# -----------------------------
def drive_list_files(
    session,
    query: Optional[str] = None,
    page_size: int = 20,
    page_token: Optional[str] = None,
    order_by: Optional[str] = None,
    fields: str = DRIVE_LIST_FIELDS,
):
    params = _clean({'q': query, 'pageSize': page_size, 'pageToken': page_token, 'orderBy': order_by, 'fields': fields})
    return session.get(f"{DRIVE}/files", params=params)


def drive_get_file(session, file_id: str, fields: str = DRIVE_FILE_FIELDS):
    return session.get(f"{DRIVE}/files/{_seg(file_id)}", params={'fields': fields})


def drive_delete_file(session, file_id: str):
    return session.delete(f"{DRIVE}/files/{_seg(file_id)}")


def drive_create_folder(session, name: str, parent_id: Optional[str] = None):
    meta: Dict[str, object] = {'name': name, 'mimeType': FOLDER_MIME}
    if parent_id:
        meta['parents'] = [parent_id]
    return session.post(f"{DRIVE}/files", meta)


def drive_upload_file(session, metadata: dict, content: bytes, mime_type: str):
    return session.upload(DRIVE_UPLOAD, metadata, content, mime_type)


def drive_download_file(session, file_id: str) -> bytes:
    return session.download(f"{DRIVE}/files/{_seg(file_id)}", params={'alt': 'media'})


def drive_get_about(session):
    return session.get(f"{DRIVE}/about", params={'fields': 'user,storageQuota'})


def drive_list_shared_drives(session, page_token: Optional[str] = None, page_size: int = 20):
    return session.get(f"{DRIVE}/drives", params=_clean({'pageSize': page_size, 'pageToken': page_token}))


# -----------------------------
# Sheets
# -----------------------------
def _range(a1: str) -> str:
    return quote(a1, safe="!:'")


def sheets_create(session, title: str):
    return session.post(SHEETS, {'properties': {'title': title}})


def sheets_get(session, spreadsheet_id: str):
    return session.get(f"{SHEETS}/{_seg(spreadsheet_id)}")


def sheets_get_values(session, spreadsheet_id: str, a1_range: str):
    return session.get(f"{SHEETS}/{_seg(spreadsheet_id)}/values/{_range(a1_range)}")


def sheets_update_values(session, spreadsheet_id: str, a1_range: str, values: list, input_option: str = "USER_ENTERED"):
    body = {'range': a1_range, 'majorDimension': 'ROWS', 'values': values}
    return session.put(
        f"{SHEETS}/{_seg(spreadsheet_id)}/values/{_range(a1_range)}", body,
        params={'valueInputOption': input_option},
    )


def sheets_append_values(session, spreadsheet_id: str, a1_range: str, values: list, input_option: str = "USER_ENTERED"):
    body = {'range': a1_range, 'majorDimension': 'ROWS', 'values': values}
    return session.post(
        f"{SHEETS}/{_seg(spreadsheet_id)}/values/{_range(a1_range)}:append", body,
        params={'valueInputOption': input_option, 'insertDataOption': 'INSERT_ROWS'},
    )


def sheets_batch_update(session, spreadsheet_id: str, requests_: List[dict]):
    return session.post(f"{SHEETS}/{_seg(spreadsheet_id)}:batchUpdate", {'requests': requests_})


def sheets_add_sheet(session, spreadsheet_id: str, title: str):
    return sheets_batch_update(session, spreadsheet_id, [{'addSheet': {'properties': {'title': title}}}])


def _grid(sheet_id: int, start_row: int, end_row: int, start_col: int, end_col: int) -> dict:
    return {
        'sheetId': sheet_id,
        'startRowIndex': start_row,
        'endRowIndex': end_row,
        'startColumnIndex': start_col,
        'endColumnIndex': end_col,
    }


def sheets_create_named_range(session, spreadsheet_id: str, name: str, sheet_id: int,
                              start_row: int, end_row: int, start_col: int, end_col: int):
    req = {'addNamedRange': {'namedRange': {'name': name, 'range': _grid(sheet_id, start_row, end_row, start_col, end_col)}}}
    return sheets_batch_update(session, spreadsheet_id, [req])


def sheets_sort_range(session, spreadsheet_id: str, sheet_id: int, start_row: int, end_row: int,
                      start_col: int, end_col: int, sort_col: int, ascending: bool):
    req = {'sortRange': {
        'range': _grid(sheet_id, start_row, end_row, start_col, end_col),
        'sortSpecs': [{'dimensionIndex': sort_col, 'sortOrder': 'ASCENDING' if ascending else 'DESCENDING'}],
    }}
    return sheets_batch_update(session, spreadsheet_id, [req])


# -----------------------------
# Docs
# -----------------------------
def docs_create(session, title: str):
    return session.post(DOCS, {'title': title})


def docs_get(session, document_id: str):
    return session.get(f"{DOCS}/{_seg(document_id)}")


def docs_batch_update(session, document_id: str, requests_: List[dict]):
    return session.post(f"{DOCS}/{_seg(document_id)}:batchUpdate", {'requests': requests_})


def docs_insert_text(session, document_id: str, text: str, index: int):
    return docs_batch_update(session, document_id, [{'insertText': {'text': text, 'location': {'index': index}}}])


def docs_replace_all_text(session, document_id: str, find: str, replace: str, match_case: bool = True):
    req = {'replaceAllText': {'containsText': {'text': find, 'matchCase': match_case}, 'replaceText': replace}}
    return docs_batch_update(session, document_id, [req])


def docs_update_text_style(session, document_id: str, start: int, end: int,
                           bold: Optional[bool] = None, italic: Optional[bool] = None,
                           font_size: Optional[float] = None):
    style: Dict[str, object] = {}
    mask: List[str] = []
    if bold is not None:
        style['bold'] = bold
        mask.append('bold')
    if italic is not None:
        style['italic'] = italic
        mask.append('italic')
    if font_size is not None:
        style['fontSize'] = {'magnitude': font_size, 'unit': 'PT'}
        mask.append('fontSize')
    req = {'updateTextStyle': {
        'range': {'startIndex': start, 'endIndex': end},
        'textStyle': style,
        'fields': ','.join(mask),
    }}
    return docs_batch_update(session, document_id, [req])


def docs_create_header(session, document_id: str):
    return docs_batch_update(session, document_id, [{'createHeader': {'type': 'DEFAULT'}}])


def docs_create_footer(session, document_id: str):
    return docs_batch_update(session, document_id, [{'createFooter': {'type': 'DEFAULT'}}])


def docs_insert_table(session, document_id: str, rows: int, columns: int, index: int):
    req = {'insertTable': {'rows': rows, 'columns': columns, 'location': {'index': index}}}
    return docs_batch_update(session, document_id, [req])


# -----------------------------
# Slides
# -----------------------------
def _element_properties(page_id: str, x: float, y: float, width: float, height: float) -> dict:
    return {
        'pageObjectId': page_id,
        'size': {
            'width': {'magnitude': width, 'unit': 'PT'},
            'height': {'magnitude': height, 'unit': 'PT'},
        },
        'transform': {'scaleX': 1, 'scaleY': 1, 'translateX': x, 'translateY': y, 'unit': 'PT'},
    }


def slides_create(session, title: str):
    return session.post(SLIDES, {'title': title})


def slides_get(session, presentation_id: str):
    return session.get(f"{SLIDES}/{_seg(presentation_id)}")


def slides_get_page(session, presentation_id: str, page_id: str):
    return session.get(f"{SLIDES}/{_seg(presentation_id)}/pages/{_seg(page_id)}")


def slides_batch_update(session, presentation_id: str, requests_: List[dict]):
    return session.post(f"{SLIDES}/{_seg(presentation_id)}:batchUpdate", {'requests': requests_})


def slides_create_slide(session, presentation_id: str, layout: str = "BLANK", index: Optional[int] = None):
    req: Dict[str, dict] = {'createSlide': {'slideLayoutReference': {'predefinedLayout': layout}}}
    if index is not None:
        req['createSlide']['insertionIndex'] = index
    return slides_batch_update(session, presentation_id, [req])


def slides_replace_all_text(session, presentation_id: str, find: str, replace: str, match_case: bool = True):
    req = {'replaceAllText': {'containsText': {'text': find, 'matchCase': match_case}, 'replaceText': replace}}
    return slides_batch_update(session, presentation_id, [req])


def slides_create_shape(session, presentation_id: str, page_id: str, shape_type: str,
                        x: float, y: float, width: float, height: float):
    req = {'createShape': {
        'shapeType': shape_type,
        'elementProperties': _element_properties(page_id, x, y, width, height),
    }}
    return slides_batch_update(session, presentation_id, [req])


def slides_create_image(session, presentation_id: str, page_id: str, url: str,
                        x: float, y: float, width: float, height: float):
    req = {'createImage': {'url': url, 'elementProperties': _element_properties(page_id, x, y, width, height)}}
    return slides_batch_update(session, presentation_id, [req])


def slides_create_table(session, presentation_id: str, page_id: str, rows: int, columns: int):
    req = {'createTable': {'rows': rows, 'columns': columns, 'elementProperties': {'pageObjectId': page_id}}}
    return slides_batch_update(session, presentation_id, [req])


def slides_insert_text(session, presentation_id: str, object_id: str, text: str, index: int = 0):
    req = {'insertText': {'objectId': object_id, 'text': text, 'insertionIndex': index}}
    return slides_batch_update(session, presentation_id, [req])


def slides_speaker_notes_id(page: Optional[dict]) -> Optional[str]:
    props = ((page or {}).get('slideProperties') or {}).get('notesPage') or {}
    return (props.get('notesProperties') or {}).get('speakerNotesObjectId')


def slides_create_speaker_notes(session, presentation_id: str, slide_id: str, text: str):
    notes_id = slides_speaker_notes_id(slides_get_page(session, presentation_id, slide_id))
    if not notes_id:
        raise NotFoundError("Speaker notes object not found")
    return slides_insert_text(session, presentation_id, notes_id, text, 0)


# -----------------------------
# Forms
# -----------------------------
QUESTION_KINDS = ("text", "choice", "scale", "date", "time")


def forms_create(session, title: str, document_title: str):
    return session.post(FORMS, {'info': {'title': title, 'documentTitle': document_title}})


def forms_get(session, form_id: str):
    return session.get(f"{FORMS}/{_seg(form_id)}")


def forms_batch_update(session, form_id: str, requests_: List[dict]):
    return session.post(f"{FORMS}/{_seg(form_id)}:batchUpdate", {'includeFormInResponse': True, 'requests': requests_})


def build_question(kind: str, required: bool, options: Sequence[str] = ()) -> dict:
    if kind == "choice":
        body: dict = {'choiceQuestion': {'type': 'RADIO', 'options': [{'value': o} for o in options]}}
    elif kind == "scale":
        body = {'scaleQuestion': {'low': 1, 'high': 5, 'lowLabel': 'Low', 'highLabel': 'High'}}
    elif kind == "date":
        body = {'dateQuestion': {'includeTime': False, 'includeYear': True}}
    elif kind == "time":
        body = {'timeQuestion': {'duration': False}}
    else:
        body = {'textQuestion': {'paragraph': False}}
    body['required'] = required
    return body


def forms_add_question(session, form_id: str, title: str, kind: str, required: bool,
                       options: Sequence[str] = (), index: int = 0):
    req = {'createItem': {
        'item': {'title': title, 'questionItem': {'question': build_question(kind, required, options)}},
        'location': {'index': index},
    }}
    return forms_batch_update(session, form_id, [req])


def forms_add_grid_question(session, form_id: str, title: str, rows: Sequence[str], columns: Sequence[str], index: int = 0):
    req = {'createItem': {
        'item': {
            'title': title,
            'questionGroupItem': {
                'questions': [{'rowQuestion': {'title': r}} for r in rows],
                'grid': {'columns': {'type': 'RADIO', 'options': [{'value': c} for c in columns]}},
            },
        },
        'location': {'index': index},
    }}
    return forms_batch_update(session, form_id, [req])


def forms_update_info(session, form_id: str, title: Optional[str] = None, description: Optional[str] = None):
    info: Dict[str, str] = {}
    if title is not None:
        info['title'] = title
    if description is not None:
        info['description'] = description
    req = {'updateFormInfo': {'info': info, 'updateMask': ','.join(info.keys())}}
    return forms_batch_update(session, form_id, [req])


def forms_list_responses(session, form_id: str, page_size: int = 50, page_token: Optional[str] = None):
    return session.get(f"{FORMS}/{_seg(form_id)}/responses", params=_clean({'pageSize': page_size, 'pageToken': page_token}))


def forms_list_watches(session, form_id: str):
    return session.get(f"{FORMS}/{_seg(form_id)}/watches")


# -----------------------------
# Tasks
# -----------------------------
def tasks_list_task_lists(session, max_results: int = 20, page_token: Optional[str] = None):
    return session.get(f"{TASKS}/users/@me/lists", params=_clean({'maxResults': max_results, 'pageToken': page_token}))


def tasks_list_tasks(session, task_list_id: str, max_results: int = 50, page_token: Optional[str] = None,
                     show_completed: bool = True):
    params = _clean({
        'maxResults': max_results,
        'pageToken': page_token,
        'showCompleted': 'true' if show_completed else 'false',
    })
    return session.get(f"{TASKS}/lists/{_seg(task_list_id)}/tasks", params=params)


def tasks_get_task(session, task_list_id: str, task_id: str):
    return session.get(f"{TASKS}/lists/{_seg(task_list_id)}/tasks/{_seg(task_id)}")


def tasks_create_task(session, task_list_id: str, title: str, notes: Optional[str] = None, due: Optional[str] = None):
    body = _clean({'title': title, 'notes': notes, 'due': due})
    return session.post(f"{TASKS}/lists/{_seg(task_list_id)}/tasks", body)


def tasks_complete_task(session, task_list_id: str, task_id: str):
    return session.patch(f"{TASKS}/lists/{_seg(task_list_id)}/tasks/{_seg(task_id)}", {'status': 'completed'})


def tasks_uncomplete_task(session, task_list_id: str, task_id: str):
    body = {'status': 'needsAction', 'completed': None}
    return session.patch(f"{TASKS}/lists/{_seg(task_list_id)}/tasks/{_seg(task_id)}", body)


def tasks_move_task(session, task_list_id: str, task_id: str, parent: Optional[str] = None, previous: Optional[str] = None):
    return session.post_empty(
        f"{TASKS}/lists/{_seg(task_list_id)}/tasks/{_seg(task_id)}/move",
        params=_clean({'parent': parent, 'previous': previous}),
    )


def tasks_clear_completed(session, task_list_id: str):
    return session.post_empty(f"{TASKS}/lists/{_seg(task_list_id)}/clear")


def tasks_delete_task(session, task_list_id: str, task_id: str):
    return session.delete(f"{TASKS}/lists/{_seg(task_list_id)}/tasks/{_seg(task_id)}")


# -----------------------------
# People
# -----------------------------
def people_list_contacts(session, page_size: int = 20, page_token: Optional[str] = None,
                         person_fields: str = "names,emailAddresses,phoneNumbers,organizations",
                         sort_order: Optional[str] = "LAST_NAME_ASCENDING"):
    params = _clean({'pageSize': page_size, 'pageToken': page_token, 'personFields': person_fields, 'sortOrder': sort_order})
    return session.get(f"{PEOPLE}/people/me/connections", params=params)


def people_search_contacts(session, query: str, page_size: int = 20):
    params = {'query': query, 'pageSize': page_size, 'readMask': 'names,emailAddresses,phoneNumbers'}
    return session.get(f"{PEOPLE}/people:searchContacts", params=params)


def people_get_person(session, resource_name: str, person_fields: str = PERSON_FIELDS):
    return session.get(f"{PEOPLE}/{resource_name}", params={'personFields': person_fields})


def people_create_contact(session, person: dict):
    return session.post(f"{PEOPLE}/people:createContact", person)


def people_delete_contact(session, resource_name: str):
    return session.delete(f"{PEOPLE}/{resource_name}:deleteContact")


def people_list_contact_groups(session, page_size: int = 20, page_token: Optional[str] = None):
    return session.get(f"{PEOPLE}/contactGroups", params=_clean({'pageSize': page_size, 'pageToken': page_token}))


def people_list_other_contacts(session, page_size: int = 20, page_token: Optional[str] = None):
    params = _clean({'pageSize': page_size, 'pageToken': page_token, 'readMask': 'names,emailAddresses,phoneNumbers'})
    return session.get(f"{PEOPLE}/otherContacts", params=params)


def people_search_directory(session, query: str, page_size: int = 20):
    params = {
        'query': query,
        'pageSize': page_size,
        'readMask': 'names,emailAddresses,phoneNumbers,organizations',
        'sources': 'DIRECTORY_SOURCE_TYPE_DOMAIN_PROFILE',
    }
    return session.get(f"{PEOPLE}/people:searchDirectoryPeople", params=params)


# -----------------------------
# Apps Script
# -----------------------------
def script_file(name: str, source: str, kind: str = "SERVER_JS") -> dict:
    return {'name': name, 'type': kind, 'source': source}


def script_manifest(timezone: str) -> dict:
    source = json.dumps({'timeZone': timezone, 'dependencies': {}, 'exceptionLogging': 'STACKDRIVER'})
    return {'name': 'appsscript', 'type': 'JSON', 'source': source}


def script_create_project(session, title: str, parent_id: Optional[str] = None):
    return session.post(f"{SCRIPT}/projects", _clean({'title': title, 'parentId': parent_id}))


def script_get_project(session, script_id: str):
    return session.get(f"{SCRIPT}/projects/{_seg(script_id)}")


def script_update_content(session, script_id: str, files: List[dict]):
    return session.put(f"{SCRIPT}/projects/{_seg(script_id)}/content", {'scriptId': script_id, 'files': files})


def script_list_versions(session, script_id: str, page_size: int = 20, page_token: Optional[str] = None):
    return session.get(
        f"{SCRIPT}/projects/{_seg(script_id)}/versions", params=_clean({'pageSize': page_size, 'pageToken': page_token}),
    )


def script_list_deployments(session, script_id: str, page_size: int = 20, page_token: Optional[str] = None):
    return session.get(
        f"{SCRIPT}/projects/{_seg(script_id)}/deployments", params=_clean({'pageSize': page_size, 'pageToken': page_token}),
    )


def script_run(session, script_id: str, function: str, parameters: Optional[list] = None, dev_mode: bool = False):
    body: Dict[str, object] = {'function': function, 'devMode': dev_mode}
    if parameters is not None:
        body['parameters'] = parameters
    return session.post(f"{SCRIPT}/scripts/{_seg(script_id)}:run", body)


def script_list_processes(session, page_size: int = 20, page_token: Optional[str] = None):
    return session.get(f"{SCRIPT}/processes", params=_clean({'pageSize': page_size, 'pageToken': page_token}))
