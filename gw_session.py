# gw_session: token refresh and the process-wide session over the active account.
#
# Locks
# - SessionManager keeps two cells: the active-account view and the full store,
#   each behind its own threading.Lock.
# - When both are held, the view lock is always taken first (refresh persistence,
#   view re-derivation). Nothing takes store -> view.
# - No lock is held while a resource request is on the wire; the token is copied
#   out of the view first. A request that already has its token completes with
#   it even if the account is switched meanwhile.

from __future__ import annotations

import copy
import datetime as dt
import json
import logging
import threading
import uuid
from typing import Callable, Dict, List, Optional

import requests

from gw_accounts import Account, AccountStore
from gw_errors import (
    ApiError,
    AuthError,
    ConfigError,
    HttpError,
    JsonError,
    NotFoundError,
    RateLimitedError,
    StorageError,
)

logger = logging.getLogger('gw_console')

VERSION = "0.1.0"
USER_AGENT = f"gw_console/{VERSION}"
TOKEN_URL = "https://oauth2.googleapis.com/token"
REFRESH_BUFFER = dt.timedelta(minutes=2)
DEFAULT_TOKEN_LIFETIME = 3600
DEFAULT_TIMEOUT = 60


def _now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# -----------------------------
# Token refresh
# -----------------------------
def needs_refresh(expiry: dt.datetime, now: Optional[dt.datetime] = None) -> bool:
    now = now or _now()
    return now >= expiry - REFRESH_BUFFER


def _raise_refresh_failure(resp: requests.Response) -> None:
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get('error'):
        code = str(payload.get('error'))
        desc = payload.get('error_description') or ''
        raise AuthError(f"{code}: {desc}" if desc else code)
    raise ApiError(resp.status_code, resp.text)


def refresh_if_needed(
    account: Account,
    persist: Callable[[Account], None],
    http=None,
    timeout: float = DEFAULT_TIMEOUT,
) -> bool:
    """Refresh `account`'s access token when it is within two minutes of expiry.

    Returns False without touching the network when the token is still good.
    On a successful exchange the credentials are updated in place, `persist`
    is called with the account, and True is returned. Failures raise; the
    caller never gets a stale token back from a failed refresh.
    """
    creds = account.credentials
    if not needs_refresh(creds.token_expiry):
        return False
    logger.info("Refreshing access token for account '%s'", account.name)
    poster = http if http is not None else requests
    form = {
        'client_id': creds.client_id,
        'client_secret': creds.client_secret,
        'refresh_token': creds.refresh_token,
        'grant_type': 'refresh_token',
    }
    try:
        resp = poster.post(TOKEN_URL, data=form, timeout=timeout)
    except requests.RequestException as exc:
        logger.error("Token refresh for '%s' failed: %s", account.name, exc)
        raise HttpError(str(exc)) from exc
    if not 200 <= resp.status_code < 300:
        logger.error("Token refresh for '%s' rejected (HTTP %s)", account.name, resp.status_code)
        _raise_refresh_failure(resp)
    try:
        payload = resp.json()
    except ValueError as exc:
        raise JsonError(f"token response: {exc}") from exc
    token = payload.get('access_token') if isinstance(payload, dict) else None
    if not token:
        raise JsonError("token response has no access_token")
    try:
        lifetime = int(payload.get('expires_in') or DEFAULT_TOKEN_LIFETIME)
    except (TypeError, ValueError):
        lifetime = DEFAULT_TOKEN_LIFETIME
    creds.access_token = token
    creds.token_expiry = _now() + dt.timedelta(seconds=lifetime)
    # Google only sometimes rotates the refresh token
    if payload.get('refresh_token'):
        creds.refresh_token = payload['refresh_token']
    persist(account)
    return True


# -----------------------------
# Response handling
# -----------------------------
def _parse_retry_after(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return max(0, int(float(value)))
    except (TypeError, ValueError):
        return None


def _raise_for_status(resp: requests.Response) -> None:
    status = resp.status_code
    if 200 <= status < 300:
        return
    if status == 429:
        raise RateLimitedError(_parse_retry_after(resp.headers.get('Retry-After')))
    if status == 404:
        raise NotFoundError()
    raise ApiError(status, resp.text)


def handle_response(resp: requests.Response) -> Optional[dict]:
    _raise_for_status(resp)
    if resp.status_code == 204 or not (resp.content or b'').strip():
        return None
    try:
        return resp.json()
    except ValueError as exc:
        raise JsonError(str(exc)) from exc


def _multipart_related(boundary: str, metadata: dict, content: bytes, mime_type: str) -> bytes:
    head = (
        f"--{boundary}\r\n"
        "Content-Type: application/json; charset=UTF-8\r\n\r\n"
        f"{json.dumps(metadata)}\r\n"
        f"--{boundary}\r\n"
        f"Content-Type: {mime_type}\r\n\r\n"
    ).encode('utf-8')
    return head + content + f"\r\n--{boundary}--\r\n".encode('utf-8')


# -----------------------------
# Session manager
# -----------------------------
class SessionManager:
    """Owns the active account's live credentials for the running process."""

    def __init__(self, store: AccountStore, http: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT):
        active = store.active()
        if active is None:
            raise ConfigError("No active account configured")
        self._store = store
        self._store_lock = threading.Lock()
        self._view = copy.deepcopy(active)
        self._view_lock = threading.Lock()
        self._http = http if http is not None else self._new_http()
        self.timeout = timeout

    @staticmethod
    def _new_http() -> requests.Session:
        s = requests.Session()
        s.headers['User-Agent'] = USER_AGENT
        return s

    # --- credentials ---
    def ensure_token(self) -> str:
        with self._view_lock:
            account = self._view
            if not account.credentials.is_complete():
                raise ConfigError(f"Account '{account.name}' has incomplete credentials; run with --setup")
            refresh_if_needed(account, self._persist_refreshed, http=self._http, timeout=self.timeout)
            return account.credentials.access_token

    def _persist_refreshed(self, account: Account) -> None:
        # Runs with the view lock held.
        with self._store_lock:
            if not self._store.set_credentials(account.name, account.credentials):
                logger.warning("Account '%s' left the store; refreshed token kept in memory only", account.name)
                return
            self._store.save()

    def _rederive_view(self) -> None:
        with self._view_lock:
            with self._store_lock:
                active = self._store.active()
                if active is None:
                    raise ConfigError("No active account configured")
                self._view = copy.deepcopy(active)

    # --- administration ---
    def switch_account(self, name: str) -> None:
        with self._store_lock:
            previous = self._store.active_account
            if not self._store.switch(name):
                raise ConfigError(f"Account '{name}' not found")
            try:
                self._store.save()
            except StorageError:
                self._store.switch(previous)
                raise
        self._rederive_view()
        logger.info("Switched active account to '%s'", name)

    def update_store(self, new_store: AccountStore) -> None:
        if new_store.active() is None:
            raise ConfigError("Updated account store has no active account")
        replacement = new_store.copy()
        with self._store_lock:
            replacement.save()
            self._store = replacement
        self._rederive_view()
        logger.info("Account store updated; active account '%s'", replacement.active_account)

    def active_account_name(self) -> str:
        with self._store_lock:
            return self._store.active_account

    def active_account_label(self) -> str:
        with self._store_lock:
            acct = self._store.active()
            return acct.label if acct else ''

    def account_names(self) -> List[str]:
        with self._store_lock:
            return self._store.names()

    def account_labels(self) -> Dict[str, str]:
        with self._store_lock:
            return {name: acct.label for name, acct in self._store.accounts.items()}

    def store_snapshot(self) -> AccountStore:
        with self._store_lock:
            return self._store.copy()

    # --- HTTP ---
    def _request(self, method: str, url: str, *, params=None, json_body=None, data=None, headers=None) -> requests.Response:
        token = self.ensure_token()
        hdrs = {'Authorization': f'Bearer {token}', 'Accept': 'application/json'}
        if headers:
            hdrs.update(headers)
        try:
            resp = self._http.request(
                method, url, params=params, json=json_body, data=data, headers=hdrs, timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise HttpError(str(exc)) from exc
        logger.debug("%s %s -> %s", method, url, resp.status_code)
        return resp

    def get(self, url: str, params: Optional[dict] = None) -> Optional[dict]:
        return handle_response(self._request('GET', url, params=params))

    def post(self, url: str, body: Optional[dict] = None, params: Optional[dict] = None) -> Optional[dict]:
        return handle_response(self._request('POST', url, params=params, json_body=body if body is not None else {}))

    def post_empty(self, url: str, params: Optional[dict] = None) -> Optional[dict]:
        return handle_response(self._request('POST', url, params=params))

    def put(self, url: str, body: dict, params: Optional[dict] = None) -> Optional[dict]:
        return handle_response(self._request('PUT', url, params=params, json_body=body))

    def patch(self, url: str, body: dict, params: Optional[dict] = None) -> Optional[dict]:
        return handle_response(self._request('PATCH', url, params=params, json_body=body))

    def delete(self, url: str, params: Optional[dict] = None) -> Optional[dict]:
        return handle_response(self._request('DELETE', url, params=params))

    def upload(self, url: str, metadata: dict, content: bytes, mime_type: str, params: Optional[dict] = None) -> Optional[dict]:
        """Multipart (metadata + media) upload in one request."""
        boundary = f"gw_console_{uuid.uuid4().hex}"
        query = dict(params or {})
        query.setdefault('uploadType', 'multipart')
        resp = self._request(
            'POST', url, params=query,
            data=_multipart_related(boundary, metadata, content, mime_type),
            headers={'Content-Type': f'multipart/related; boundary={boundary}'},
        )
        return handle_response(resp)

    def download(self, url: str, params: Optional[dict] = None) -> bytes:
        resp = self._request('GET', url, params=params)
        _raise_for_status(resp)
        return resp.content
