import datetime as dt
import json
import os
import sys

import pytest
import requests

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from gw_accounts import Account, AccountStore, Credentials  # noqa: E402
from gw_session import SessionManager  # noqa: E402


def make_response(status=200, payload=None, text=None, headers=None):
    resp = requests.Response()
    resp.status_code = status
    resp.encoding = 'utf-8'
    if payload is not None:
        resp._content = json.dumps(payload).encode('utf-8')
        resp.headers['Content-Type'] = 'application/json'
    elif text is not None:
        resp._content = text.encode('utf-8')
    else:
        resp._content = b''
    for key, value in (headers or {}).items():
        resp.headers[key] = value
    return resp


def make_credentials(token='tok', minutes=60, refresh='refresh-tok'):
    return Credentials(
        client_id='client-id',
        client_secret='client-secret',
        access_token=token,
        refresh_token=refresh,
        token_expiry=dt.datetime.now(dt.timezone.utc) + dt.timedelta(minutes=minutes),
    )


class FakeHttp:
    """Stands in for requests.Session: records calls, replays canned responses.

    `handler(method, url, kwargs)` takes precedence over the `responses` queue.
    Token refreshes go through `post` and consume `token_responses`.
    """

    def __init__(self, responses=None, token_responses=None, handler=None):
        self.responses = list(responses or [])
        self.token_responses = list(token_responses or [])
        self.handler = handler
        self.calls = []
        self.posts = []

    def post(self, url, data=None, timeout=None):
        self.posts.append({'url': url, 'data': data, 'timeout': timeout})
        result = self.token_responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.handler is not None:
            result = self.handler(method, url, kwargs)
        elif self.responses:
            result = self.responses.pop(0)
        else:
            result = make_response(200, {})
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def response():
    return make_response


@pytest.fixture
def credentials():
    return make_credentials


@pytest.fixture
def fake_http():
    return FakeHttp()


@pytest.fixture
def http_factory():
    return FakeHttp


@pytest.fixture
def store_path(tmp_path):
    return str(tmp_path / 'accounts.yaml')


@pytest.fixture
def store(store_path):
    s = AccountStore(store_path)
    s.add('work', Account('work', 'Work', make_credentials(token='work-token')))
    s.add('personal', Account('personal', 'Personal', make_credentials(token='personal-token')))
    s.save()
    return s


@pytest.fixture
def session(store, fake_http):
    return SessionManager(store, http=fake_http)
