"""Shared fixtures: a Client whose HTTP session is replaced by a mock."""
import json
from unittest.mock import MagicMock

import pytest
import requests

from stream_chat.client import Client

BASE_URL = "https://chat.example.com"


def make_response(status_code=200, body=None, headers=None, raw=None):
    """Build a real requests.Response without touching the network."""
    resp = requests.Response()
    resp.status_code = status_code
    if raw is not None:
        resp._content = raw
    else:
        resp._content = json.dumps(body).encode("utf-8") if body is not None else b""
    resp.headers.update(headers or {})
    resp.url = f"{BASE_URL}/test"
    resp.reason = "OK" if status_code < 400 else "Error"
    resp.encoding = "utf-8"
    return resp


@pytest.fixture
def client():
    c = Client("test-key", "test-secret", base_url=BASE_URL)
    c.rest.session.request = MagicMock(return_value=make_response(200, {}))
    return c


@pytest.fixture
def reply(client):
    """Set the JSON body of the next response(s)."""
    def _reply(body=None, status_code=200, headers=None):
        client.rest.session.request.return_value = make_response(status_code, body, headers)
    return _reply


@pytest.fixture
def last_call(client):
    """Return (method, path, kwargs) of the most recent request."""
    def _last_call():
        call = client.rest.session.request.call_args
        method, url = call.args[0], call.args[1]
        return method, url[len(BASE_URL) + 1:], call.kwargs
    return _last_call


@pytest.fixture
def payload_param():
    """Decode the JSON `payload` query parameter used by GET query endpoints."""
    def _decode(kwargs):
        return json.loads(kwargs["params"]["payload"])
    return _decode


@pytest.fixture
def response_factory():
    return make_response
