from __future__ import annotations

import pytest
import requests

from core.exceptions import FetchError
from core.settings import DashboardSettings
from core.source import fetch_payload


class FakeResponse:
    def __init__(self, status_code=200, body=None, bad_json=False):
        self.status_code = status_code
        self.ok = status_code < 400
        self._body = body
        self._bad_json = bad_json

    def json(self):
        if self._bad_json:
            raise ValueError("no json")
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requested = []

    def get(self, url, timeout=None, headers=None):
        self.requested.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response


def test_fetch_uses_proxy_prefixed_url_and_timeout() -> None:
    settings = DashboardSettings(cors_proxy="https://proxy/?", request_timeout=3.0)
    session = FakeSession(FakeResponse(body={"A": []}))

    assert fetch_payload(settings, session=session) == {"A": []}
    assert session.requested == [("https://proxy/?https://aff.reytech.be/grouped", 3.0)]


def test_http_error_status() -> None:
    with pytest.raises(FetchError) as info:
        fetch_payload(DashboardSettings(), session=FakeSession(FakeResponse(status_code=502)))

    assert info.value.status_code == 502


def test_network_error() -> None:
    with pytest.raises(FetchError):
        fetch_payload(DashboardSettings(), session=FakeSession(error=requests.ConnectionError("refused")))


def test_invalid_json() -> None:
    with pytest.raises(FetchError):
        fetch_payload(DashboardSettings(), session=FakeSession(FakeResponse(bad_json=True)))
