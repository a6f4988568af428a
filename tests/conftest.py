"""Shared fixtures for the NCBI service client tests."""

from unittest.mock import Mock
from urllib.parse import parse_qs, urlsplit

import pytest
import requests


class FakeClock:
    """Manual clock whose sleep() advances time instead of blocking."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_response(text: str, status_code: int = 200) -> Mock:
    """Build a stand-in for a requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.text = text
    return response


def sent_params(call, multi: bool = False) -> dict:
    """
    Decode the query parameters of a recorded session.get call.

    With multi=True every value is the list of all values sent for the name.
    """
    url = call.args[0]
    params = parse_qs(urlsplit(url).query)
    if multi:
        return params
    return {k: v[0] for k, v in params.items()}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    """A requests session double; tests queue responses on session.get."""
    fake = Mock(spec=requests.Session)
    fake.headers = {}
    return fake
