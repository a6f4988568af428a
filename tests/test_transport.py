"""Tests for the rate-gated service endpoint."""

from unittest.mock import Mock, patch

import pytest
import requests

from conftest import make_response, sent_params
from ncbi_services.config import GET_METHOD_LIMIT
from ncbi_services.exceptions import APIError, RateLimitError
from ncbi_services.ratelimit import RateGate
from ncbi_services.transport import ServiceEndpoint

URL = "https://example.org/service.cgi"


@pytest.fixture
def gate():
    gate = Mock(spec=RateGate)
    gate.interval = 0.0
    return gate


@pytest.fixture
def endpoint(session, gate):
    return ServiceEndpoint(URL, gate, tool="test-tool", email="test@example.com", session=session)


def test_short_request_uses_get(endpoint, session, gate):
    """Test small queries go out as GET with identification attached."""
    session.get.return_value = make_response("ok")

    assert endpoint.call({"db": "pubmed", "term": "cancer", "empty": None}) == "ok"

    gate.wait.assert_called_once()
    session.post.assert_not_called()
    params = sent_params(session.get.call_args)
    assert params == {
        "db": "pubmed",
        "term": "cancer",
        "tool": "test-tool",
        "email": "test@example.com",
    }


def test_long_request_uses_post(endpoint, session, gate):
    """Test queries reaching the URL length limit are POSTed."""
    session.post.return_value = make_response("ok")
    query = "A" * GET_METHOD_LIMIT

    assert endpoint.call({"QUERY": query}) == "ok"

    session.get.assert_not_called()
    args, kwargs = session.post.call_args
    assert args[0] == URL
    assert f"QUERY={query}" in kwargs["data"]
    gate.wait.assert_called_once()


def test_api_key_is_sent(session, gate):
    """Test the API key is added when configured."""
    endpoint = ServiceEndpoint(URL, gate, email="test@example.com", api_key="secret", session=session)
    session.get.return_value = make_response("ok")

    endpoint.call({})

    assert sent_params(session.get.call_args)["api_key"] == "secret"


def test_user_agent_header(endpoint, session):
    """Test the session carries a descriptive user agent."""
    assert session.headers["User-Agent"].startswith("NCBI-Services/")


def test_http_error_wrapped(endpoint, session):
    """Test HTTP errors surface as APIError with the status code."""
    response = make_response("server error", status_code=500)
    response.raise_for_status.side_effect = requests.HTTPError("500", response=response)
    session.get.return_value = response

    with pytest.raises(APIError) as exc_info:
        endpoint.call({})

    assert exc_info.value.status_code == 500
    assert session.get.call_count == 1


def test_connection_error_not_retried(endpoint, session):
    """Test transport failures propagate without retries."""
    session.get.side_effect = requests.ConnectionError("refused")

    with pytest.raises(APIError) as exc_info:
        endpoint.call({})

    assert exc_info.value.status_code is None
    assert session.get.call_count == 1


def test_throttled_request_raised_to_caller(endpoint, session, gate):
    """Test HTTP 429 is raised unchanged when no retries were requested."""
    session.get.return_value = make_response("slow down", status_code=429)

    with patch("time.sleep") as sleep:
        with pytest.raises(RateLimitError):
            endpoint.call({})

    assert session.get.call_count == 1
    assert gate.wait.call_count == 1
    sleep.assert_not_called()


def test_throttled_request_is_retried_when_requested(session, gate):
    """Test opted-in retries repeat a throttled request through the gate."""
    endpoint = ServiceEndpoint(URL, gate, session=session, retries=2)
    session.get.side_effect = [
        make_response("slow down", status_code=429),
        make_response("ok"),
    ]

    with patch("time.sleep"):
        assert endpoint.call({}) == "ok"

    assert session.get.call_count == 2
    assert gate.wait.call_count == 2


def test_throttling_gives_up(session, gate):
    """Test persistent throttling is reported once the retries are spent."""
    endpoint = ServiceEndpoint(URL, gate, session=session, retries=2)
    session.get.return_value = make_response("slow down", status_code=429)

    with patch("time.sleep"):
        with pytest.raises(RateLimitError):
            endpoint.call({})

    assert session.get.call_count == 3


def test_retries_do_not_cover_transport_errors(session, gate):
    """Test opted-in retries leave connection failures to the caller."""
    endpoint = ServiceEndpoint(URL, gate, session=session, retries=2)
    session.get.side_effect = requests.ConnectionError("refused")

    with pytest.raises(APIError):
        endpoint.call({})

    assert session.get.call_count == 1


def test_context_manager_closes_session(session, gate):
    """Test the endpoint closes its session on exit."""
    with ServiceEndpoint(URL, gate, session=session):
        pass
    session.close.assert_called_once()
