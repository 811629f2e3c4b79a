"""Tests for HTTP client adapter."""

import json
from itertools import chain, repeat
from unittest.mock import AsyncMock, Mock, patch

import aiohttp
import pytest
from aiohttp import ClientTimeout

from batchreq.adapters.driven.http.client import HttpClient
from batchreq.core.errors import HttpStatusError
from batchreq.ports.http import HttpMethod, HttpResponse, RequestPayload
from batchreq.ports.metrics import HttpAttemptDto, MetricsPort

__all__ = []


class DummyMetrics(MetricsPort):
    """Metrics implementation for testing."""

    def __init__(self) -> None:
        self.attempts: list[HttpAttemptDto] = []

    def update(self, attempt: HttpAttemptDto) -> None:
        """Record attempt."""
        self.attempts.append(attempt)

    def __str__(self) -> str:
        """Return string representation."""
        return f"Recorded {len(self.attempts)} attempts"


def make_response(status: int = 200, json_body: object = None, text: str = "") -> Mock:
    """Create an aiohttp-like response.

    Args:
        status: HTTP status code.
        json_body: Value returned by ``json()``.
        text: Value returned by ``text()``.

    Returns:
        Response mock.
    """
    resp = Mock()
    resp.status = status
    resp.headers = {"Content-Type": "application/json"}
    resp.url = "http://test/event"
    resp.json = AsyncMock(return_value=json_body)
    resp.text = AsyncMock(return_value=text)
    return resp


def make_client(resp: Mock, metrics: MetricsPort | None = None) -> HttpClient:
    client = HttpClient(metrics=metrics)
    client.session = Mock()
    client.session.request = AsyncMock(return_value=resp)
    return client


@pytest.mark.asyncio
async def test_http_client_context_manager() -> None:
    """HTTP client should initialize and close session."""
    client = HttpClient()
    assert client.session is None

    async with client as c:
        assert c.session is not None
        assert c is client

    assert client.session.closed


@pytest.mark.asyncio
async def test_execute_raises_if_session_not_initialized() -> None:
    """execute() should raise if session is None."""
    client = HttpClient()

    with pytest.raises(RuntimeError, match="Session not initialized"):
        await client.execute(HttpMethod.GET, RequestPayload(url="http://test"))


@pytest.mark.asyncio
async def test_execute_returns_decoded_json_body() -> None:
    """JSON payloads should resolve with the decoded body."""
    client = make_client(make_response(json_body={"testing": True}))
    payload = RequestPayload(url="http://test/event", headers={"h": "v"}, json=True)

    res = await client.execute(HttpMethod.GET, payload)

    assert res == {"testing": True}
    client.session.request.assert_awaited_once_with(
        "GET", "http://test/event", headers={"h": "v"}
    )


@pytest.mark.asyncio
async def test_execute_returns_text_body_without_json() -> None:
    """Non-JSON payloads should resolve with the response text."""
    client = make_client(make_response(text="plain"))

    res = await client.execute(HttpMethod.DELETE, RequestPayload(url="http://test/event"))

    assert res == "plain"


@pytest.mark.asyncio
async def test_full_response_toggle() -> None:
    """The same outcome should yield a response object or just the body."""
    resp = make_response(status=201, json_body={"id": 7})
    client = make_client(resp)
    body_payload = RequestPayload(url="http://test/event", json=True)
    full_payload = RequestPayload(
        url="http://test/event", json=True, resolve_with_full_response=True
    )

    body = await client.execute(HttpMethod.POST, body_payload)
    full = await client.execute(HttpMethod.POST, full_payload)

    assert body == {"id": 7}
    assert isinstance(full, HttpResponse)
    assert full.status == 201
    assert full.ok is True
    assert full.body == {"id": 7}
    assert full.headers == {"Content-Type": "application/json"}


@pytest.mark.asyncio
async def test_error_status_raises_for_body_only_requests() -> None:
    """A non-2xx status should reject body-only requests."""
    client = make_client(make_response(status=500, text="oops"))

    with pytest.raises(HttpStatusError) as exc_info:
        await client.execute(HttpMethod.GET, RequestPayload(url="http://test/event"))

    assert exc_info.value.status == 500
    assert exc_info.value.body == "oops"


@pytest.mark.asyncio
async def test_error_status_is_embedded_in_full_response() -> None:
    """A non-2xx status should be returned when the full response was asked for."""
    client = make_client(make_response(status=404, text="missing"))
    payload = RequestPayload(url="http://test/event", resolve_with_full_response=True)

    res = await client.execute(HttpMethod.GET, payload)

    assert res.status == 404
    assert res.ok is False
    assert res.body == "missing"


def make_html_error_response(status: int = 404) -> Mock:
    resp = make_response(status=status, text="Not Found")
    resp.headers = {"Content-Type": "text/html"}
    resp.json = AsyncMock(side_effect=json.JSONDecodeError("Expecting value", "Not Found", 0))
    return resp


@pytest.mark.asyncio
async def test_json_error_page_is_returned_as_text_in_full_response() -> None:
    """A non-JSON error page should not break a JSON full-response request."""
    resp = make_html_error_response()
    client = make_client(resp)
    payload = RequestPayload(
        url="http://test/event", json=True, resolve_with_full_response=True
    )

    res = await client.execute(HttpMethod.GET, payload)

    assert isinstance(res, HttpResponse)
    assert res.status == 404
    assert res.body == "Not Found"
    resp.json.assert_not_awaited()


@pytest.mark.asyncio
async def test_json_error_page_raises_status_error() -> None:
    """A non-JSON error page should surface as HttpStatusError, not a decode error."""
    metrics = DummyMetrics()
    client = make_client(make_html_error_response(status=502), metrics)

    with pytest.raises(HttpStatusError) as exc_info:
        await client.execute(HttpMethod.GET, RequestPayload(url="http://test/event", json=True))

    assert exc_info.value.status == 502
    assert exc_info.value.body == "Not Found"
    assert metrics.attempts[0].status_code == 502
    assert metrics.attempts[0].is_failed is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        json.JSONDecodeError("Expecting value", "<html>", 0),
        aiohttp.ContentTypeError(Mock(), ()),
    ],
)
async def test_undecodable_success_body_falls_back_to_text(error: Exception) -> None:
    """A 2xx body that is not JSON should resolve with its text."""
    resp = make_response(status=200, text="<html>")
    resp.json = AsyncMock(side_effect=error)
    client = make_client(resp)

    res = await client.execute(HttpMethod.GET, RequestPayload(url="http://test/event", json=True))

    assert res == "<html>"
    resp.json.assert_awaited_once_with(content_type=None)


@pytest.mark.asyncio
async def test_network_errors_propagate_verbatim() -> None:
    """aiohttp errors should reach the caller unchanged."""
    metrics = DummyMetrics()
    client = HttpClient(metrics=metrics)
    client.session = Mock()
    error = aiohttp.ClientConnectionError("refused")
    client.session.request = AsyncMock(side_effect=error)

    with pytest.raises(aiohttp.ClientConnectionError) as exc_info:
        await client.execute(HttpMethod.GET, RequestPayload(url="http://test/event"))

    assert exc_info.value is error
    assert metrics.attempts[0].is_failed is True
    assert metrics.attempts[0].status_code is None


def test_request_kwargs_mapping() -> None:
    """Payload fields should map onto ClientSession.request arguments."""
    client = HttpClient(timeout_sec=7)

    kwargs = client.request_kwargs(
        RequestPayload(
            url="http://test",
            headers={"h": "v"},
            body={"testing": True},
            json=True,
            qs={"page": 4},
            timeout=3000,
            options={"allow_redirects": False},
        )
    )

    assert kwargs == {
        "headers": {"h": "v"},
        "params": {"page": 4},
        "json": {"testing": True},
        "timeout": ClientTimeout(total=3.0),
        "allow_redirects": False,
    }


def test_request_kwargs_body_and_defaults() -> None:
    """Raw bodies go to data, JSON objects to json, and the default timeout applies."""
    client = HttpClient(timeout_sec=7)

    raw = client.request_kwargs(RequestPayload(url="http://test", body="raw"))
    json_object = client.request_kwargs(RequestPayload(url="http://test", json={"a": 1}))

    assert raw == {"data": "raw", "timeout": ClientTimeout(total=7)}
    assert json_object["json"] == {"a": 1}


@pytest.mark.asyncio
async def test_http_client_records_metrics() -> None:
    """HTTP client should update metrics after request."""
    metrics = DummyMetrics()
    client = make_client(make_response(status=201, text="ok"), metrics=metrics)

    with patch("batchreq.adapters.driven.http.client.asyncio.get_running_loop") as mock_loop:
        mock_loop.return_value.time.side_effect = chain([100.0], repeat(100.05))
        await client.execute(HttpMethod.POST, RequestPayload(url="http://test/event"))

    assert len(metrics.attempts) == 1
    attempt = metrics.attempts[0]
    assert attempt.method == "POST"
    assert attempt.status_code == 201
    assert attempt.is_failed is False
    assert attempt.finished_at_sec - attempt.started_at_sec == pytest.approx(0.05)


@pytest.mark.asyncio
async def test_http_client_marks_failures() -> None:
    """HTTP client should mark status >= 400 as failed."""
    metrics = DummyMetrics()
    client = make_client(make_response(status=500), metrics=metrics)
    payload = RequestPayload(url="http://test/event", resolve_with_full_response=True)

    resp = await client.execute(HttpMethod.POST, payload)

    assert resp.status == 500
    assert metrics.attempts[0].is_failed is True
