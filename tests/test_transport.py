"""Tests for the authenticated upstream transport."""

import httpx
import pytest

from conftest import UPSTREAM_URL
from grokbridge.core.transport import (
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT,
    UpstreamTransport,
    format_httpx_error,
    parse_timeout,
    transport_from_config,
)
from grokbridge.core.upstream_transport import (
    get_upstream_transport,
    register_upstream_transport,
    register_upstream_transport_for_url,
)
from grokbridge.testing import BASE_PATH, build_turn_records


def test_build_url_joins_paths(credentials):
    transport = UpstreamTransport(credentials, base_url="https://grok.com/rest/app-chat/")
    assert transport.build_url("/conversations/new") == (
        "https://grok.com/rest/app-chat/conversations/new"
    )


def test_extra_headers_override_defaults(credentials):
    transport = UpstreamTransport(credentials, headers={"user-agent": "test-agent"})
    assert transport.headers["user-agent"] == "test-agent"
    assert transport.headers["origin"] == "https://grok.com"


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, DEFAULT_TIMEOUT), (30, 30.0), ("12.5", 12.5), (0, None), ("nope", DEFAULT_TIMEOUT)],
)
def test_parse_timeout(value, expected):
    assert parse_timeout(value) == expected


def test_transport_from_config(monkeypatch):
    monkeypatch.setenv("GROK_COOKIES", '{"sso": "x"}')
    transport = transport_from_config({"upstream": {"request_timeout": 15}})
    assert transport.base_url == DEFAULT_BASE_URL
    assert transport.timeout == 15.0
    assert transport.credentials.cookies == {"sso": "x"}


def test_format_httpx_error_includes_request():
    request = httpx.Request("POST", "https://grok.com/rest/app-chat/conversations/new")
    message = format_httpx_error(httpx.ReadTimeout("timed out", request=request), timeout=5.0)
    assert "ReadTimeout" in message
    assert "request=POST https://grok.com/rest/app-chat/conversations/new" in message
    assert "timeout=5.0s" in message


def test_format_httpx_error_falls_back_to_url():
    message = format_httpx_error(httpx.ConnectError("refused"), url="https://grok.com/x")
    assert "url=https://grok.com/x" in message


def test_registry_matches_host_case_insensitively(clear_transport_registry):
    fake = httpx.MockTransport(lambda request: httpx.Response(200))
    register_upstream_transport("Grok.Test", fake)
    assert get_upstream_transport(UPSTREAM_URL) is fake
    assert get_upstream_transport("http://other.test/x") is None
    assert get_upstream_transport("") is None


def test_register_requires_host():
    with pytest.raises(ValueError):
        register_upstream_transport("", httpx.MockTransport(lambda request: httpx.Response(200)))


@pytest.mark.asyncio
async def test_open_stream_yields_body_lines(transport, fake_upstream):
    fake_upstream.enqueue_turn(["a"], response_id="r1", conversation_id="abc")

    async with transport.open_stream("conversations/new", {"message": "hi"}) as lines:
        received = [line async for line in lines]

    assert len(received) == len(build_turn_records(["a"], conversation_id="abc"))
    assert fake_upstream.last_request["path"] == f"{BASE_PATH}/conversations/new"
    assert fake_upstream.last_request["json"] == {"message": "hi"}


@pytest.mark.asyncio
async def test_open_stream_closes_response_on_early_exit(clear_transport_registry, credentials):
    closed = []

    class TrackingStream(httpx.AsyncByteStream):
        async def __aiter__(self):
            yield b'{"result": {}}\n'
            yield b'{"result": {}}\n'

        async def aclose(self):
            closed.append(True)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, stream=TrackingStream())

    register_upstream_transport_for_url(UPSTREAM_URL, httpx.MockTransport(handler))
    transport = UpstreamTransport(credentials, base_url=UPSTREAM_URL)

    async with transport.open_stream("conversations/new", {}) as lines:
        async for _ in lines:
            break

    assert closed == [True]
