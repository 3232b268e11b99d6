"""Tests for driving conversation turns against a fake upstream."""

import httpx
import pytest

from conftest import TEST_COOKIES, UPSTREAM_URL
from grokbridge.conversation import ConversationClient, ConversationContext, TurnOptions
from grokbridge.core.exceptions import (
    InvalidRequestError,
    NotFoundError,
    StreamingError,
    TransportError,
    TurnInProgressError,
    UnauthorizedError,
)
from grokbridge.core.transport import UpstreamTransport
from grokbridge.core.upstream_transport import register_upstream_transport_for_url
from grokbridge.stream import Final, Token
from grokbridge.testing import (
    BASE_PATH,
    build_error_record,
    build_soft_stop_record,
    build_token_record,
    build_turn_records,
)


@pytest.mark.asyncio
async def test_multi_turn_conversation_threads_ids(transport, fake_upstream):
    fake_upstream.enqueue_turn(["Hel", "lo"], response_id="r1", conversation_id="abc")
    fake_upstream.enqueue_turn(["Again"], response_id="r2", wrapped=False)
    client = ConversationClient(transport)

    first = await client.ask("hi")
    assert first.message == "Hello"
    assert first.conversation_id == "abc"
    assert client.context.conversation_id == "abc"
    assert client.context.last_response_id == "r1"

    second = await client.ask("and again")
    assert second.message == "Again"
    assert client.context.conversation_id == "abc"
    assert client.context.last_response_id == "r2"

    assert fake_upstream.paths == [
        f"{BASE_PATH}/conversations/new",
        f"{BASE_PATH}/conversations/abc/responses",
    ]
    assert fake_upstream.received[1]["json"]["parentResponseId"] == "r1"
    assert fake_upstream.received[1]["json"]["message"] == "and again"


@pytest.mark.asyncio
async def test_streams_tokens_before_final(transport, fake_upstream):
    fake_upstream.enqueue_turn(["a", "b", "c"], response_id="r1", conversation_id="abc")
    client = ConversationClient(transport)

    turn = client.send_turn("stream please")
    events = [event async for event in turn]

    assert events[:3] == [Token("a", "r1"), Token("b", "r1"), Token("c", "r1")]
    assert isinstance(events[-1], Final)
    assert turn.completed
    assert turn.result.message == "abc"


@pytest.mark.asyncio
async def test_cookies_and_browser_headers_are_sent(transport, fake_upstream):
    fake_upstream.enqueue_turn(["x"], response_id="r1", conversation_id="abc")
    await ConversationClient(transport).ask("hi")

    request = fake_upstream.last_request
    assert request["cookies"] == TEST_COOKIES
    assert request["headers"]["origin"] == "https://grok.com"
    assert request["headers"]["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_heartbeats_are_not_forwarded(transport, fake_upstream):
    fake_upstream.enqueue_records(
        [
            build_soft_stop_record("r1"),
            build_token_record("x", "r1"),
            build_soft_stop_record("r1"),
        ]
    )
    turn = ConversationClient(transport).send_turn("hi")
    events = [event async for event in turn]
    assert [type(e) for e in events] == [Token, Final]


@pytest.mark.asyncio
async def test_malformed_records_are_skipped(transport, fake_upstream):
    fake_upstream.enqueue_records(
        build_turn_records(["ok"], response_id="r1", conversation_id="abc"),
        inject_malformed_at=1,
    )
    result = await ConversationClient(transport).ask("hi")
    assert result.message == "ok"


@pytest.mark.asyncio
async def test_breaking_at_final_still_records_context(transport, fake_upstream):
    fake_upstream.enqueue_turn(["x"], response_id="r1", conversation_id="abc")
    client = ConversationClient(transport)

    turn = client.send_turn("hi")
    async for event in turn:
        if isinstance(event, Final):
            break
    await turn.aclose()

    assert client.context.conversation_id == "abc"
    assert not client.tracker.in_flight


@pytest.mark.asyncio
async def test_cancelled_turn_leaves_context_untouched(transport, fake_upstream):
    fake_upstream.enqueue_turn(["a", "b"], response_id="r9", conversation_id="abc")
    fake_upstream.enqueue_turn(["fresh"], response_id="r1", conversation_id="new")
    client = ConversationClient(transport)

    async with client.send_turn("hi") as turn:
        async for event in turn:
            assert event == Token("a", "r9")
            break

    assert client.context.conversation_id is None
    assert client.context.last_response_id is None
    assert not client.tracker.in_flight

    result = await client.ask("try again")
    assert result.conversation_id == "new"
    assert fake_upstream.paths[-1] == f"{BASE_PATH}/conversations/new"


@pytest.mark.asyncio
async def test_overlapping_turns_are_rejected(transport, fake_upstream):
    fake_upstream.enqueue_turn(["x"], response_id="r1", conversation_id="abc")
    client = ConversationClient(transport)

    turn = client.send_turn("one")
    with pytest.raises(TurnInProgressError):
        client.send_turn("two")
    await turn.collect()
    assert not client.tracker.in_flight


@pytest.mark.asyncio
async def test_turn_can_only_be_consumed_once(transport, fake_upstream):
    fake_upstream.enqueue_turn(["x"], response_id="r1", conversation_id="abc")
    turn = ConversationClient(transport).send_turn("hi")
    await turn.collect()
    with pytest.raises(RuntimeError):
        await turn.collect()


def test_empty_message_is_rejected(transport):
    client = ConversationClient(transport)
    with pytest.raises(InvalidRequestError):
        client.send_turn("   ")
    assert not client.tracker.in_flight


@pytest.mark.asyncio
async def test_reasoning_and_deep_search_conflict_is_reported(transport, fake_upstream):
    fake_upstream.enqueue_turn(["x"], response_id="r1", conversation_id="abc")
    client = ConversationClient(transport, context=ConversationContext(deep_search=True))

    turn = client.send_turn("think", TurnOptions(reasoning=True))
    result = await turn.collect()

    assert turn.warnings == result.warnings
    assert len(result.warnings) == 1
    payload = fake_upstream.last_request["json"]
    assert payload["isReasoning"] is True
    assert payload["deepsearchPreset"] == ""


@pytest.mark.asyncio
async def test_reset_starts_new_conversation(transport, fake_upstream):
    fake_upstream.enqueue_turn(["x"], response_id="r1", conversation_id="abc")
    fake_upstream.enqueue_turn(["y"], response_id="r2", conversation_id="def")
    client = ConversationClient(transport)

    await client.ask("one")
    client.reset()
    await client.ask("two")

    assert client.context.conversation_id == "def"
    assert fake_upstream.paths[-1] == f"{BASE_PATH}/conversations/new"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "error_cls"),
    [(401, UnauthorizedError), (403, UnauthorizedError), (404, NotFoundError), (500, TransportError)],
)
async def test_http_errors_map_to_typed_exceptions(transport, fake_upstream, status, error_cls):
    fake_upstream.enqueue_error_response(status, "nope")
    client = ConversationClient(
        transport, context=ConversationContext(conversation_id="abc", last_response_id="r1")
    )

    with pytest.raises(error_cls) as exc_info:
        await client.ask("hi")

    assert exc_info.value.status_code == status
    assert client.context.last_response_id == "r1"
    assert not client.tracker.in_flight


@pytest.mark.asyncio
async def test_server_error_message_includes_status(transport, fake_upstream):
    fake_upstream.enqueue_error_response(500, "boom")
    with pytest.raises(TransportError, match="HTTP Error: 500"):
        await ConversationClient(transport).ask("hi")


@pytest.mark.asyncio
async def test_in_band_error_record_raises(transport, fake_upstream):
    fake_upstream.enqueue_records([build_token_record("a", "r1"), build_error_record("overloaded")])
    with pytest.raises(TransportError, match="overloaded"):
        await ConversationClient(transport).ask("hi")


@pytest.mark.asyncio
async def test_empty_stream_raises_streaming_error(transport, fake_upstream):
    fake_upstream.enqueue_records([])
    client = ConversationClient(transport)
    with pytest.raises(StreamingError):
        await client.ask("hi")
    assert client.context.is_new


@pytest.mark.asyncio
async def test_connection_failure_raises_transport_error(clear_transport_registry, credentials):
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    register_upstream_transport_for_url(UPSTREAM_URL, httpx.MockTransport(refuse))
    client = ConversationClient(UpstreamTransport(credentials, base_url=UPSTREAM_URL))

    with pytest.raises(TransportError, match="ConnectError"):
        await client.ask("hi")
    assert not client.tracker.in_flight


@pytest.mark.asyncio
async def test_from_config_reads_cookies_from_env(monkeypatch, fake_upstream):
    monkeypatch.setenv("GROK_COOKIES", '{"sso": "from-env"}')
    fake_upstream.enqueue_turn(["x"], response_id="r1", conversation_id="abc")
    client = ConversationClient.from_config({"upstream": {"base_url": UPSTREAM_URL}})

    await client.ask("hi")
    assert fake_upstream.last_request["cookies"] == {"sso": "from-env"}


@pytest.mark.asyncio
async def test_stream_turn_yields_events_and_records_result(transport, fake_upstream):
    fake_upstream.enqueue_turn(["Hel", "lo"], response_id="r1", conversation_id="abc")
    client = ConversationClient(transport)

    events = [event async for event in client.stream_turn("hi")]

    assert [type(e) for e in events] == [Token, Token, Final]
    assert client.context.conversation_id == "abc"
    assert not client.tracker.in_flight


@pytest.mark.asyncio
async def test_turn_started_before_reset_does_not_rebind_context(transport, fake_upstream):
    fake_upstream.enqueue_turn(["a", "b"], response_id="r1", conversation_id="old")
    fake_upstream.enqueue_turn(["fresh"], response_id="r2", conversation_id="new")
    client = ConversationClient(transport)

    old_turn = client.send_turn("hi")
    events = old_turn.__aiter__()
    assert await events.__anext__() == Token("a", "r1")

    client.reset()
    new_turn = client.send_turn("fresh")
    assert new_turn.is_new

    async for _ in events:
        pass
    assert old_turn.result is not None
    assert client.context.conversation_id is None
    assert client.context.last_response_id is None
    assert client.tracker.in_flight

    result = await new_turn.collect()
    assert result.conversation_id == "new"
    assert client.context.conversation_id == "new"
    assert client.context.last_response_id == "r2"
    assert not client.tracker.in_flight
