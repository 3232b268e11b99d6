"""Tests for the interactive chat script."""

import importlib.util
import logging
import sys
from pathlib import Path

import pytest

from grokbridge.conversation import ConversationClient

SCRIPT_PATH = Path(__file__).resolve().parents[1] / "scripts" / "chat.py"


@pytest.fixture()
def chat_script():
    path_before = list(sys.path)
    spec = importlib.util.spec_from_file_location("grokbridge_chat_script", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    assert sys.path == path_before
    return module


@pytest.mark.asyncio
async def test_stream_turn_prints_tokens_then_unseen_suffix(
    chat_script, transport, fake_upstream, capsys, monkeypatch
):
    fake_upstream.enqueue_turn(
        ["Hel"], response_id="r1", conversation_id="abc", final_message="Hello"
    )
    monkeypatch.setattr(logging.getLogger("grokbridge"), "handlers", [])
    client = ConversationClient(transport)

    await chat_script.stream_turn(client, "hi")

    assert capsys.readouterr().out == "Hello\n"
    assert client.context.conversation_id == "abc"


def test_print_metadata_summarises_results(chat_script, capsys):
    chat_script.print_metadata(
        {"web_search_results": [{"title": "Docs", "url": "https://example.com"}], "xposts": [1, 2]}
    )
    out = capsys.readouterr().out
    assert "[1 web search result(s)]" in out
    assert "  - Docs" in out
    assert "[2 referenced post(s)]" in out
