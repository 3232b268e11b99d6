#!/usr/bin/env python3
"""Interactive terminal chat against the upstream, without the proxy.

Usage:
    pip install -e . && python scripts/chat.py [--config configs/config_default.yaml] [--reasoning]

Commands inside the prompt:
    /reset    start a new conversation
    /reason   toggle reasoning mode
    /search   toggle deep search
    /exit     quit
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from grokbridge.config_loader import load_config
from grokbridge.conversation import ConversationClient, ConversationContext
from grokbridge.core.exceptions import BridgeError
from grokbridge.logging import setup_logging
from grokbridge.stream import Final, Token


def print_metadata(metadata: dict | None) -> None:
    if not metadata:
        return
    results = metadata.get("web_search_results") or []
    if results:
        print(f"[{len(results)} web search result(s)]")
        for item in results[:5]:
            if isinstance(item, dict):
                print(f"  - {item.get('title') or item.get('url')}")
    posts = metadata.get("xposts") or []
    if posts:
        print(f"[{len(posts)} referenced post(s)]")


async def stream_turn(client: ConversationClient, message: str) -> None:
    turn = client.send_turn(message)
    for warning in turn.warnings:
        print(f"[warning] {warning}")
    streamed = ""
    async with turn:
        async for event in turn:
            if isinstance(event, Token):
                streamed += event.text
                print(event.text, end="", flush=True)
            elif isinstance(event, Final):
                # Only print what the tokens did not already show
                if event.message.startswith(streamed):
                    print(event.message[len(streamed):], end="")
                print()
                print_metadata(event.metadata)


async def chat_loop(client: ConversationClient) -> None:
    context = client.context
    print("Type a message, or /reset, /reason, /search, /exit")
    while True:
        try:
            line = await asyncio.to_thread(input, "you> ")
        except EOFError:
            print()
            return
        message = line.strip()
        if not message:
            continue
        if message == "/exit":
            return
        if message == "/reset":
            client.reset()
            print("[new conversation]")
            continue
        if message == "/reason":
            context.reasoning = not context.reasoning
            print(f"[reasoning {'on' if context.reasoning else 'off'}]")
            continue
        if message == "/search":
            context.deep_search = not context.deep_search
            print(f"[deep search {'on' if context.deep_search else 'off'}]")
            continue

        print("grok> ", end="", flush=True)
        try:
            await stream_turn(client, message)
        except BridgeError as exc:
            print(f"\n[error] {exc.message}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Chat with Grok from the terminal")
    parser.add_argument("--config", default=None, help="Path to config file")
    parser.add_argument("--reasoning", action="store_true", help="Start with reasoning enabled")
    parser.add_argument("--deep-search", action="store_true", help="Start with deep search enabled")
    parser.add_argument("--personality", default="", help="Custom personality prompt")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    setup_logging(args.verbose)
    try:
        config = load_config(args.config)
        context = ConversationContext(
            reasoning=args.reasoning,
            deep_search=args.deep_search,
            personality=args.personality,
        )
        client = ConversationClient.from_config(config, context=context)
    except BridgeError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    try:
        asyncio.run(chat_loop(client))
    except KeyboardInterrupt:
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
