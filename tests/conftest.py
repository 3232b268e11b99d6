"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

from typing import Any, Generator

import httpx
import pytest

from grokbridge.core.credentials import Credentials
from grokbridge.core.transport import UpstreamTransport
from grokbridge.core.upstream_transport import (
    clear_upstream_transports,
    register_upstream_transport_for_url,
)
from grokbridge.testing import BASE_PATH, FakeUpstream

UPSTREAM_URL = f"http://grok.test{BASE_PATH}"
TEST_COOKIES = {"sso": "sso-token", "sso-rw": "sso-rw-token", "x-anonuserid": "anon"}

_ENV_VARS = (
    "GROK_COOKIES",
    "GROKBRIDGE_CONFIG",
    "GROKBRIDGE_HOST",
    "GROKBRIDGE_PORT",
    "VERBOSE",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch) -> None:
    """Keep the developer's shell environment out of the tests."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Transport Registry Fixtures
# =============================================================================


@pytest.fixture
def clear_transport_registry() -> Generator[None, None, None]:
    """Clear upstream transport registry after test.

    Use this fixture in tests that register fake transports.
    """
    yield
    clear_upstream_transports()


@pytest.fixture
def fake_upstream(clear_transport_registry: None) -> FakeUpstream:
    """A scripted upstream reachable at ``UPSTREAM_URL``."""
    upstream = FakeUpstream()
    register_upstream_transport_for_url(UPSTREAM_URL, httpx.ASGITransport(app=upstream.app))
    return upstream


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(dict(TEST_COOKIES))


@pytest.fixture
def transport(fake_upstream: FakeUpstream, credentials: Credentials) -> UpstreamTransport:
    return UpstreamTransport(credentials, base_url=UPSTREAM_URL, timeout=5.0)


# =============================================================================
# Configuration Builders
# =============================================================================


def build_bridge_config(
    *,
    models: list[str] | None = None,
    verbose: bool = False,
    temporary: bool = True,
) -> dict[str, Any]:
    """Build a config wired to the fake upstream.

    Args:
        models: Advertised model names
        verbose: Enable verbose request logging
        temporary: Send proxy turns as temporary conversations

    Returns:
        Config dict for ``create_app``
    """
    return {
        "upstream": {
            "base_url": UPSTREAM_URL,
            "model_name": "grok-3",
            "request_timeout": 5,
        },
        "credentials": {"cookies": dict(TEST_COOKIES)},
        "proxy_settings": {
            "server": {"host": "127.0.0.1", "port": 9999},
            "verbose_logging": verbose,
            "temporary": temporary,
            "models": models or ["gpt-4", "grok-3"],
        },
    }
