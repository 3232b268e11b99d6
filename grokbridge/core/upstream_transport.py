"""In-process transports for the upstream chat service, keyed by host.

``UpstreamTransport`` consults this table when it builds its HTTP client, so
a fake upstream (an ASGI app or an ``httpx.MockTransport``) can stand in for
the real service without touching the configured base URL.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

logger = logging.getLogger("grokbridge")

_BY_HOST: dict[str, httpx.AsyncBaseTransport] = {}


def _host_key(url_or_host: str) -> str:
    if "://" in url_or_host:
        url = httpx.URL(url_or_host)
        key = url.host if url.port is None else f"{url.host}:{url.port}"
    else:
        key = url_or_host
    return key.strip().lower()


def register_upstream_transport(host: str, transport: httpx.AsyncBaseTransport) -> None:
    """Route requests for ``host`` (``name`` or ``name:port``) through ``transport``."""
    key = _host_key(host) if host else ""
    if not key:
        raise ValueError("host is required")
    _BY_HOST[key] = transport
    logger.debug("Upstream requests for '%s' now use %s", key, type(transport).__name__)


def register_upstream_transport_for_url(
    url: str, transport: httpx.AsyncBaseTransport
) -> None:
    """Same as ``register_upstream_transport`` with the host taken from ``url``."""
    register_upstream_transport(_host_key(url), transport)


def clear_upstream_transports() -> None:
    _BY_HOST.clear()


def get_upstream_transport(url: str) -> Optional[httpx.AsyncBaseTransport]:
    """Transport registered for the host of the upstream ``url``, if any."""
    if not url or "://" not in url:
        return None
    return _BY_HOST.get(_host_key(url))
