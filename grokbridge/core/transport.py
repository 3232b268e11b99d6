"""Authenticated HTTP transport for the upstream chat service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Optional

import httpx

from .credentials import Credentials, load_credentials
from .exceptions import NotFoundError, TransportError, UnauthorizedError
from .upstream_transport import get_upstream_transport

logger = logging.getLogger("grokbridge")

DEFAULT_BASE_URL = "https://grok.com/rest/app-chat"
DEFAULT_TIMEOUT = 60.0
ERROR_BODY_PREVIEW = 512

# Browser-like headers; the upstream rejects requests that don't look like its web app
DEFAULT_HEADERS = {
    "accept": "*/*",
    "accept-language": "en-GB,en;q=0.9",
    "content-type": "application/json",
    "origin": "https://grok.com",
    "priority": "u=1, i",
    "referer": "https://grok.com/",
    "sec-ch-ua": '"Not/A)Brand";v="8", "Chromium";v="126"',
    "sec-ch-ua-mobile": "?0",
    "sec-ch-ua-platform": '"macOS"',
    "sec-fetch-dest": "empty",
    "sec-fetch-mode": "cors",
    "sec-fetch-site": "same-origin",
    "user-agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36"
    ),
}


def format_httpx_error(exc: Any, url: Optional[str] = None, timeout: Optional[float] = None) -> str:
    """Produce a detailed, user-facing description of an httpx error."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)

    request = None
    try:
        request = exc.request
    except (AttributeError, RuntimeError):
        # httpx raises RuntimeError when the request was never attached
        request = None
    if request is not None:
        parts.append(f"request={request.method} {request.url}")
    elif url:
        parts.append(f"url={url}")

    if isinstance(exc, httpx.TimeoutException) and timeout:
        parts.append(f"timeout={timeout}s")

    return "; ".join(parts)


def _status_error(status_code: int, body: bytes) -> TransportError:
    preview = body[:ERROR_BODY_PREVIEW].decode("utf-8", errors="replace").strip()
    if status_code in (401, 403):
        return UnauthorizedError(
            f"upstream rejected credentials (HTTP {status_code})", status_code=status_code
        )
    if status_code == 404:
        return NotFoundError("upstream resource not found (HTTP 404)")
    detail = f"HTTP Error: {status_code}"
    if preview:
        detail = f"{detail}: {preview}"
    return TransportError(detail, status_code=status_code)


class UpstreamTransport:
    """Issues one POST per turn and exposes the response body as lines.

    The credential set is read-only and shared; every call opens its own
    client so independent conversations never share connection state.
    """

    def __init__(
        self,
        credentials: Credentials,
        base_url: str = DEFAULT_BASE_URL,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = dict(DEFAULT_HEADERS)
        if headers:
            self.headers.update(headers)

    def build_url(self, path: str) -> str:
        """Build the full URL for an upstream path."""
        return f"{self.base_url}/{path.lstrip('/')}"

    @asynccontextmanager
    async def open_stream(
        self, path: str, payload: Mapping[str, Any]
    ) -> AsyncIterator[AsyncIterator[str]]:
        """Send ``payload`` to ``path`` and yield an async iterator of body lines.

        The connection is released when the context exits, including when the
        consumer stops early or is cancelled.

        Raises:
            UnauthorizedError: On HTTP 401/403.
            NotFoundError: On HTTP 404.
            TransportError: On any other HTTP or connectivity failure.
        """
        url = self.build_url(path)
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            transport=get_upstream_transport(url),
            headers=self.headers,
            cookies=dict(self.credentials.cookies),
            follow_redirects=True,
        )
        try:
            request = client.build_request("POST", url, json=dict(payload))
            logger.debug("Sending upstream request to %s", url)
            try:
                resp = await client.send(request, stream=True)
            except httpx.HTTPError as exc:
                logger.error("Failed to reach upstream %s: %s", url, exc)
                raise TransportError(format_httpx_error(exc, url, self.timeout)) from exc

            try:
                if resp.status_code >= 400:
                    body = await resp.aread()
                    logger.warning("Upstream %s returned status %s", url, resp.status_code)
                    raise _status_error(resp.status_code, body)
                logger.debug("Upstream %s responded %s, streaming", url, resp.status_code)
                yield self._iter_lines(resp, url)
            finally:
                await resp.aclose()
        finally:
            await client.aclose()

    async def _iter_lines(self, resp: httpx.Response, url: str) -> AsyncIterator[str]:
        try:
            async for line in resp.aiter_lines():
                yield line
        except httpx.HTTPError as exc:
            logger.error("Error while reading upstream stream from %s: %s", url, exc)
            raise TransportError(format_httpx_error(exc, url, self.timeout)) from exc


def parse_timeout(value: Any) -> Optional[float]:
    """Parse a configured timeout; zero or negative disables it."""
    if value is None:
        return DEFAULT_TIMEOUT
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid request_timeout %r, using %ss", value, DEFAULT_TIMEOUT)
        return DEFAULT_TIMEOUT
    return timeout if timeout > 0 else None


def transport_from_config(config: Mapping[str, Any]) -> UpstreamTransport:
    """Build the upstream transport from the ``upstream`` and ``credentials`` sections."""
    upstream = config.get("upstream") or {}
    return UpstreamTransport(
        load_credentials(config),
        base_url=str(upstream.get("base_url") or DEFAULT_BASE_URL),
        timeout=parse_timeout(upstream.get("request_timeout")),
    )
