"""Verbose request logging for the HTTP front end."""

import logging
import time
from typing import Awaitable, Callable

from fastapi import Request, Response

logger = logging.getLogger("grokbridge")


async def log_requests(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Log method, path, status and elapsed time of every request."""
    started = time.perf_counter()
    logger.debug(
        "--> %s %s from %s",
        request.method,
        request.url.path,
        request.client.host if request.client else "unknown",
    )
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    # Streaming bodies are still being sent at this point
    logger.info(
        "<-- %s %s %s (%.1f ms)",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response
