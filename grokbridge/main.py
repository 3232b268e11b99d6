"""FastAPI application for the grokbridge proxy."""

import logging
import socket
from contextlib import asynccontextmanager
from typing import Any, Mapping, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .api.bridge import ProxyBridge
from .api.routes import chat_completions, list_models
from .config_loader import load_config, proxy_settings
from .core.registry import set_bridge
from .logging import log_requests, setup_logging

logger = logging.getLogger("grokbridge")


async def openai_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return OpenAI-style error bodies at the top level instead of under ``detail``."""
    if isinstance(exc.detail, Mapping) and "error" in exc.detail:
        return JSONResponse(dict(exc.detail), status_code=exc.status_code, headers=exc.headers)
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code, headers=exc.headers)


def create_app(
    config: Optional[Mapping[str, Any]] = None,
    bridge: Optional[ProxyBridge] = None,
) -> FastAPI:
    """Factory function to create the FastAPI application.

    Args:
        config: Loaded configuration; read from disk when omitted.
        bridge: Prebuilt bridge; built from ``config`` when omitted.

    Returns:
        The configured FastAPI application instance.
    """
    if config is None:
        config = load_config()
    settings = proxy_settings(config)
    setup_logging(settings["verbose_logging"])

    if bridge is None:
        bridge = ProxyBridge.from_config(config)
    set_bridge(bridge)
    logger.info(f"Bridge initialized for upstream {bridge.transport.base_url}")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Log the bind address and advertised models on startup."""
        host, port = settings["host"], settings["port"]
        logger.info("grokbridge proxy starting up...")
        logger.info("Configured bind address %s:%s", host, port)
        if host == "0.0.0.0":
            hostname = socket.gethostname()
            logger.info("Reachable on local network at http://%s:%s", hostname, port)
        logger.info(f"Advertised models: {bridge.models}")
        logger.info("grokbridge proxy ready to handle requests")
        yield
        logger.info("grokbridge proxy shutting down")

    app = FastAPI(title="grokbridge", lifespan=lifespan)
    app.state.settings = settings
    app.add_exception_handler(HTTPException, openai_error_handler)

    if settings["verbose_logging"]:
        app.middleware("http")(log_requests)
        logger.debug("Request logging middleware enabled")

    # Register routes
    app.post("/v1/chat/completions")(chat_completions)
    app.get("/v1/models")(list_models)
    app.get("/models")(list_models)

    return app


def run(config: Optional[Mapping[str, Any]] = None) -> None:
    """Serve the proxy with uvicorn on the configured host and port."""
    import uvicorn

    if config is None:
        config = load_config()
    settings = proxy_settings(config)
    uvicorn.run(create_app(config), host=settings["host"], port=settings["port"])


__all__ = ["create_app", "openai_error_handler", "run"]
