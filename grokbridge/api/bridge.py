"""Shared, read-only state behind the proxy endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ..config_loader import proxy_settings
from ..conversation import ConversationClient, ConversationContext
from ..conversation.context import DEFAULT_MODEL_NAME
from ..core.transport import UpstreamTransport, transport_from_config


@dataclass
class ProxyBridge:
    """Transport plus proxy defaults.

    Every proxy request gets its own ``ConversationClient`` and context, so
    concurrent requests share nothing but the transport configuration and
    the credential set.
    """

    transport: UpstreamTransport
    model_name: str = DEFAULT_MODEL_NAME
    models: list[str] = field(default_factory=list)
    temporary: bool = True

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ProxyBridge":
        upstream = config.get("upstream") or {}
        settings = proxy_settings(config)
        return cls(
            transport=transport_from_config(config),
            model_name=str(upstream.get("model_name") or DEFAULT_MODEL_NAME),
            models=settings["models"],
            temporary=settings["temporary"],
        )

    def new_client(self) -> ConversationClient:
        """Fresh client and context for one proxy request."""
        context = ConversationContext(temporary=self.temporary)
        return ConversationClient(self.transport, context=context, model_name=self.model_name)
