"""Process-wide holder for the ``ProxyBridge`` the endpoints serve from.

``create_app`` installs the bridge; route handlers fetch it per request.
Kept apart from ``main`` so the routes can import it without a cycle.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..api.bridge import ProxyBridge

_bridge: Optional["ProxyBridge"] = None


def set_bridge(bridge: "ProxyBridge") -> None:
    """Install the bridge; a later call replaces it (each ``create_app`` does)."""
    global _bridge
    _bridge = bridge


def get_bridge() -> "ProxyBridge":
    """Return the installed bridge holding the upstream transport and model list.

    Raises:
        RuntimeError: If no app has been created yet.
    """
    if _bridge is None:
        raise RuntimeError("No ProxyBridge installed; create the app with create_app() first")
    return _bridge
