"""Cookie credential set for the upstream chat service.

The bridge treats credentials as an opaque, pre-established cookie set. This
module only knows how to find one: the ``GROK_COOKIES`` environment variable,
the ``credentials`` config section, or a JSON credentials file.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from .exceptions import CredentialError

logger = logging.getLogger("grokbridge")

COOKIES_ENV_VAR = "GROK_COOKIES"
DEFAULT_CREDENTIALS_FILE = "credentials.json"

# Cookies the upstream expects for an authenticated browser session
EXPECTED_COOKIES = ("x-anonuserid", "x-challenge", "x-signature", "sso", "sso-rw")


@dataclass(frozen=True)
class Credentials:
    """Read-only cookie set shared by every turn."""

    cookies: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.cookies:
            raise CredentialError("credential set is empty")

    def missing(self) -> list[str]:
        return [name for name in EXPECTED_COOKIES if name not in self.cookies]


def parse_cookie_string(cookie_string: str) -> dict[str, str]:
    """Parse a browser ``Cookie`` header value (``a=b; c=d``) into a dict."""
    cookies: dict[str, str] = {}
    for pair in cookie_string.split(";"):
        if "=" not in pair:
            continue
        name, value = pair.split("=", 1)
        name = name.strip()
        if name:
            cookies[name] = value.strip()
    return cookies


def _coerce_cookies(raw: Any) -> dict[str, str]:
    if isinstance(raw, Mapping):
        return {str(k): str(v) for k, v in raw.items() if v is not None}
    if isinstance(raw, str) and raw.strip():
        text = raw.strip()
        if text.startswith("{"):
            try:
                return _coerce_cookies(json.loads(text))
            except json.JSONDecodeError as exc:
                raise CredentialError(f"invalid cookie JSON: {exc}") from exc
        return parse_cookie_string(text)
    return {}


def load_credentials_file(path: Path) -> dict[str, str]:
    """Load a JSON object of cookie name/value pairs from ``path``."""
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise CredentialError(f"cannot read credentials file {path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise CredentialError(f"credentials file {path} must contain a JSON object")
    return _coerce_cookies(data)


def _build(cookies: dict[str, str], source: str) -> Credentials:
    credentials = Credentials(cookies)
    logger.info("Loaded %d cookies from %s", len(cookies), source)
    missing = credentials.missing()
    if missing:
        logger.warning("Credential set from %s lacks cookies: %s", source, ", ".join(missing))
    return credentials


def load_credentials(config: Optional[Mapping[str, Any]] = None) -> Credentials:
    """Resolve the credential set from env, config, then the credentials file.

    Raises:
        CredentialError: If no source yields a non-empty cookie set.
    """
    config = config or {}
    section = config.get("credentials") or {}

    env_value = os.getenv(COOKIES_ENV_VAR)
    if env_value:
        cookies = _coerce_cookies(env_value)
        if cookies:
            return _build(cookies, COOKIES_ENV_VAR)

    cookies = _coerce_cookies(section.get("cookies"))
    if not cookies:
        cookies = _coerce_cookies(section.get("cookie_string"))
    if cookies:
        return _build(cookies, "configuration")

    path = Path(section.get("credentials_file") or DEFAULT_CREDENTIALS_FILE)
    if path.exists():
        cookies = load_credentials_file(path)
        if cookies:
            return _build(cookies, str(path))

    raise CredentialError(
        f"no credentials found; set {COOKIES_ENV_VAR} or provide {path}"
    )
