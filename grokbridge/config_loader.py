"""Configuration loading from YAML files with environment variable support."""

import logging
import os
import re
from collections import ChainMap
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import dotenv_values

from .core.exceptions import ConfigurationError

logger = logging.getLogger("grokbridge")

# Relative to the working directory or the project root
DEFAULT_CONFIG_PATH = "configs/config_default.yaml"
CONFIG_ENV_VAR = "GROKBRIDGE_CONFIG"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
DEFAULT_MODELS = ["gpt-3.5-turbo", "gpt-4", "grok-3"]

# ${NAME} or $NAME
_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")

_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _locate(path: str) -> Path:
    """Relative paths are tried against the working directory, then the project root."""
    candidate = Path(path)
    if candidate.is_absolute():
        return candidate
    if candidate.exists():
        return candidate
    return _PROJECT_ROOT / candidate


def _read_dotenv(env_file: Path) -> dict[str, str]:
    # dotenv_values leaves os.environ alone; keys without a value come back as None
    return {name: value for name, value in dotenv_values(env_file).items() if value is not None}


def load_config(
    path: str | None = None,
    env_path: str | None = None,
    substitute_env: bool = True,
) -> dict:
    """Read the YAML config and expand ``$VAR`` placeholders in its strings.

    Args:
        path: Config file. Falls back to ``$GROKBRIDGE_CONFIG``, then to
              configs/config_default.yaml.
        env_path: .env file used for placeholders. Defaults to a ``.env``
              next to the config file.
        substitute_env: Leave placeholders untouched when False.

    Raises:
        ConfigurationError: If the file is missing or not a YAML mapping.
    """
    config_path = _locate(path or os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    if not config_path.exists():
        logger.error(f"Config file not found: {config_path}")
        raise ConfigurationError(f"Config file not found: {config_path}")
    logger.info(f"Loading configuration from {config_path}")

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    if substitute_env:
        env_file = _locate(env_path) if env_path else config_path.with_name(".env")
        dotenv: dict[str, str] = {}
        if env_file.exists():
            logger.info(f"Reading placeholder values from {env_file}")
            dotenv = _read_dotenv(env_file)
        data = _substitute_env_vars(data, dotenv)

    return data


def _substitute_env_vars(obj: Any, env_values: Mapping[str, str] | None = None) -> Any:
    """Expand placeholders in every string of a parsed config tree.

    ``.env`` values take precedence over the process environment. A
    placeholder whose variable is unset stays as written.
    """
    lookup = ChainMap(dict(env_values or {}), os.environ)

    def expand(match: re.Match) -> str:
        name = match.group(1) or match.group(2)
        if name in lookup:
            return lookup[name]
        logger.warning(f"Config placeholder {match.group(0)} has no value; keeping it literally")
        return match.group(0)

    def walk(node: Any) -> Any:
        if isinstance(node, str):
            return _PLACEHOLDER.sub(expand, node)
        if isinstance(node, dict):
            return {key: walk(value) for key, value in node.items()}
        if isinstance(node, list):
            return [walk(item) for item in node]
        return node

    return walk(obj)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


def proxy_settings(config: Mapping[str, Any]) -> dict[str, Any]:
    """Return the proxy_settings section with defaults filled in.

    GROKBRIDGE_HOST / GROKBRIDGE_PORT / VERBOSE environment variables take
    priority over the file.
    """
    section = config.get("proxy_settings") or {}
    server_cfg = section.get("server") or {}

    host = os.getenv("GROKBRIDGE_HOST") or str(server_cfg.get("host", DEFAULT_HOST))

    port_value = os.getenv("GROKBRIDGE_PORT") or server_cfg.get("port", DEFAULT_PORT)
    try:
        port = int(port_value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid port {port_value!r}, using {DEFAULT_PORT}")
        port = DEFAULT_PORT

    verbose_env = os.getenv("VERBOSE")
    if verbose_env is not None:
        verbose = _parse_bool(verbose_env)
    else:
        verbose = _parse_bool(section.get("verbose_logging"))

    models = section.get("models")
    if not isinstance(models, list) or not models:
        models = list(DEFAULT_MODELS)

    temporary = section.get("temporary")
    return {
        "host": host,
        "port": port,
        "verbose_logging": verbose,
        "temporary": True if temporary is None else _parse_bool(temporary),
        "models": [str(model) for model in models],
    }
