"""Logging module for the bridge."""

from .middleware import log_requests
from .setup import logger, setup_logging, verbose_from_env

__all__ = [
    "log_requests",
    "logger",
    "setup_logging",
    "verbose_from_env",
]
