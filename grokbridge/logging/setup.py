"""Logging configuration for the bridge."""

import logging
import os
import sys

LOGGER_NAME = "grokbridge"
VERBOSE_ENV_VAR = "VERBOSE"
_TRUTHY = {"1", "true", "yes", "y"}


def verbose_from_env() -> bool:
    """Return True when the VERBOSE environment variable asks for debug logs."""
    return os.getenv(VERBOSE_ENV_VAR, "").strip().lower() in _TRUTHY


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Set up logging with proper handlers and formatters."""
    level = logging.DEBUG if verbose or verbose_from_env() else logging.INFO
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Clear any existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Propagate to root so pytest's caplog and uvicorn see our records
    logger.propagate = True

    return logger


# Global logger instance
logger = setup_logging()
