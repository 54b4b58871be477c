"""Logging setup for the WordPress publisher.

Every handler installed here carries a ``CredentialFilter`` so application
passwords and Basic auth headers never reach the log output.
"""

from __future__ import annotations

import logging
import os
import re
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_BASIC_AUTH = re.compile(r"(Basic\s+)[A-Za-z0-9+/=]+")
# WordPress application passwords: six groups of four alphanumerics
_APP_PASSWORD = re.compile(r"\b(?:[A-Za-z0-9]{4} ){5}[A-Za-z0-9]{4}\b")


def redact(text: str) -> str:
    """Mask Basic auth tokens and application passwords in ``text``."""
    text = _BASIC_AUTH.sub(r"\1***", text)
    return _APP_PASSWORD.sub("****", text)


class CredentialFilter(logging.Filter):
    """Rewrites records so they carry no credentials."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def _level_from_env(default: int) -> int:
    name = os.getenv("WP_LOG_LEVEL", "").upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


def setup_logging(
    level: int = logging.INFO,
    module_name: str = "wp_publisher",
) -> logging.Logger:
    """Configure and return a logger with consistent formatting.

    Args:
        level: Logging level (default INFO, overridden by ``WP_LOG_LEVEL``).
        module_name: Name for the logger instance.

    Returns:
        Configured logger.
    """
    logger = logging.getLogger(module_name)

    if logger.handlers:
        return logger

    level = _level_from_env(level)
    logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(CredentialFilter())
    logger.addHandler(handler)

    return logger
