"""Centralized logging helpers.

Provides one place to configure the root logger plus small utilities used
throughout the code base for structured DEBUG traces: ``extra_context`` for
``extra=`` payloads, ``is_debug_enabled`` guards, a ``Timer`` context manager
and URL redaction so registry credentials never reach the logs.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from constants import Constants

REDACTED = "***"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once.

    The level is taken from ``level`` if given, else from the
    ``MODGATE_LOG_LEVEL`` environment variable, else INFO.
    """
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level_value)


def add_file_handler(path: str) -> logging.Handler:
    """Attach a file handler using the verbose file format."""
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(Constants.LOG_FILE_FORMAT))
    logging.getLogger().addHandler(handler)
    return handler


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from ``logger`` would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**kwargs: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping for structured log records.

    None values are dropped so records only carry meaningful fields.
    """
    return {k: v for k, v in kwargs.items() if v is not None}


def safe_url(url: str) -> str:
    """Return ``url`` with credential-bearing query parameters masked."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.query:
        return url
    query = [
        (k, REDACTED if k.lower() in Constants.SENSITIVE_QUERY_KEYS else v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query, safe="*"), parts.fragment))


class Timer:
    """Context manager measuring wall-clock duration."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> float:
        """Elapsed milliseconds; usable inside or after the ``with`` block."""
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000.0, 2)
