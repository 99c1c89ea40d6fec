"""Centralized logging helpers.

Provides one place to configure the root logger plus small helpers used by
every module for structured DEBUG traces: ``extra_context`` builds the
``extra=`` mapping, ``safe_url`` redacts credentials and query strings, and
``Timer`` measures request durations.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from vcupdate.constants import Constants

_CONTEXT_FIELDS = ("event", "component", "action", "outcome", "target")


def configure_logging(log_file: Optional[str] = None, quiet: bool = False) -> None:
    """Configure the root logger from the environment.

    The level comes from ``VCUPDATE_LOG_LEVEL`` (default INFO). Calling this
    more than once replaces previously installed handlers.
    """
    level_name = os.environ.get(Constants.LOG_LEVEL_ENV, "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(Constants.LOG_FORMAT)
    if not quiet:
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        root.addHandler(stream)
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    if not root.handlers:
        root.addHandler(logging.NullHandler())
    root.setLevel(level)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by ``logger``."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build the ``extra`` mapping for a structured log record.

    None values are dropped; the well known fields are always present so
    formatters may reference them.
    """
    context: Dict[str, Any] = {name: None for name in _CONTEXT_FIELDS}
    for key, value in fields.items():
        if value is not None:
            context[key] = value
    return context


def safe_url(url: str) -> str:
    """Strip userinfo, query and fragment from a URL before logging it."""
    if not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<invalid-url>"
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, host, parts.path, "", ""))


class Timer:
    """Context manager measuring elapsed wall time."""

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
        """Elapsed milliseconds, measured up to now while still running."""
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000.0, 2)
