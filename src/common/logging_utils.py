"""Centralized logging helpers.

Provides one place to configure the root logger plus small utilities used by
modules that emit structured DEBUG traces (context fields, URL scrubbing and
timing).
"""
from __future__ import annotations

import logging
import os
import re
import sys
import time
import urllib.parse
from typing import Any, Dict, Optional

from constants import Constants

_CONTEXT_ATTR = "ctx"
_SECRET_PATTERN = re.compile(r"(?i)(token|password|passwd|secret|apikey|api_key)=([^&\s]+)")


class ContextFormatter(logging.Formatter):
    """Formatter that appends structured context fields when present."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        ctx = getattr(record, _CONTEXT_ATTR, None)
        if ctx:
            fields = " ".join(f"{key}={value}" for key, value in ctx.items())
            message = f"{message} [{fields}]"
        return message


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once.

    The level comes from the explicit argument, then the POMOVERRIDE_LOG_LEVEL
    environment variable, then INFO. Calling this again only adjusts the level.
    """
    level_name = (level or os.environ.get(Constants.ENV_LOG_LEVEL) or "INFO").upper()
    level_value = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not any(getattr(h, "_pomoverride", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(ContextFormatter(Constants.LOG_FORMAT))
        handler._pomoverride = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level_value)


def add_file_handler(path: str) -> logging.Handler:
    """Attach a file handler using the verbose file format."""
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setFormatter(ContextFormatter(Constants.LOG_FILE_FORMAT))
    logging.getLogger().addHandler(file_handler)
    return file_handler


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records from this logger would be emitted."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build the ``extra`` mapping for a structured log call.

    None values are dropped so call sites can pass optional fields freely.
    """
    return {_CONTEXT_ATTR: {key: value for key, value in fields.items() if value is not None}}


def redact(text: str) -> str:
    """Mask credential-looking key=value pairs."""
    return _SECRET_PATTERN.sub(lambda m: f"{m.group(1)}=***", text)


def safe_url(url: str) -> str:
    """Strip user info and query strings so URLs can be logged."""
    try:
        parts = urllib.parse.urlsplit(url)
    except ValueError:
        return redact(url)
    netloc = parts.hostname or ""
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urllib.parse.urlunsplit((parts.scheme, netloc, parts.path, "", ""))


class Timer:
    """Context manager measuring elapsed wall time."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        self._end = None
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Milliseconds elapsed so far, or in total once the block has exited."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
