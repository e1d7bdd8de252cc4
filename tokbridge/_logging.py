"""
Package logging.

Everything tokbridge logs goes to the ``tokbridge`` logger through a
``scoped_logger``. Records carry a ``scope`` ("ffi", "tokenizer", "template")
and a small set of boundary attributes, rendered by both formatters:

    operation   engine call that produced the record (e.g. "decode")
    status      non-zero status code returned by that call
    path        tokenizer definition, model directory, or library file
    candidate   stop token candidate that was skipped
    error       message of a swallowed failure

Environment::

    TOKBRIDGE_LOG_LEVEL=trace|debug|info|warn|error|fatal|off (default: info)
    TOKBRIDGE_LOG_FORMAT=json|human (default: human if tty, json if piped)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import MutableMapping
from typing import Any

__all__ = ["logger", "setup_logging", "scoped_logger"]

# TRACE has no Python level and maps to DEBUG
_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
    "off": logging.CRITICAL + 10,
}

# Rendered in this order when present on a record
ATTRIBUTES = ("operation", "status", "path", "candidate", "error")


def _attributes(record: logging.LogRecord) -> dict[str, Any]:
    return {name: getattr(record, name) for name in ATTRIBUTES if hasattr(record, name)}


def _scope(record: logging.LogRecord) -> str:
    return getattr(record, "scope", None) or record.name


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for piped output."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "scope": _scope(record),
            "message": record.getMessage(),
        }
        entry.update(_attributes(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """``LEVEL [scope] message key=value ...`` for terminals."""

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname:<7} [{_scope(record)}] {record.getMessage()}"
        pairs = " ".join(f"{key}={value!r}" for key, value in _attributes(record).items())
        if pairs:
            line = f"{line}  {pairs}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _get_log_level() -> int:
    """Get log level from TOKBRIDGE_LOG_LEVEL."""
    return _LEVELS.get(os.environ.get("TOKBRIDGE_LOG_LEVEL", "info").lower(), logging.INFO)


def _get_log_format() -> str:
    """Get log format from TOKBRIDGE_LOG_FORMAT, or pick one from the stream."""
    fmt = os.environ.get("TOKBRIDGE_LOG_FORMAT")
    if fmt:
        return fmt.lower()
    return "human" if sys.stderr.isatty() else "json"


def _create_handler(fmt: str | None = None) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    if (fmt or _get_log_format()) == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(HumanFormatter())
    return handler


logger = logging.getLogger("tokbridge")


def _setup_default_handler() -> None:
    # Leave loggers configured by the application alone
    if logger.handlers:
        return
    logger.addHandler(_create_handler())
    logger.setLevel(_get_log_level())


def setup_logging(level: str | int = "INFO", format: str | None = None) -> None:
    """
    Configure tokbridge logging.

    Replaces the handlers on the ``tokbridge`` logger with one stderr handler.

    Args:
        level: Level name ("trace", "debug", "info", "warn", "error",
            "fatal", "off") or a ``logging`` constant.
        format: "json" or "human". Defaults to TOKBRIDGE_LOG_FORMAT, then to
            human on a terminal and json otherwise.

    Example:
        >>> import tokbridge
        >>> tokbridge.setup_logging("debug", format="human")
    """
    if isinstance(level, str):
        level = _LEVELS.get(level.lower(), logging.INFO)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.addHandler(_create_handler(format.lower() if format else None))
    logger.setLevel(level)


class _ScopedLoggerAdapter(logging.LoggerAdapter):
    """Adds the adapter's scope to the per-call ``extra``."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def scoped_logger(scope: str) -> logging.LoggerAdapter:
    """Get a logger adapter that tags every record with ``scope``."""
    return _ScopedLoggerAdapter(logger, {"scope": scope})


_setup_default_handler()
