"""Structured logging configuration (JSON and text formatters)."""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone

from clinicfinder.services.request_context import get_request_id

# Attributes present on every LogRecord; anything else is an extra.
_STANDARD_RECORD_ATTRS: frozenset[str] = frozenset(
    {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

# Search fields the engine and access log attach as extras, with the short
# name each is rendered under. JSON nests them under "search".
_SEARCH_FIELDS: tuple[tuple[str, str], ...] = (
    ("search_state", "state"),
    ("search_outcome", "outcome"),
    ("search_path", "path"),
    ("cache_key", "key"),
    ("result_count", "results"),
)
_SEARCH_ATTRS = frozenset(attr for attr, _ in _SEARCH_FIELDS)

# Path is already part of the engine's message text.
_TEXT_SEARCH_FIELDS = tuple(f for f in _SEARCH_FIELDS if f[0] != "search_path")

# Third-party loggers that log every outbound request at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore")


def _timestamp(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


def _search_fields(record: logging.LogRecord, fields=_SEARCH_FIELDS) -> dict:
    found = {}
    for attr, short in fields:
        value = getattr(record, attr, None)
        if value is not None:
            found[short] = value
    return found


class JSONFormatter(logging.Formatter):
    """Single-line JSON log output for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        entry: dict = {
            "timestamp": _timestamp(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        request_id = get_request_id()
        if request_id:
            entry["request_id"] = request_id

        search = _search_fields(record)
        if search:
            entry["search"] = search

        for key, value in record.__dict__.items():
            if key in _STANDARD_RECORD_ATTRS or key in _SEARCH_ATTRS or key.startswith("_"):
                continue
            entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-readable text with optional request ID prefix and search field suffix."""

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        ts = _timestamp(record).strftime("%Y-%m-%d %H:%M:%S")

        request_id = get_request_id()
        rid_prefix = f"[{request_id[:12]}] " if request_id else ""
        search = _search_fields(record, _TEXT_SEARCH_FIELDS)
        suffix = " (" + " ".join(f"{k}={v}" for k, v in search.items()) + ")" if search else ""

        line = f"{ts} {record.levelname:<8} {rid_prefix}{record.name} - {record.message}{suffix}"

        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info))

        return line


def setup_logging(log_level: str = "INFO", log_format: str = "text") -> None:
    """Configure the root logger. Call once at startup."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    if log_format.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())
    root.addHandler(handler)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
