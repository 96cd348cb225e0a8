"""Per-request context: correlation ID and the outcome of the clinic search it ran."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Iterator

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


@dataclass
class SearchTrace:
    """Filled in by the engine, read back by the access log.

    ``outcome`` is ``hit``, ``miss`` or ``shared`` for a successful search,
    otherwise the failing error's ``code``.
    """

    outcome: str | None = None
    cache_key: str | None = None
    result_count: int | None = None
    path: str = ""

    def log_fields(self) -> dict:
        if self.outcome is None:
            return {}
        fields = {"search_outcome": self.outcome, "search_path": self.path}
        if self.cache_key is not None:
            fields["cache_key"] = self.cache_key
        if self.result_count is not None:
            fields["result_count"] = self.result_count
        return fields


search_trace_var: ContextVar[SearchTrace | None] = ContextVar("search_trace", default=None)


def generate_request_id() -> str:
    """Return a new 32-character hex request ID."""
    return uuid.uuid4().hex


def get_request_id() -> str:
    return request_id_var.get()


def current_search_trace() -> SearchTrace | None:
    return search_trace_var.get()


@contextmanager
def ensure_request_id() -> Iterator[str]:
    """Reuse the current ID, or bind a fresh one for the duration of the block."""
    current = request_id_var.get()
    if current:
        yield current
        return
    rid = generate_request_id()
    token = request_id_var.set(rid)
    try:
        yield rid
    finally:
        request_id_var.reset(token)
