"""Request logging middleware (pure ASGI)."""

from __future__ import annotations

import logging
import time

from starlette.types import ASGIApp, Receive, Scope, Send

from clinicfinder.services.metrics import metrics
from clinicfinder.services.request_context import (
    SearchTrace,
    generate_request_id,
    get_request_id,
    request_id_var,
    search_trace_var,
)

logger = logging.getLogger("clinicfinder.access")

# Probed constantly by orchestrators; logged at DEBUG only.
_QUIET_PATHS = frozenset({"/health"})

_CACHE_HEADER_VALUES = {"hit": b"HIT", "miss": b"MISS", "shared": b"SHARED"}


class RequestLoggingMiddleware:
    """Log ``method path status_code latency_ms`` for every request.

    Adds ``X-Response-Time-Ms`` and ``X-Request-ID`` headers and records
    per-request metrics. When the request ran a clinic search, the access
    line carries its outcome and cache key, and successful searches get an
    ``X-Cache`` header (``HIT``, ``MISS`` or ``SHARED``). Query strings are
    never logged: they carry the caller's coordinates.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming_id = ""
        for header_name, header_value in scope.get("headers", []):
            if header_name == b"x-request-id":
                incoming_id = header_value.decode("latin-1")
                break

        rid = incoming_id or generate_request_id()
        token = request_id_var.set(rid)
        trace = SearchTrace()
        trace_token = search_trace_var.set(trace)

        start = time.perf_counter()
        status_code = 500

        async def send_wrapper(message: dict) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
                headers = list(message.get("headers", []))
                headers.append((b"x-response-time-ms", str(elapsed_ms).encode()))
                headers.append((b"x-request-id", rid.encode()))
                cache_value = _CACHE_HEADER_VALUES.get(trace.outcome)
                if cache_value is not None:
                    headers.append((b"x-cache", cache_value))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            path = scope.get("path", "")
            level = logging.DEBUG if path in _QUIET_PATHS else logging.INFO
            search_note = f" search={trace.outcome}" if trace.outcome else ""
            logger.log(
                level,
                "%s %s %s %.2fms [%s]%s",
                scope.get("method", ""),
                path,
                status_code,
                elapsed_ms,
                get_request_id()[:12],
                search_note,
                extra=trace.log_fields(),
            )
            metrics.inc_request(status_code)
            metrics.record_latency(elapsed_ms)
            search_trace_var.reset(trace_token)
            request_id_var.reset(token)
