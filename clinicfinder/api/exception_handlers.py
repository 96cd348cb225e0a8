"""Global exception handlers for structured JSON error responses."""

from __future__ import annotations

import logging
import traceback

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from clinicfinder.api.dependencies import request_language
from clinicfinder.exceptions import (
    ClinicFinderError,
    LocationRequired,
    LocationUnavailable,
    SearchFailed,
)
from clinicfinder.messages import message

logger = logging.getLogger("clinicfinder.errors")


def _error_body(status_code: int, detail, code: str | None = None) -> dict:
    body = {"error": True, "status_code": status_code, "detail": detail}
    if code is not None:
        body["code"] = code
    return body


def _status_for(exc: ClinicFinderError) -> int:
    if isinstance(exc, LocationRequired):
        return 428
    if isinstance(exc, LocationUnavailable):
        return 503 if exc.retryable else 428
    if isinstance(exc, SearchFailed):
        return 502
    return 500


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Return structured JSON for all HTTP exceptions (4xx/5xx)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, exc.detail),
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured JSON for request validation errors (422)."""
    return JSONResponse(
        status_code=422,
        content=_error_body(422, exc.errors()),
    )


async def clinic_finder_exception_handler(
    request: Request, exc: ClinicFinderError
) -> JSONResponse:
    """Map domain errors to status codes with a localized message.

    The underlying cause (e.g. an Overpass error body) is logged, never
    returned to the client.
    """
    status_code = _status_for(exc)
    logger.warning(
        "%s on %s %s: %s",
        exc.code,
        request.method,
        request.url.path,
        exc.detail,
    )
    return JSONResponse(
        status_code=status_code,
        content=_error_body(
            status_code, exc.user_message(request_language(request)), exc.code
        ),
    )


async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Catch-all for unhandled exceptions.

    Logs the full traceback server-side but returns a generic 500 response
    with no internal details leaked.
    """
    logger.error(
        "Unhandled exception on %s %s:\n%s",
        request.method,
        request.url.path,
        traceback.format_exc(),
    )

    return JSONResponse(
        status_code=500,
        content=_error_body(500, message("error.internal", request_language(request))),
    )
