"""FastAPI dependencies shared by the routes."""

from __future__ import annotations

from fastapi import Header, Query, Request

from clinicfinder.config import settings
from clinicfinder.messages import Language, resolve_language
from clinicfinder.services.engine import ClinicDiscoveryEngine


def get_engine(request: Request) -> ClinicDiscoveryEngine:
    return request.app.state.engine


def get_language(
    lang: str | None = Query(None, description="Response language: 'en' or 'ta'"),
    accept_language: str | None = Header(None),
) -> Language:
    """Explicit ``lang`` wins over the ``Accept-Language`` header."""
    return resolve_language(lang or accept_language, settings.default_language)


def request_language(request: Request) -> Language:
    """Same resolution as :func:`get_language`, for exception handlers."""
    return resolve_language(
        request.query_params.get("lang") or request.headers.get("accept-language"),
        settings.default_language,
    )
