from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from clinicfinder.api.dependencies import get_engine
from clinicfinder.api.exception_handlers import (
    clinic_finder_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from clinicfinder.api.middleware import RequestLoggingMiddleware
from clinicfinder.api.routes.clinics import router as clinics_router
from clinicfinder.api.routes.specializations import router as specializations_router
from clinicfinder.api.routes.triage import router as triage_router
from clinicfinder.api.schemas import HealthResponse
from clinicfinder.config import settings
from clinicfinder.exceptions import ClinicFinderError
from clinicfinder.logging_config import setup_logging
from clinicfinder.services.cache import ClinicSearchCache
from clinicfinder.services.engine import ClinicDiscoveryEngine
from clinicfinder.services.location import GeoLocationProvider, UnsupportedLocationSource
from clinicfinder.services.metrics import metrics
from clinicfinder.services.overpass import OverpassClient

logger = logging.getLogger("clinicfinder")

_DESCRIPTION = """\
Clinic discovery for a consumer healthcare assistant.

Given the caller's position, returns nearby **hospitals, clinics, doctors
and pharmacies** from OpenStreetMap, normalized into a uniform record and
ranked by distance, estimated rating or name. A separate **symptom
triage** endpoint maps free-text symptoms (English or Tamil) to medical
specializations and an urgency level.

### Estimates

Facility ratings and non-24/7 opening hours are heuristics derived from
map tags. They are flagged with `rating_is_estimate` and
`opening_hours_is_estimate` and must be presented as such.

### Languages

Error and recommendation text is available in English (`en`) and Tamil
(`ta`), selected with the `lang` query parameter or `Accept-Language`.
"""

_OPENAPI_TAGS = [
    {"name": "system", "description": "Health checks and operational endpoints."},
    {
        "name": "clinics",
        "description": "Radius search for healthcare facilities around a point.",
    },
    {
        "name": "triage",
        "description": "Keyword-based symptom triage, optionally followed by a search.",
    },
    {
        "name": "specializations",
        "description": "Static catalogue of medical specializations.",
    },
]


def build_default_engine() -> ClinicDiscoveryEngine:
    """One engine per process: Overpass source, shared cache, no server-side GPS."""
    return ClinicDiscoveryEngine(
        location_provider=GeoLocationProvider(UnsupportedLocationSource()),
        source=OverpassClient(),
        cache=ClinicSearchCache(maxsize=settings.cache_maxsize, ttl=settings.cache_ttl),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level, settings.log_format)
    logger.info(
        "Clinic discovery ready (overpass=%s, cache_ttl=%ss)",
        settings.overpass_url,
        settings.cache_ttl,
    )
    yield
    app.state.engine.clear_cache()


def create_app(engine: ClinicDiscoveryEngine | None = None) -> FastAPI:
    app = FastAPI(
        title="Clinic Finder API",
        version="0.1.0",
        summary="Nearby clinic discovery and symptom triage",
        description=_DESCRIPTION,
        openapi_tags=_OPENAPI_TAGS,
        lifespan=lifespan,
    )
    app.state.engine = engine or build_default_engine()

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ClinicFinderError, clinic_finder_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    origins = [o.strip() for o in settings.cors_origins.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(clinics_router)
    app.include_router(triage_router)
    app.include_router(specializations_router)

    @app.get(
        "/health",
        tags=["system"],
        summary="Health check",
        response_model=HealthResponse,
    )
    async def health(engine: ClinicDiscoveryEngine = Depends(get_engine)):
        return {
            "status": "ok",
            "cache": {
                "size": engine.cache.size,
                "max_size": settings.cache_maxsize,
                "ttl_seconds": engine.cache.ttl,
                "hit_rate": metrics.cache_hit_rate(),
            },
            "uptime_seconds": metrics.uptime_seconds(),
        }

    @app.get(
        "/metrics",
        tags=["system"],
        summary="Application metrics",
        description="Request counters, latency percentiles, cache, external "
        "source, normalization, location and triage statistics.",
    )
    async def get_metrics(engine: ClinicDiscoveryEngine = Depends(get_engine)):
        snap = metrics.snapshot()
        snap["cache"]["size"] = engine.cache.size
        snap["location_provider"] = engine.location_provider.status()
        return snap

    return app


app = create_app()
