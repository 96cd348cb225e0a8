"""POST /v1/triage and /v1/recommend — symptom triage, optionally with search."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from clinicfinder.api.dependencies import get_engine
from clinicfinder.api.schemas import (
    ErrorResponse,
    RecommendRequest,
    RecommendResponse,
    TriageRequest,
    TriageResponse,
)
from clinicfinder.models import Coordinate, SearchOptions
from clinicfinder.services.engine import ClinicDiscoveryEngine

router = APIRouter(prefix="/v1", tags=["triage"])


@router.post(
    "/triage",
    summary="Classify symptoms",
    description=(
        "Map free-text symptoms (English or Tamil) to medical specializations "
        "and an urgency level. This is a keyword-based routing aid, not a "
        "diagnosis. No network call is made."
    ),
    response_model=TriageResponse,
    responses={422: {"model": ErrorResponse, "description": "Validation error"}},
)
async def post_triage(
    body: TriageRequest,
    engine: ClinicDiscoveryEngine = Depends(get_engine),
):
    return engine.classify_symptoms(body.text, body.language).model_dump()


@router.post(
    "/recommend",
    summary="Classify symptoms and find matching clinics",
    description=(
        "Run triage, then search near (`lat`, `lng`) for clinics offering the "
        "first matched specialization. Emergency urgency switches the search "
        "to emergency-capable facilities."
    ),
    response_model=RecommendResponse,
    responses={
        422: {"model": ErrorResponse, "description": "Validation error"},
        502: {"model": ErrorResponse, "description": "Facility source unavailable"},
    },
)
async def post_recommend(
    body: RecommendRequest,
    engine: ClinicDiscoveryEngine = Depends(get_engine),
):
    options = SearchOptions.from_km(body.radius_km, limit=body.limit)
    result = await engine.recommend(
        body.text,
        body.language,
        location=Coordinate(latitude=body.lat, longitude=body.lng),
        options=options,
    )
    return {"triage": result.assessment.model_dump(), "clinics": result.clinics}
