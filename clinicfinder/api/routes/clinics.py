"""GET /v1/clinics/* — nearby and emergency clinic search."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from clinicfinder.api.dependencies import get_engine, get_language
from clinicfinder.api.schemas import ClinicSearchResponse, ErrorResponse
from clinicfinder.messages import Language, message
from clinicfinder.models import Clinic, Coordinate, SearchOptions, SortKey, km_to_meters
from clinicfinder.services.engine import ClinicDiscoveryEngine
from clinicfinder.services.specializations import specialization_ids

router = APIRouter(prefix="/v1/clinics", tags=["clinics"])

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid parameter combination"},
    422: {"model": ErrorResponse, "description": "Validation error"},
    428: {"model": ErrorResponse, "description": "Location required"},
    502: {"model": ErrorResponse, "description": "Facility source unavailable"},
}


def _resolve_point(
    lat: float | None, lng: float | None, language: Language
) -> Coordinate | None:
    if lat is None and lng is None:
        return None
    if lat is None or lng is None:
        raise HTTPException(
            status_code=400, detail=message("request.coordinate_pair", language)
        )
    return Coordinate(latitude=lat, longitude=lng)


def _response(
    point: Coordinate | None,
    radius_m: int,
    clinics: list[Clinic],
    language: Language,
) -> dict:
    center = (
        {"lat": point.latitude, "lng": point.longitude} if point is not None else None
    )
    return {
        "center": center,
        "radius_m": radius_m,
        "count": len(clinics),
        "message": None if clinics else message("search.no_results", language),
        "clinics": clinics,
    }


@router.get(
    "/nearby",
    summary="Find nearby clinics",
    description=(
        "Return healthcare facilities from OpenStreetMap within `radius_km` "
        "of the point, filtered and sorted as requested. Results are cached "
        "for 10 minutes per (location, radius, specialization).\n\n"
        "Ratings are estimates derived from map tags, not patient reviews."
    ),
    response_model=ClinicSearchResponse,
    responses=_ERROR_RESPONSES,
)
async def get_nearby_clinics(
    lat: float | None = Query(None, ge=-90, le=90, description="Latitude"),
    lng: float | None = Query(None, ge=-180, le=180, description="Longitude"),
    radius_km: float = Query(
        5.0, ge=0.001, le=50, description="Radius in kilometers (1 m to 50 km)"
    ),
    specialization: str | None = Query(None, description="Specialization id filter"),
    min_rating: float = Query(0.0, ge=0, le=5, description="Minimum estimated rating"),
    emergency_only: bool = Query(False, description="Only emergency-capable facilities"),
    language: str | None = Query(None, description="Spoken-language filter, e.g. 'Tamil'"),
    sort_by: SortKey = Query(SortKey.DISTANCE, description="distance, rating or name"),
    limit: int = Query(10, gt=0, le=50, description="Max results (max 50)"),
    lang: Language = Depends(get_language),
    engine: ClinicDiscoveryEngine = Depends(get_engine),
):
    """Return clinics near (*lat*, *lng*); without a point the engine's provider is used."""
    point = _resolve_point(lat, lng, lang)
    if specialization is not None and specialization not in specialization_ids():
        raise HTTPException(
            status_code=400,
            detail=message(
                "request.unknown_specialization", lang, specialization=specialization
            ),
        )

    options = SearchOptions.from_km(
        radius_km,
        specialization=specialization,
        min_rating=min_rating,
        emergency_only=emergency_only,
        language=language,
        sort_by=sort_by,
        limit=limit,
    )
    clinics = await engine.search(options, point)
    return _response(point, options.radius_m, clinics, lang)


@router.get(
    "/emergency",
    summary="Find the nearest emergency facilities",
    description="Up to five emergency-capable facilities, nearest first.",
    response_model=ClinicSearchResponse,
    responses=_ERROR_RESPONSES,
)
async def get_emergency_clinics(
    lat: float | None = Query(None, ge=-90, le=90, description="Latitude"),
    lng: float | None = Query(None, ge=-180, le=180, description="Longitude"),
    radius_km: float = Query(
        5.0, ge=0.001, le=50, description="Radius in kilometers (1 m to 50 km)"
    ),
    lang: Language = Depends(get_language),
    engine: ClinicDiscoveryEngine = Depends(get_engine),
):
    point = _resolve_point(lat, lng, lang)
    radius_m = km_to_meters(radius_km)
    clinics = await engine.find_emergency_clinics(point, radius_m=radius_m)
    return _response(point, radius_m, clinics, lang)
