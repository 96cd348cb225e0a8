"""Pydantic request/response models for OpenAPI documentation."""

from __future__ import annotations

from pydantic import BaseModel, Field

from clinicfinder.models import Clinic, UrgencyLevel


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Structured error returned by all non-2xx responses."""

    error: bool = Field(True, description="Always true for error responses")
    status_code: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Human-readable, localized error message")
    code: str | None = Field(
        None, description="Stable machine-readable error code (clinic errors only)"
    )


class CenterModel(BaseModel):
    lat: float
    lng: float


# ---------------------------------------------------------------------------
# /health
# ---------------------------------------------------------------------------


class CacheHealth(BaseModel):
    """Search cache status."""

    size: int = Field(..., description="Current number of cached search keys")
    max_size: int = Field(..., description="Maximum cache capacity")
    ttl_seconds: float = Field(..., description="Entry time-to-live")
    hit_rate: float = Field(..., description="Cache hit rate (0.0–1.0)")


class HealthResponse(BaseModel):
    status: str = Field(..., description="Overall status: 'ok'")
    cache: CacheHealth
    uptime_seconds: float = Field(..., description="Seconds since the process started")


# ---------------------------------------------------------------------------
# /v1/clinics
# ---------------------------------------------------------------------------


class ClinicSearchResponse(BaseModel):
    """Ranked clinics near a point.

    ``rating`` values are heuristic estimates derived from map tags, not
    patient reviews; ``rating_is_estimate`` is always true.
    """

    center: CenterModel | None = Field(
        None, description="Search center, when supplied by the client"
    )
    radius_m: int = Field(..., description="Search radius in meters")
    count: int = Field(..., description="Number of clinics returned")
    message: str | None = Field(
        None, description="Localized hint when no clinic matched the filters"
    )
    clinics: list[Clinic]


# ---------------------------------------------------------------------------
# /v1/triage and /v1/recommend
# ---------------------------------------------------------------------------


class TriageRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000, description="Free-text symptoms")
    language: str = Field("en", description="Language of the text: 'en' or 'ta'")


class TriageResponse(BaseModel):
    """Triage output consumed by the chat layer. Not a diagnosis."""

    specializations: list[str]
    urgency_level: UrgencyLevel
    recommendations: list[str]


class RecommendRequest(TriageRequest):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    radius_km: float = Field(5.0, ge=0.001, le=50)
    limit: int = Field(10, gt=0, le=50)


class RecommendResponse(BaseModel):
    triage: TriageResponse
    clinics: list[Clinic]


# ---------------------------------------------------------------------------
# /v1/specializations
# ---------------------------------------------------------------------------


class SpecializationModel(BaseModel):
    id: str
    name: str
    urgency_level: UrgencyLevel
    description: str


class SpecializationsResponse(BaseModel):
    count: int
    specializations: list[SpecializationModel]
