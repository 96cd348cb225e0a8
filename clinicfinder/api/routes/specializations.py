"""GET /v1/specializations — static specialization catalogue."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from clinicfinder.api.dependencies import get_engine, get_language
from clinicfinder.api.schemas import SpecializationsResponse
from clinicfinder.messages import Language
from clinicfinder.services.engine import ClinicDiscoveryEngine

router = APIRouter(prefix="/v1", tags=["specializations"])


@router.get(
    "/specializations",
    summary="List medical specializations",
    description="Specialization ids usable as the `specialization` search filter.",
    response_model=SpecializationsResponse,
)
async def get_specializations(
    lang: Language = Depends(get_language),
    engine: ClinicDiscoveryEngine = Depends(get_engine),
):
    specs = engine.classifier.specializations()
    return {
        "count": len(specs),
        "specializations": [
            {
                "id": spec.id,
                "name": spec.display_name(lang),
                "urgency_level": spec.urgency_level,
                "description": spec.description,
            }
            for spec in specs
        ],
    }
