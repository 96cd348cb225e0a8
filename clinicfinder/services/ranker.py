"""Post-query filtering and ordering of clinic result sets."""

from __future__ import annotations

from clinicfinder.models import Clinic, Coordinate, SearchOptions, SortKey, UserLocation
from clinicfinder.services.distance import haversine_distance_km, round_distance


def _speaks(clinic: Clinic, language: str) -> bool:
    needle = language.lower()
    return any(needle in lang.lower() for lang in clinic.languages)


def _passes(clinic: Clinic, distance_km: float, options: SearchOptions) -> bool:
    if distance_km * 1000 > options.radius_m:
        return False
    if clinic.rating < options.min_rating:
        return False
    if options.emergency_only and not clinic.emergency_services:
        return False
    if options.specialization and options.specialization not in clinic.specializations:
        return False
    if options.language and not _speaks(clinic, options.language):
        return False
    return True


def rank_clinics(
    clinics: list[Clinic],
    origin: Coordinate | UserLocation,
    options: SearchOptions,
) -> list[Clinic]:
    """Annotate distance, filter, sort (stable) and truncate.

    Input records are never mutated; the returned clinics are copies
    carrying ``distance_km`` relative to *origin*, rounded to 2 decimals.
    Sorting uses the unrounded distance.
    """
    center = origin.coordinate if isinstance(origin, UserLocation) else origin

    annotated: list[tuple[float, Clinic]] = []
    for clinic in clinics:
        distance = haversine_distance_km(center, clinic.coordinate)
        if _passes(clinic, distance, options):
            annotated.append((distance, clinic))

    if options.sort_by is SortKey.RATING:
        annotated.sort(key=lambda pair: -pair[1].rating)
    elif options.sort_by is SortKey.NAME:
        annotated.sort(key=lambda pair: pair[1].name.casefold())
    else:
        annotated.sort(key=lambda pair: pair[0])

    return [
        clinic.with_distance(round_distance(distance))
        for distance, clinic in annotated[: options.limit]
    ]
