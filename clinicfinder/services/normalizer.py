"""Turn raw Overpass elements into canonical :class:`Clinic` records.

Each field is read, validated and defaulted on its own; a record that
cannot yield both a coordinate and a name is dropped (``None``), never
raised. Ratings and non-24/7 opening hours are estimates and are flagged
as such on the resulting model.
"""

from __future__ import annotations

import logging

from clinicfinder.models import WEEKDAYS, Clinic, DayHours
from clinicfinder.services.metrics import MetricsCollector, metrics as default_metrics
from clinicfinder.services.overpass import RawElement

logger = logging.getLogger(__name__)

SPECIALTY_TAG = "healthcare:speciality"
SPECIALTY_DELIMITER = ";"

SPECIALTY_SYNONYMS: dict[str, str] = {
    "general": "general_medicine",
    "family_medicine": "general_medicine",
    "internal_medicine": "general_medicine",
    "cardiology": "cardiology",
    "neurology": "neurology",
    "orthopedics": "orthopedics",
    "orthopaedics": "orthopedics",
    "pediatrics": "pediatrics",
    "paediatrics": "pediatrics",
    "gynecology": "gynecology",
    "gynaecology": "gynecology",
    "dermatology": "dermatology",
    "gastroenterology": "gastroenterology",
    "oncology": "oncology",
    "cancer": "oncology",
    "emergency": "emergency",
    "trauma": "emergency",
}

EMERGENCY_TAG_VALUES = frozenset({"yes", "hospital"})

_ADDRESS_KEYS: tuple[tuple[str, ...], ...] = (
    ("addr:housenumber",),
    ("addr:street",),
    ("addr:suburb", "addr:neighbourhood"),
    ("addr:city",),
    ("addr:state",),
    ("addr:postcode",),
)

_REGIONAL_LANGUAGES: tuple[tuple[str, str], ...] = (
    ("tamil", "Tamil"),
    ("karnataka", "Kannada"),
    ("kerala", "Malayalam"),
)

BASE_RATING = 3.5
MAX_RATING = 5.0


def _tag(tags: dict[str, str], *keys: str) -> str | None:
    """First non-blank value among *keys*, stripped."""
    for key in keys:
        value = tags.get(key)
        if value and value.strip():
            return value.strip()
    return None


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def normalize_specialty(value: str) -> str | None:
    """Map a free-form specialty string to a specialization id, or ``None``."""
    return SPECIALTY_SYNONYMS.get(value.strip().lower())


def resolve_name(tags: dict[str, str]) -> str | None:
    return _tag(tags, "name", "name:en", "brand")


def assemble_address(tags: dict[str, str], lat: float, lon: float) -> str:
    parts = [_tag(tags, *keys) for keys in _ADDRESS_KEYS]
    present = [p for p in parts if p]
    if present:
        return ", ".join(present)
    return f"{lat:.4f}, {lon:.4f}"


def infer_specializations(tags: dict[str, str]) -> list[str]:
    amenity = tags.get("amenity")
    found: list[str] = []
    if amenity == "hospital":
        found += ["general_medicine", "emergency"]
    elif amenity in ("clinic", "doctors"):
        found.append("general_medicine")

    raw = tags.get(SPECIALTY_TAG)
    if raw:
        for part in raw.split(SPECIALTY_DELIMITER):
            spec_id = normalize_specialty(part)
            if spec_id:
                found.append(spec_id)

    if tags.get("emergency") in EMERGENCY_TAG_VALUES:
        found.append("emergency")
    return _dedupe(found)


def has_emergency_services(tags: dict[str, str]) -> bool:
    return (
        tags.get("emergency") in EMERGENCY_TAG_VALUES
        or tags.get("amenity") == "hospital"
        or "emergency" in tags.get(SPECIALTY_TAG, "").lower()
    )


def default_weekly_schedule() -> dict[str, DayHours]:
    hours = {day: DayHours(open="08:00", close="18:00") for day in WEEKDAYS[:5]}
    hours["Saturday"] = DayHours(open="08:00", close="14:00")
    hours["Sunday"] = DayHours(open="08:00", close="12:00", is_closed=True)
    return hours


def parse_opening_hours(value: str | None) -> tuple[dict[str, DayHours], bool]:
    """Return ``(schedule, is_estimate)``.

    Only the ``24/7`` marker is understood; anything else (including a
    missing tag) yields the default weekly schedule flagged as an estimate.
    """
    if value and value.strip() == "24/7":
        return {
            day: DayHours(open="00:00", close="23:59", is_24h=True) for day in WEEKDAYS
        }, False
    return default_weekly_schedule(), True


def estimate_rating(tags: dict[str, str]) -> float:
    """Heuristic 0-5 score from tag presence. Not a review aggregate."""
    rating = BASE_RATING
    if tags.get("amenity") == "hospital":
        rating += 0.5
    if tags.get("emergency") == "yes":
        rating += 0.3
    if tags.get("website"):
        rating += 0.2
    if tags.get("phone"):
        rating += 0.2
    if tags.get(SPECIALTY_TAG):
        rating += 0.3
    return min(MAX_RATING, round(rating, 1))


def infer_services(tags: dict[str, str]) -> list[str]:
    amenity = tags.get("amenity")
    services: list[str] = []
    if amenity == "hospital":
        services += ["Emergency Care", "Inpatient Care", "Surgery"]
    if amenity == "clinic":
        services += ["Outpatient Care", "Consultation"]
    if tags.get("emergency") == "yes":
        services.append("Emergency Services")
    if "surgery" in tags.get(SPECIALTY_TAG, "").lower():
        services.append("Surgery")
    return _dedupe(services)


def infer_languages(tags: dict[str, str]) -> list[str]:
    languages = ["English"]
    country = _tag(tags, "addr:country")
    if country is None or country.upper() == "IN":
        languages.append("Hindi")
        state = (_tag(tags, "addr:state") or "").lower()
        for needle, language in _REGIONAL_LANGUAGES:
            if needle in state:
                languages.append(language)
                break
    return languages


def infer_facilities(tags: dict[str, str]) -> list[str]:
    facilities: list[str] = []
    if tags.get("wheelchair") == "yes":
        facilities.append("Wheelchair Access")
    if tags.get("parking"):
        facilities.append("Parking")
    if tags.get("internet_access") == "wifi":
        facilities.append("Wi-Fi")
    if tags.get("amenity") == "hospital":
        facilities += ["Reception", "Waiting Area"]
    return facilities


class FacilityNormalizer:
    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._metrics = collector or default_metrics

    def normalize(self, element: RawElement) -> Clinic | None:
        coordinate = element.resolved_coordinate()
        if coordinate is None:
            logger.debug("Dropping %s/%s: no coordinate", element.type, element.id)
            return None

        tags = element.tags
        name = resolve_name(tags)
        if name is None:
            logger.debug("Dropping %s/%s: no name", element.type, element.id)
            return None

        lat, lon = coordinate
        opening_hours, hours_estimated = parse_opening_hours(tags.get("opening_hours"))

        return Clinic(
            id=f"osm-{element.type}-{element.id}",
            external_source_id=f"{element.type}/{element.id}",
            name=name,
            address=assemble_address(tags, lat, lon),
            city=_tag(tags, "addr:city"),
            state=_tag(tags, "addr:state"),
            postal_code=_tag(tags, "addr:postcode"),
            latitude=lat,
            longitude=lon,
            phone=_tag(tags, "phone", "contact:phone"),
            email=_tag(tags, "email", "contact:email"),
            website=_tag(tags, "website", "contact:website"),
            facility_type=_tag(tags, "amenity"),
            specializations=infer_specializations(tags),
            services=infer_services(tags),
            rating=estimate_rating(tags),
            rating_is_estimate=True,
            review_count=0,
            opening_hours=opening_hours,
            opening_hours_is_estimate=hours_estimated,
            languages=infer_languages(tags),
            facilities=infer_facilities(tags),
            emergency_services=has_emergency_services(tags),
        )

    def normalize_all(self, elements: list[RawElement]) -> list[Clinic]:
        clinics = [c for c in (self.normalize(e) for e in elements) if c is not None]
        self._metrics.record_normalization(len(elements), len(clinics))
        if len(clinics) < len(elements):
            logger.info(
                "Normalized %d of %d elements (%d dropped)",
                len(clinics),
                len(elements),
                len(elements) - len(clinics),
            )
        return clinics
