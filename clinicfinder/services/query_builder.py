"""Declarative facility queries, independent of any query language."""

from __future__ import annotations

from dataclasses import dataclass

from clinicfinder.models import Coordinate
from clinicfinder.services.distance import BoundingBox, bounding_box

EMERGENCY_FILTER = "emergency"

GENERAL_FACILITY_TYPES: tuple[str, ...] = ("hospital", "clinic", "doctors", "pharmacy")
EMERGENCY_FACILITY_TYPES: tuple[str, ...] = ("hospital", "emergency")
EMERGENCY_TAG_VALUES: tuple[str, ...] = ("yes", "hospital")
ELEMENT_KINDS: tuple[str, ...] = ("node", "way", "relation")


@dataclass(frozen=True)
class FacilityQuery:
    """What to fetch: facility types inside a box, optionally emergency-capable.

    Adapters translate this into their own wire format.
    """

    bbox: BoundingBox
    facility_types: tuple[str, ...]
    emergency_values: tuple[str, ...] = ()
    element_kinds: tuple[str, ...] = ELEMENT_KINDS
    timeout_s: int = 25

    @property
    def emergency_only(self) -> bool:
        return bool(self.emergency_values)


def build_query(
    center: Coordinate,
    radius_meters: float,
    specialization: str | None = None,
    timeout_s: int = 25,
) -> FacilityQuery:
    box = bounding_box(center, radius_meters)
    if specialization == EMERGENCY_FILTER:
        return FacilityQuery(
            bbox=box,
            facility_types=EMERGENCY_FACILITY_TYPES,
            emergency_values=EMERGENCY_TAG_VALUES,
            timeout_s=timeout_s,
        )
    return FacilityQuery(
        bbox=box,
        facility_types=GENERAL_FACILITY_TYPES,
        timeout_s=timeout_s,
    )
