"""Domain models shared by the discovery engine, the normalizer and the API."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

WEEKDAYS: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


class UrgencyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EMERGENCY = "emergency"

    @property
    def rank(self) -> int:
        return _URGENCY_RANK[self]


_URGENCY_RANK = {
    UrgencyLevel.LOW: 1,
    UrgencyLevel.MEDIUM: 2,
    UrgencyLevel.HIGH: 3,
    UrgencyLevel.EMERGENCY: 4,
}


class SortKey(str, Enum):
    DISTANCE = "distance"
    RATING = "rating"
    NAME = "name"


class FixQuality(str, Enum):
    HIGH = "high"
    GOOD = "good"
    MEDIUM = "medium"
    LOW = "low"


class LocationErrorReason(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"

    @property
    def retryable(self) -> bool:
        return self in (
            LocationErrorReason.TIMEOUT,
            LocationErrorReason.POSITION_UNAVAILABLE,
        )


class Coordinate(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    model_config = {"frozen": True}


class UserLocation(BaseModel):
    """A single resolved fix. Never persisted beyond process memory."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy_m: float = Field(..., ge=0, description="Accuracy radius in meters")
    captured_at_ms: int = Field(..., description="Capture time, epoch milliseconds")
    altitude: float | None = None
    altitude_accuracy: float | None = None
    heading: float | None = None
    speed: float | None = None
    source_label: str | None = None
    quality: FixQuality | None = None

    model_config = {"frozen": True}

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.captured_at_ms


class DayHours(BaseModel):
    open: str
    close: str
    is_24h: bool = False
    is_closed: bool = False


class Clinic(BaseModel):
    """Canonical facility record.

    ``name`` and the coordinate pair are always present; records lacking
    either are dropped by the normalizer and never reach this model.
    ``distance_km`` is only populated on copies handed out in a search
    result, never on the base record held by the cache.
    """

    id: str
    name: str = Field(..., min_length=1)
    address: str
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    facility_type: str | None = None
    specializations: list[str] = Field(default_factory=list)
    services: list[str] = Field(default_factory=list)
    rating: float = Field(..., ge=0, le=5)
    rating_is_estimate: bool = True
    review_count: int = 0
    opening_hours: dict[str, DayHours] = Field(default_factory=dict)
    opening_hours_is_estimate: bool = True
    languages: list[str] = Field(default_factory=list)
    facilities: list[str] = Field(default_factory=list)
    emergency_services: bool = False
    distance_km: float | None = None
    external_source_id: str

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(latitude=self.latitude, longitude=self.longitude)

    def with_distance(self, distance_km: float) -> Clinic:
        return self.model_copy(update={"distance_km": distance_km})

    def is_open_at(self, moment: datetime) -> bool:
        today = self.opening_hours.get(WEEKDAYS[moment.weekday()])
        if today is None or today.is_closed:
            return False
        if today.is_24h:
            return True
        current = moment.strftime("%H:%M")
        return today.open <= current <= today.close


class SearchOptions(BaseModel):
    """Filters and ordering for a clinic search. Radius is always meters."""

    specialization: str | None = None
    radius_m: int = Field(5000, gt=0)
    min_rating: float = Field(0.0, ge=0, le=5)
    emergency_only: bool = False
    language: str | None = None
    sort_by: SortKey = SortKey.DISTANCE
    limit: int = Field(10, gt=0)

    model_config = {"frozen": True}

    @classmethod
    def from_km(cls, radius_km: float, **kwargs) -> SearchOptions:
        return cls(radius_m=km_to_meters(radius_km), **kwargs)


class SymptomAssessment(BaseModel):
    specializations: list[str] = Field(default_factory=list)
    urgency_level: UrgencyLevel = UrgencyLevel.LOW
    recommendations: list[str] = Field(default_factory=list)


class ClinicRecommendation(BaseModel):
    """Symptom triage together with the clinic search it produced."""

    assessment: SymptomAssessment
    clinics: list[Clinic] = Field(default_factory=list)


def km_to_meters(radius_km: float) -> int:
    """Whole meters, never below 1."""
    return max(1, round(radius_km * 1000))
