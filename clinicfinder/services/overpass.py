"""Adapter for the Overpass API (OpenStreetMap point-of-interest queries)."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, ValidationError, field_validator

from clinicfinder.config import settings
from clinicfinder.exceptions import SearchFailed
from clinicfinder.services.metrics import MetricsCollector, metrics as default_metrics
from clinicfinder.services.query_builder import FacilityQuery

logger = logging.getLogger(__name__)


class RawCenter(BaseModel):
    lat: float
    lon: float


class RawElement(BaseModel):
    """One element of an Overpass response. Every tag is optional."""

    type: str
    id: int | str
    lat: float | None = None
    lon: float | None = None
    center: RawCenter | None = None
    tags: dict[str, str] = {}

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> dict[str, str]:
        if not isinstance(value, dict):
            return {}
        return {
            str(k): str(v)
            for k, v in value.items()
            if v is not None and not isinstance(v, (dict, list))
        }

    @field_validator("center", mode="before")
    @classmethod
    def _drop_bad_center(cls, value: Any) -> Any:
        if isinstance(value, dict) and "lat" in value and "lon" in value:
            return value
        return None

    def resolved_coordinate(self) -> tuple[float, float] | None:
        """Return ``(lat, lon)`` from the element or its center, if in range."""
        if self.lat is not None and self.lon is not None:
            lat, lon = self.lat, self.lon
        elif self.center is not None:
            lat, lon = self.center.lat, self.center.lon
        else:
            return None
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            return None
        return lat, lon


class FacilitySource(Protocol):
    async def fetch(self, query: FacilityQuery) -> list[RawElement]: ...


def _regex(values: tuple[str, ...]) -> str:
    return "^(" + "|".join(values) + ")$"


def to_overpass_ql(query: FacilityQuery) -> str:
    """Translate a :class:`FacilityQuery` into Overpass QL."""
    predicate = f'[amenity~"{_regex(query.facility_types)}"]'
    if query.emergency_only:
        predicate += f'[emergency~"{_regex(query.emergency_values)}"]'
    box = query.bbox
    bbox = f"({box.south},{box.west},{box.north},{box.east})"
    statements = "\n".join(
        f"  {kind}{predicate}{bbox};" for kind in query.element_kinds
    )
    return f"[out:json][timeout:{query.timeout_s}];\n(\n{statements}\n);\nout center meta;"


def parse_elements(payload: Any) -> list[RawElement]:
    """Validate an Overpass JSON payload, skipping malformed elements.

    Raises ``ValueError`` when the payload itself has no element list.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("elements"), list):
        raise ValueError("Overpass payload has no 'elements' list")

    elements: list[RawElement] = []
    for raw in payload["elements"]:
        try:
            elements.append(RawElement.model_validate(raw))
        except ValidationError:
            logger.debug("Skipping malformed Overpass element: %r", raw)
    return elements


class OverpassClient:
    """Fetches raw facility elements for a :class:`FacilityQuery`."""

    def __init__(
        self,
        url: str | None = None,
        *,
        user_agent: str | None = None,
        timeout: float | None = None,
        collector: MetricsCollector | None = None,
        _transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url or settings.overpass_url
        self._user_agent = user_agent or settings.overpass_user_agent
        self._timeout = timeout if timeout is not None else settings.overpass_http_timeout
        self._metrics = collector or default_metrics
        self._transport = _transport

    async def fetch(self, query: FacilityQuery) -> list[RawElement]:
        ql = to_overpass_ql(query)
        logger.debug("Overpass query: %s", " ".join(ql.split()))

        kwargs: dict[str, Any] = {"timeout": self._timeout}
        if self._transport is not None:
            kwargs["transport"] = self._transport
        headers = {"User-Agent": self._user_agent}

        try:
            async with httpx.AsyncClient(**kwargs) as client:
                resp = await client.post(self._url, data={"data": ql}, headers=headers)
                resp.raise_for_status()
            elements = parse_elements(resp.json())
        except httpx.HTTPError as exc:
            logger.warning("Overpass request failed: %s", exc)
            self._metrics.inc_external_query(False)
            raise SearchFailed(exc) from exc
        except ValueError as exc:
            logger.warning("Overpass returned an unusable payload: %s", exc)
            self._metrics.inc_external_query(False)
            raise SearchFailed(exc) from exc

        self._metrics.inc_external_query(True)
        logger.info("Overpass returned %d elements", len(elements))
        return elements
