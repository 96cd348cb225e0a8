import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from clinicfinder.api.main import create_app
from clinicfinder.exceptions import SearchFailed
from clinicfinder.services.cache import ClinicSearchCache
from clinicfinder.services.engine import ClinicDiscoveryEngine
from clinicfinder.services.location import GeoLocationProvider, ManualLocationSource
from clinicfinder.services.metrics import MetricsCollector, metrics
from clinicfinder.services.overpass import RawElement, parse_elements

CHENNAI = (13.0827, 80.2707)

# Overpass-shaped payload around Chennai Central: seven usable facilities,
# two without any coordinate and one without a name.
CHENNAI_PAYLOAD = {
    "version": 0.6,
    "elements": [
        {
            "type": "node",
            "id": 1001,
            "lat": 13.0780,
            "lon": 80.2780,
            "tags": {
                "amenity": "hospital",
                "name": "Government General Hospital",
                "emergency": "yes",
                "phone": "+91 44 2530 5000",
                "website": "https://ggh.example.org",
                "opening_hours": "24/7",
                "healthcare:speciality": "cardiology;trauma",
                "addr:street": "Poonamallee High Road",
                "addr:city": "Chennai",
                "addr:state": "Tamil Nadu",
                "addr:postcode": "600003",
            },
        },
        {
            "type": "way",
            "id": 2002,
            "center": {"lat": 13.0900, "lon": 80.2600},
            "tags": {
                "amenity": "clinic",
                "name": "Apollo Clinic",
                "healthcare:speciality": "dermatology",
                "wheelchair": "yes",
                "addr:state": "Tamil Nadu",
            },
        },
        {
            "type": "node",
            "id": 1003,
            "lat": 13.0850,
            "lon": 80.2720,
            "tags": {
                "amenity": "doctors",
                "name": "Dr. Kumar Clinic",
                "contact:phone": "+91 98400 00000",
            },
        },
        {
            "type": "node",
            "id": 1004,
            "lat": 13.0700,
            "lon": 80.2500,
            "tags": {"amenity": "pharmacy", "name": "MedPlus Pharmacy"},
        },
        {
            "type": "relation",
            "id": 3005,
            "center": {"lat": 13.0600, "lon": 80.2800},
            "tags": {
                "amenity": "hospital",
                "name": "Rajiv Gandhi Hospital",
                "emergency": "yes",
            },
        },
        {
            "type": "node",
            "id": 1006,
            "lat": 13.1000,
            "lon": 80.2900,
            "tags": {
                "amenity": "clinic",
                "name": "Kids Care Clinic",
                "healthcare:speciality": "paediatrics",
            },
        },
        {
            "type": "node",
            "id": 1007,
            "lat": 13.0600,
            "lon": 80.2500,
            "tags": {
                "amenity": "clinic",
                "name": "Sri Ramachandra Clinic",
                "website": "https://src.example.org",
            },
        },
        {"type": "node", "id": 1008, "tags": {"amenity": "clinic", "name": "Ghost Clinic"}},
        {
            "type": "way",
            "id": 2009,
            "tags": {"amenity": "hospital", "name": "Orphan Way Hospital"},
        },
        {"type": "node", "id": 1010, "lat": 13.0810, "lon": 80.2710, "tags": {"amenity": "clinic"}},
    ],
}

DISTANCE_ORDER = [
    "Dr. Kumar Clinic",
    "Government General Hospital",
    "Apollo Clinic",
    "MedPlus Pharmacy",
    "Rajiv Gandhi Hospital",
    "Kids Care Clinic",
    "Sri Ramachandra Clinic",
]


class FakeFacilitySource:
    """In-memory facility source recording every query it receives."""

    def __init__(self, elements=None, error=None, gate: asyncio.Event | None = None):
        self.elements = elements if elements is not None else chennai_elements()
        self.error = error
        self.gate = gate
        self.queries = []

    async def fetch(self, query):
        self.queries.append(query)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.elements)


def chennai_elements() -> list[RawElement]:
    return parse_elements(CHENNAI_PAYLOAD)


@pytest.fixture
def collector():
    return MetricsCollector()


@pytest.fixture
def source():
    return FakeFacilitySource()


@pytest.fixture
def manual_source():
    return ManualLocationSource(*CHENNAI, accuracy_m=12.0)


@pytest.fixture
def engine(source, manual_source, collector):
    provider = GeoLocationProvider(manual_source, retry_delays=(0, 0), collector=collector)
    return ClinicDiscoveryEngine(
        location_provider=provider,
        source=source,
        cache=ClinicSearchCache(maxsize=32, ttl=600, collector=collector),
        collector=collector,
    )


@pytest.fixture
def failing_source():
    return FakeFacilitySource(error=SearchFailed("Overpass returned 504"))


@pytest.fixture
async def client(engine):
    app = create_app(engine)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture(autouse=True)
def _reset_metrics():
    """Reset the process-wide collector used by the middleware."""
    metrics.reset()
    yield
    metrics.reset()
