from datetime import datetime

import pytest

from clinicfinder.services.metrics import MetricsCollector
from clinicfinder.services.normalizer import (
    FacilityNormalizer,
    assemble_address,
    estimate_rating,
    has_emergency_services,
    infer_languages,
    infer_specializations,
    normalize_specialty,
    parse_opening_hours,
    resolve_name,
)
from clinicfinder.services.overpass import RawElement

from conftest import chennai_elements


def _element(tags, **kwargs):
    fields = {"type": "node", "id": 42, "lat": 13.08, "lon": 80.27, "tags": tags}
    fields.update(kwargs)
    return RawElement.model_validate(fields)


@pytest.fixture
def normalizer():
    return FacilityNormalizer(collector=MetricsCollector())


class TestNormalize:
    def test_full_hospital_record(self, normalizer):
        clinic = normalizer.normalize(chennai_elements()[0])
        assert clinic.id == "osm-node-1001"
        assert clinic.external_source_id == "node/1001"
        assert clinic.name == "Government General Hospital"
        assert clinic.address == "Poonamallee High Road, Chennai, Tamil Nadu, 600003"
        assert clinic.city == "Chennai"
        assert clinic.postal_code == "600003"
        assert clinic.facility_type == "hospital"
        assert clinic.emergency_services is True
        assert clinic.specializations == ["general_medicine", "emergency", "cardiology"]
        assert clinic.rating == 5.0
        assert clinic.rating_is_estimate is True
        assert clinic.review_count == 0
        assert clinic.opening_hours_is_estimate is False
        assert all(day.is_24h for day in clinic.opening_hours.values())
        assert clinic.languages == ["English", "Hindi", "Tamil"]
        assert clinic.distance_km is None

    def test_way_uses_center(self, normalizer):
        clinic = normalizer.normalize(chennai_elements()[1])
        assert (clinic.latitude, clinic.longitude) == (13.0900, 80.2600)
        assert clinic.id == "osm-way-2002"
        assert "Wheelchair Access" in clinic.facilities

    def test_contact_fallback_keys(self, normalizer):
        clinic = normalizer.normalize(
            _element({"name": "A", "contact:phone": " 123 ", "contact:email": "a@b.in"})
        )
        assert clinic.phone == "123"
        assert clinic.email == "a@b.in"

    def test_missing_coordinate_dropped(self, normalizer):
        assert normalizer.normalize(RawElement(type="node", id=1, tags={"name": "X"})) is None

    def test_missing_name_dropped(self, normalizer):
        assert normalizer.normalize(_element({"amenity": "clinic"})) is None

    def test_blank_name_dropped(self, normalizer):
        assert normalizer.normalize(_element({"name": "   "})) is None

    def test_minimal_record_gets_defaults(self, normalizer):
        clinic = normalizer.normalize(_element({"name": "Corner Clinic"}))
        assert clinic.address == "13.0800, 80.2700"
        assert clinic.rating == 3.5
        assert clinic.specializations == []
        assert clinic.opening_hours_is_estimate is True
        assert clinic.opening_hours["Sunday"].is_closed
        assert clinic.phone is None

    def test_normalize_all_drops_and_counts(self):
        collector = MetricsCollector()
        clinics = FacilityNormalizer(collector=collector).normalize_all(chennai_elements())
        assert len(clinics) == 7
        assert collector.records_received == 10
        assert collector.records_dropped == 3


class TestHelpers:
    def test_specialty_synonyms(self):
        assert normalize_specialty("Paediatrics") == "pediatrics"
        assert normalize_specialty(" trauma ") == "emergency"
        assert normalize_specialty("astrology") is None

    def test_name_fallbacks(self):
        assert resolve_name({"name:en": "English Name"}) == "English Name"
        assert resolve_name({"brand": "Apollo"}) == "Apollo"
        assert resolve_name({}) is None

    def test_address_uses_neighbourhood_fallback(self):
        tags = {"addr:housenumber": "12", "addr:street": "Anna Salai", "addr:neighbourhood": "Teynampet"}
        assert assemble_address(tags, 0, 0) == "12, Anna Salai, Teynampet"

    def test_specializations_deduplicated(self):
        tags = {"amenity": "hospital", "emergency": "yes", "healthcare:speciality": "trauma;general"}
        assert infer_specializations(tags) == ["general_medicine", "emergency"]

    def test_unknown_specialty_ignored(self):
        assert infer_specializations({"healthcare:speciality": "homeopathy"}) == []

    def test_emergency_detection(self):
        assert has_emergency_services({"emergency": "hospital"})
        assert has_emergency_services({"amenity": "hospital"})
        assert has_emergency_services({"healthcare:speciality": "Emergency"})
        assert not has_emergency_services({"amenity": "clinic", "emergency": "no"})

    def test_rating_bonuses(self):
        assert estimate_rating({}) == 3.5
        assert estimate_rating({"amenity": "hospital"}) == 4.0
        assert estimate_rating({"emergency": "yes", "phone": "1"}) == 4.0
        assert estimate_rating({"emergency": "hospital"}) == 3.5

    def test_rating_capped(self):
        tags = {
            "amenity": "hospital",
            "emergency": "yes",
            "website": "w",
            "phone": "p",
            "healthcare:speciality": "s",
        }
        assert estimate_rating(tags) == 5.0

    def test_opening_hours_unparsed_is_estimate(self):
        hours, estimated = parse_opening_hours("Mo-Fr 09:00-17:00")
        assert estimated is True
        assert hours["Monday"].open == "08:00"
        assert hours["Saturday"].close == "14:00"

    def test_languages_outside_india(self):
        assert infer_languages({"addr:country": "LK"}) == ["English"]

    def test_languages_regional(self):
        assert infer_languages({"addr:state": "Kerala"}) == ["English", "Hindi", "Malayalam"]


def test_is_open_at_default_schedule(normalizer):
    clinic = normalizer.normalize(_element({"name": "Corner Clinic"}))
    # 2024-01-01 was a Monday, 2024-01-07 a Sunday.
    assert clinic.is_open_at(datetime(2024, 1, 1, 10, 30))
    assert not clinic.is_open_at(datetime(2024, 1, 1, 19, 0))
    assert not clinic.is_open_at(datetime(2024, 1, 7, 10, 0))
