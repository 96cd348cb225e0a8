from clinicfinder.models import Coordinate
from clinicfinder.services.query_builder import (
    EMERGENCY_FACILITY_TYPES,
    GENERAL_FACILITY_TYPES,
    build_query,
)

CHENNAI = Coordinate(latitude=13.0827, longitude=80.2707)


def test_general_query_covers_all_facility_types():
    query = build_query(CHENNAI, 5000)
    assert query.facility_types == GENERAL_FACILITY_TYPES
    assert set(query.facility_types) == {"hospital", "clinic", "doctors", "pharmacy"}
    assert not query.emergency_only
    assert query.element_kinds == ("node", "way", "relation")


def test_emergency_filter_restricts_types_and_tags():
    query = build_query(CHENNAI, 5000, "emergency")
    assert query.facility_types == EMERGENCY_FACILITY_TYPES
    assert query.emergency_only
    assert set(query.emergency_values) == {"yes", "hospital"}


def test_other_specializations_use_general_query():
    query = build_query(CHENNAI, 5000, "cardiology")
    assert query.facility_types == GENERAL_FACILITY_TYPES
    assert not query.emergency_only


def test_box_surrounds_center():
    query = build_query(CHENNAI, 2000)
    assert query.bbox.contains(CHENNAI)
    assert query.bbox.north > CHENNAI.latitude > query.bbox.south


def test_timeout_passed_through():
    assert build_query(CHENNAI, 1000, timeout_s=60).timeout_s == 60
