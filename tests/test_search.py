"""
Tests for search classification and technician matching.

Run with: pytest tests/test_search.py -v
"""

from unittest.mock import MagicMock

import pytest

from errors import LocationNotFoundError
from geocoder import GeocodeMatch
from models import TechnicianRecord
from search import (
    classify_result,
    match_technicians,
    search_technicians,
    RESULT_ADDRESS,
    RESULT_NEIGHBORHOOD,
    RESULT_ZIP,
    RESULT_CITY,
    RESULT_STATE,
    RESULT_UNKNOWN,
)

DALLAS = (32.7767, -96.7970)


def match(address_type="", feature_type="", feature_class="", address=None, bbox=None,
          lat=DALLAS[0], lng=DALLAS[1]):
    return GeocodeMatch(
        latitude=lat,
        longitude=lng,
        display_name="somewhere",
        feature_type=feature_type,
        feature_class=feature_class,
        address_type=address_type,
        address=address or {},
        boundingbox=bbox,
    )


def tech(name, lat, lng, city="Dallas", state="TX", zip_code="75201", is_new=False, is_active=True):
    return TechnicianRecord(
        name=name, city=city, state=state, zip=zip_code, latitude=lat, longitude=lng,
        is_new=is_new, is_active=is_active, id=name,
    )


class TestClassifyResult:
    """Rules are checked in order; the first that applies wins."""

    @pytest.mark.parametrize("kwargs, expected", [
        (dict(address_type="state", address={"state": "Texas"}), RESULT_STATE),
        (dict(feature_type="administrative", address={"state": "Texas"}), RESULT_STATE),
        (dict(address_type="city", address={"city": "Dallas", "state": "Texas"}), RESULT_CITY),
        (dict(address_type="town", address={"town": "Plano"}), RESULT_CITY),
        (dict(address_type="village"), RESULT_CITY),
        (dict(feature_type="city"), RESULT_CITY),
        (dict(address_type="postcode", address={"postcode": "75201"}), RESULT_ZIP),
        (dict(address_type="suburb", feature_class="place"), RESULT_ZIP),
        (dict(address_type="suburb", feature_class="boundary"), RESULT_NEIGHBORHOOD),
        (dict(address_type="neighbourhood"), RESULT_NEIGHBORHOOD),
        (dict(address_type="quarter"), RESULT_NEIGHBORHOOD),
        (dict(feature_type="house"), RESULT_ADDRESS),
        (dict(feature_class="amenity", feature_type="restaurant"), RESULT_ADDRESS),
        (dict(address_type="road"), RESULT_ADDRESS),
    ])
    def test_type_tags(self, kwargs, expected):
        assert classify_result(match(**kwargs)) == expected

    def test_state_type_with_city_component_is_not_state(self):
        m = match(address_type="state", address={"city": "Dallas", "state": "Texas"},
                  bbox=["32.6", "33.0", "-97.0", "-96.5"])
        assert classify_result(m) == RESULT_CITY

    @pytest.mark.parametrize("bbox, expected", [
        (["32.7760", "32.7765", "-96.7975", "-96.7970"], RESULT_ADDRESS),
        (["32.6", "33.0", "-97.0", "-96.5"], RESULT_CITY),
        (["25.8", "36.5", "-106.6", "-93.5"], RESULT_STATE),
    ])
    def test_bounding_box_fallback(self, bbox, expected):
        assert classify_result(match(bbox=bbox)) == expected

    def test_no_match_is_unknown(self):
        assert classify_result(None) == RESULT_UNKNOWN

    def test_no_signal_defaults_to_city(self):
        assert classify_result(match()) == RESULT_CITY

    def test_untyped_county_match_without_bbox_is_city(self):
        m = match(feature_type="yes", feature_class="place",
                  address={"county": "Dallas County", "state": "Texas"}, lat=32.7, lng=-96.8)
        assert classify_result(m) == RESULT_CITY


class TestMatchTechnicians:
    """Tests for match_technicians()."""

    def test_scenario_c_zip_matches(self):
        techs = [
            tech("near-other-zip", 32.78, -96.80, zip_code="75202"),
            tech("in-zip", 32.79, -96.81, zip_code="75201"),
        ]
        results = match_technicians(RESULT_ZIP, *DALLAS, {"postcode": "75201"}, techs, query="75201")
        assert [r.technician.name for r in results] == ["in-zip"]
        assert not any(r.is_fallback for r in results)

    def test_scenario_c_zip_falls_back_to_nearest_ten(self):
        techs = [tech(f"t{i:02d}", 32.0 + i / 10, -96.8, zip_code="76000") for i in range(12)]
        results = match_technicians(RESULT_ZIP, 32.0, -96.8, {"postcode": "75201"}, techs, query="75201")
        assert len(results) == 10
        assert all(r.is_fallback for r in results)
        assert [r.technician.name for r in results] == [f"t{i:02d}" for i in range(10)]

    def test_zip_from_query_when_address_has_none(self):
        techs = [tech("a", 32.78, -96.80, zip_code="75201"), tech("b", 32.78, -96.80, zip_code="75202")]
        results = match_technicians(RESULT_ZIP, *DALLAS, {}, techs, query="75201-1234")
        assert [r.technician.name for r in results] == ["a"]

    def test_scenario_d_state(self):
        m = match(bbox=["25.8", "36.5", "-106.6", "-93.5"], address={"state": "Texas"},
                  lat=31.0, lng=-100.0)
        assert classify_result(m) == RESULT_STATE

        techs = [
            tech("lower-tx", 32.78, -96.80, state="tx"),
            tech("texas", 29.76, -95.37, city="Houston", state="Texas"),
            tech("ok", 35.47, -97.52, city="Oklahoma City", state="OK"),
        ]
        results = match_technicians(RESULT_STATE, m.latitude, m.longitude, m.address, techs, query="Texas")
        assert sorted(r.technician.name for r in results) == ["lower-tx", "texas"]

    def test_state_from_query_when_address_missing(self):
        techs = [tech("a", 32.78, -96.80, state="TX"), tech("b", 35.47, -97.52, state="OK")]
        results = match_technicians(RESULT_STATE, 31.0, -100.0, {}, techs, query="Texas")
        assert [r.technician.name for r in results] == ["a"]

    def test_city_case_insensitive(self):
        techs = [tech("a", 32.78, -96.80, city="DALLAS"), tech("b", 32.75, -97.33, city="Fort Worth")]
        results = match_technicians(RESULT_CITY, *DALLAS, {"city": "Dallas"}, techs)
        assert [r.technician.name for r in results] == ["a"]

    def test_neighborhood_uses_city(self):
        techs = [tech("a", 32.78, -96.80, city="Dallas"), tech("b", 32.75, -97.33, city="Fort Worth")]
        results = match_technicians(RESULT_NEIGHBORHOOD, *DALLAS,
                                    {"suburb": "Deep Ellum", "city": "Dallas"}, techs)
        assert [r.technician.name for r in results] == ["a"]

    @pytest.mark.parametrize("result_type", [RESULT_ADDRESS, RESULT_UNKNOWN])
    def test_address_and_unknown_always_fallback(self, result_type):
        techs = [tech("a", 32.78, -96.80)]
        results = match_technicians(result_type, *DALLAS, {"city": "Dallas", "postcode": "75201"}, techs)
        assert len(results) == 1
        assert results[0].is_fallback

    def test_new_technicians_first_then_distance(self):
        techs = [
            tech("near", 32.78, -96.80),
            tech("far-new", 30.27, -97.74, is_new=True),
            tech("mid", 32.75, -97.33),
            tech("near-new", 32.79, -96.81, is_new=True),
        ]
        results = match_technicians(RESULT_CITY, *DALLAS, {"city": "Nowhere"}, techs)
        assert [r.technician.name for r in results] == ["near-new", "far-new", "near", "mid"]
        new_flags = [r.technician.is_new for r in results]
        assert new_flags == sorted(new_flags, reverse=True)
        for group in (results[:2], results[2:]):
            distances = [r.distance_miles for r in group]
            assert distances == sorted(distances)

    def test_inactive_excluded(self):
        techs = [tech("gone", 32.78, -96.80, is_active=False), tech("here", 35.0, -97.0)]
        results = match_technicians(RESULT_CITY, *DALLAS, {"city": "Dallas"}, techs)
        assert [r.technician.name for r in results] == ["here"]
        assert results[0].is_fallback

    def test_never_empty_with_active_technicians(self):
        techs = [tech("a", 40.0, -75.0, city="Philadelphia", state="PA", zip_code="19103")]
        for result_type in (RESULT_ZIP, RESULT_CITY, RESULT_NEIGHBORHOOD, RESULT_STATE,
                            RESULT_ADDRESS, RESULT_UNKNOWN):
            results = match_technicians(result_type, *DALLAS, {"city": "Dallas", "state": "Texas",
                                                                "postcode": "75201"}, techs)
            assert len(results) == 1

    def test_empty_roster(self):
        assert match_technicians(RESULT_CITY, *DALLAS, {"city": "Dallas"}, []) == []

    def test_distances_in_miles(self):
        results = match_technicians(RESULT_UNKNOWN, *DALLAS, {}, [tech("fw", 32.7555, -97.3308)])
        assert 29 < results[0].distance_miles < 32


class TestSearchTechnicians:
    """Tests for search_technicians()."""

    def test_full_search(self, store):
        store.insert_technician(tech("Ann", 32.78, -96.80, zip_code="75201"))
        store.insert_technician(tech("Bob", 32.79, -96.81, zip_code="75202"))
        geocoder = MagicMock()
        geocoder.search.return_value = match(address_type="postcode", address={"postcode": "75201"})

        outcome = search_technicians("75201", store, geocoder)

        assert outcome.result_type == RESULT_ZIP
        assert [r.technician.name for r in outcome.results] == ["Ann"]
        assert not outcome.is_fallback
        assert outcome.latitude == DALLAS[0]

    def test_fallback_outcome(self, store):
        store.insert_technician(tech("Ann", 32.78, -96.80, zip_code="75201"))
        geocoder = MagicMock()
        geocoder.search.return_value = match(address_type="postcode", address={"postcode": "10001"})

        outcome = search_technicians("10001", store, geocoder)

        assert outcome.is_fallback
        assert [r.technician.name for r in outcome.results] == ["Ann"]

    def test_no_match_raises(self, store):
        geocoder = MagicMock()
        geocoder.search.return_value = None
        with pytest.raises(LocationNotFoundError) as exc_info:
            search_technicians("Atlantis", store, geocoder)
        assert exc_info.value.user_message == 'Could not find "Atlantis"'
