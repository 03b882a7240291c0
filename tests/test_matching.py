"""Tests for professional matching and ranking."""

from booking_engine.scheduling.matching import (
    CityMatch,
    PincodeMatch,
    ServiceMatch,
    StateMatch,
    classify_match,
    match_rank,
    rank_professionals,
)
from booking_engine.schemas.booking_schema import Location
from booking_engine.schemas.directory_schema import Professional, ProfessionalStatus

VENUE = Location(city="Pune", state="Maharashtra", pincode="411001")


def _pro(pro_id, city="", state="", pincode="", services=None, total_bookings=0):
    return Professional(
        id=pro_id, user_id=f"U-{pro_id}", status=ProfessionalStatus.APPROVED,
        city=city, state=state, pincode=pincode,
        services=services or [], total_bookings=total_bookings,
    )


class TestClassifyMatch:
    def test_pincode_is_strongest(self):
        pro = _pro("A", city="Pune", state="Maharashtra", pincode="411001")
        assert classify_match(pro, VENUE) == PincodeMatch("411001")

    def test_city_match_is_case_insensitive(self):
        pro = _pro("A", city="PUNE", pincode="411045")
        assert classify_match(pro, VENUE) == CityMatch("Pune")

    def test_state_match(self):
        assert classify_match(_pro("A", city="Nagpur", state="Maharashtra"), VENUE) == (
            StateMatch("Maharashtra")
        )

    def test_service_only_match(self):
        pro = _pro("A", city="Goa", state="Goa", services=["Wedding Photography"])
        assert classify_match(pro, VENUE, "wedding") == ServiceMatch("wedding")

    def test_unrelated_professional(self):
        assert classify_match(_pro("A", city="Goa", state="Goa"), VENUE, "wedding") is None

    def test_location_match_requires_service(self):
        pro = _pro("A", pincode="411001", services=["product"])
        assert classify_match(pro, VENUE, "wedding") is None

    def test_professional_without_service_list_matches_on_location(self):
        assert classify_match(_pro("A", pincode="411001"), VENUE, "wedding") == (
            PincodeMatch("411001")
        )

    def test_blank_fields_never_match(self):
        assert classify_match(_pro("A"), Location()) is None


class TestRanking:
    def test_rank_order(self):
        assert [match_rank(m) for m in (
            PincodeMatch("1"), CityMatch("c"), StateMatch("s"), ServiceMatch("x"),
        )] == [0, 1, 2, 3]

    def test_ranks_by_match_then_bookings(self):
        candidates = [
            _pro("STATE", state="Maharashtra", total_bookings=100),
            _pro("CITY-LOW", city="Pune", total_bookings=1),
            _pro("CITY-HIGH", city="Pune", total_bookings=50),
            _pro("PIN", pincode="411001"),
            _pro("NONE", city="Delhi", state="Delhi"),
        ]
        ranked = rank_professionals(candidates, VENUE)
        assert [r.professional.id for r in ranked] == ["PIN", "CITY-HIGH", "CITY-LOW", "STATE"]
        assert ranked[0].rank == 0

    def test_ties_broken_by_id(self):
        ranked = rank_professionals([_pro("B", city="Pune"), _pro("A", city="Pune")], VENUE)
        assert [r.professional.id for r in ranked] == ["A", "B"]

    def test_empty_candidates(self):
        assert rank_professionals([], VENUE) == []
