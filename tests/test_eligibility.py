"""
Unit tests for the eligibility rules.

Tests cover:
1. Distance classification at and around the 5 km and 20 km bounds
2. Candidate ranking and unavailable destinations
3. Time slot derivation, formatting and parsing
4. Slot expiry, including slots that run past midnight
"""

import pytest
from datetime import date, datetime, time
from decimal import Decimal
from types import SimpleNamespace

from expresslane.bookings.eligibility import (
    Eligibility, classify, compute_fee, derive_time_slot, evaluate_candidate, format_time_slot, is_expired,
    nearest_candidate, parse_time_slot, rank_candidates, round_distance, slot_end
)
from expresslane.exceptions import TimeSlotParseError, TimeSlotUnavailableError
from expresslane.tolls.distance import DistanceResult


def km(value, minutes=10):
    return DistanceResult(distance_meters=int(Decimal(str(value)) * 1000), duration_seconds=minutes * 60)


def toll(name, fee="50.00"):
    return SimpleNamespace(name=name, express_lane_fee=Decimal(fee))


class TestClassify:
    """Bookable iff 5 <= d <= 20, inclusive at both ends."""

    @pytest.mark.parametrize("distance, expected", [
        (0, Eligibility.TOO_CLOSE),
        (3, Eligibility.TOO_CLOSE),
        ("4.99", Eligibility.TOO_CLOSE),
        (5, Eligibility.BOOKABLE),
        ("12.5", Eligibility.BOOKABLE),
        (20, Eligibility.BOOKABLE),
        ("20.01", Eligibility.TOO_FAR),
        (35, Eligibility.TOO_FAR),
    ])
    def test_closed_interval(self, distance, expected):
        assert classify(distance) == expected

    def test_classifies_the_unrounded_distance(self):
        """A distance just outside a bound is rejected even if it would be stored on the bound."""
        assert round_distance("4.996") == Decimal("5.00")
        assert classify("4.996") == Eligibility.TOO_CLOSE
        assert classify(Decimal("4.996")) == Eligibility.TOO_CLOSE
        assert classify("20.004") == Eligibility.TOO_FAR
        assert classify("19.996") == Eligibility.BOOKABLE

    def test_candidate_stores_rounded_distance_with_raw_verdict(self):
        candidate = evaluate_candidate(toll("Edge"), DistanceResult(distance_meters=4996, duration_seconds=300))

        assert candidate.distance_km == Decimal("5.00")
        assert candidate.eligibility == Eligibility.TOO_CLOSE

    def test_fee_is_express_lane_fee_only(self):
        assert compute_fee(toll("X", "55.5")) == Decimal("55.50")


class TestRankCandidates:
    def test_sorted_by_distance_and_limited_to_five(self):
        tolls = [toll(f"T{i}") for i in range(7)]
        results = [km(d) for d in (30, 2, 12, 8, 19, 25, 6)]

        candidates, unavailable = rank_candidates(tolls, results)

        assert [c.toll.name for c in candidates] == ["T1", "T6", "T3", "T2", "T4"]
        assert [c.eligibility for c in candidates] == [
            Eligibility.TOO_CLOSE,
            Eligibility.BOOKABLE,
            Eligibility.BOOKABLE,
            Eligibility.BOOKABLE,
            Eligibility.BOOKABLE,
        ]
        assert unavailable == []

    def test_larger_limit_is_capped_at_five(self):
        tolls = [toll(f"T{i}") for i in range(8)]
        results = [km(6 + i) for i in range(8)]

        candidates, _ = rank_candidates(tolls, results, limit=8)

        assert len(candidates) == 5

    def test_failed_destination_is_marked_unavailable(self):
        """One of three destinations failing leaves the other two untouched."""
        tolls = [toll("A"), toll("B"), toll("C")]
        results = [km(12), DistanceResult(error="ZERO_RESULTS"), km(7)]

        candidates, unavailable = rank_candidates(tolls, results)

        assert [c.toll.name for c in candidates] == ["C", "A"]
        assert all(c.is_bookable for c in candidates)
        assert len(unavailable) == 1
        assert unavailable[0].toll.name == "B"
        assert unavailable[0].eligibility == Eligibility.UNAVAILABLE
        assert unavailable[0].distance_km is None
        assert unavailable[0].error == "ZERO_RESULTS"

    def test_length_mismatch_is_rejected(self):
        with pytest.raises(ValueError):
            rank_candidates([toll("A")], [])

    def test_nearest_first_minimum_wins(self):
        tolls = [toll("A"), toll("B"), toll("C")]
        results = [km(9), km(4), km(4)]

        assert nearest_candidate(tolls, results).toll.name == "B"

    def test_nearest_skips_unavailable(self):
        tolls = [toll("A"), toll("B")]
        results = [DistanceResult(error="NOT_FOUND"), km(40)]

        assert nearest_candidate(tolls, results).toll.name == "B"
        assert nearest_candidate(tolls[:1], results[:1]) is None


class TestTimeSlots:
    def test_derive_slot_from_travel_time(self):
        now = datetime(2025, 7, 10, 22, 10, 30)

        slot = derive_time_slot(now, 15)

        assert slot.start == datetime(2025, 7, 10, 22, 25)
        assert slot.end == datetime(2025, 7, 10, 22, 35)
        assert slot.label == "10:25 pm - 10:35 pm"
        assert slot.booking_date == date(2025, 7, 10)

    def test_missing_duration_blocks_the_slot(self):
        with pytest.raises(TimeSlotUnavailableError) as exc_info:
            derive_time_slot(datetime(2025, 7, 10, 9, 0), None)
        assert exc_info.value.reason == "missing_time_slot"

    def test_slot_across_midnight(self):
        slot = derive_time_slot(datetime(2025, 7, 10, 23, 40), 15)

        assert slot.label == "11:55 pm - 12:05 am"
        assert slot.booking_date == date(2025, 7, 10)
        assert slot_end(slot.booking_date, slot.label) == datetime(2025, 7, 11, 0, 5)

    def test_format_is_lower_case_twelve_hour(self):
        assert format_time_slot(datetime(2025, 1, 1, 9, 5), datetime(2025, 1, 1, 9, 15)) == "09:05 am - 09:15 am"

    @pytest.mark.parametrize("raw, expected", [
        ("10:25 pm - 10:35 pm", (time(22, 25), time(22, 35))),
        ("10:25pm-10:35pm", (time(22, 25), time(22, 35))),
        ("10:25 PM - 10:35 PM", (time(22, 25), time(22, 35))),
        ("12:00 am - 12:10 am", (time(0, 0), time(0, 10))),
        ("11:55 am - 12:05 pm", (time(11, 55), time(12, 5))),
        ("22:25-22:35", (time(22, 25), time(22, 35))),
        ("09:00 - 09:10", (time(9, 0), time(9, 10))),
    ])
    def test_parse_accepted_encodings(self, raw, expected):
        assert parse_time_slot(raw) == expected

    @pytest.mark.parametrize("raw", [
        "No time limit",
        "",
        "10:25 pm - 22:35",
        "13:00 pm - 13:10 pm",
        "24:00-24:10",
        "10:75 am - 10:85 am",
        "10:25 pm to 10:35 pm",
    ])
    def test_parse_rejects_ambiguous_or_malformed(self, raw):
        with pytest.raises(TimeSlotParseError):
            parse_time_slot(raw)


class TestExpiry:
    def test_expired_only_after_the_slot_end(self):
        booking_date = date(2025, 7, 10)
        slot = "10:25pm-10:35pm"

        assert not is_expired(booking_date, slot, datetime(2025, 7, 10, 22, 30))
        assert not is_expired(booking_date, slot, datetime(2025, 7, 10, 22, 35))
        assert is_expired(booking_date, slot, datetime(2025, 7, 10, 22, 40))

    def test_midnight_slot_expires_next_day(self):
        booking_date = date(2025, 7, 10)
        slot = "11:55 pm - 12:05 am"

        assert not is_expired(booking_date, slot, datetime(2025, 7, 10, 23, 59))
        assert not is_expired(booking_date, slot, datetime(2025, 7, 11, 0, 4))
        assert is_expired(booking_date, slot, datetime(2025, 7, 11, 0, 6))

    def test_unparseable_slot_raises(self):
        with pytest.raises(TimeSlotParseError):
            is_expired(date(2025, 7, 10), "sometime tonight", datetime(2025, 7, 11))
