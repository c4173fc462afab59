"""
Booking eligibility rules.

Pure functions deciding whether a driver may book a toll booth's express
lane from where they are now, and which arrival window that booking implies.
Nothing here touches the database or the network.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from expresslane.exceptions import TimeSlotParseError, TimeSlotUnavailableError

MIN_BOOKING_DISTANCE_KM = Decimal("5")
MAX_BOOKING_DISTANCE_KM = Decimal("20")
SLOT_WINDOW_MINUTES = 10
MAX_CANDIDATES = 5
NO_TIME_LIMIT_SLOT = "No time limit"

_TWO_PLACES = Decimal("0.01")


class Eligibility(str, Enum):
    TOO_CLOSE = "too_close"
    BOOKABLE = "bookable"
    TOO_FAR = "too_far"
    UNAVAILABLE = "unavailable"


def round_distance(distance_km) -> Decimal:
    """Round a distance to the 2-decimal precision stored on bookings"""
    return Decimal(str(distance_km)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def classify(distance_km) -> Eligibility:
    """Closed-interval range check: bookable iff 5 <= d <= 20 km"""
    distance = Decimal(str(distance_km))
    if distance < MIN_BOOKING_DISTANCE_KM:
        return Eligibility.TOO_CLOSE
    if distance > MAX_BOOKING_DISTANCE_KM:
        return Eligibility.TOO_FAR
    return Eligibility.BOOKABLE


def compute_fee(toll_booth) -> Decimal:
    """Amount charged for an express booking: the booth's express-lane fee, nothing added"""
    return Decimal(str(toll_booth.express_lane_fee)).quantize(_TWO_PLACES)


@dataclass
class TollCandidate:
    """A toll booth paired with the provider's answer for it"""
    toll: Any
    distance_km: Optional[Decimal]
    duration_minutes: Optional[float]
    eligibility: Eligibility
    error: Optional[str] = None

    @property
    def is_bookable(self) -> bool:
        return self.eligibility == Eligibility.BOOKABLE


def evaluate_candidate(toll, result) -> TollCandidate:
    """Classify one booth from its DistanceResult"""
    if not result.ok:
        return TollCandidate(
            toll=toll,
            distance_km=None,
            duration_minutes=None,
            eligibility=Eligibility.UNAVAILABLE,
            error=result.error or "NO_RESULT"
        )
    return TollCandidate(
        toll=toll,
        distance_km=round_distance(result.distance_km),
        duration_minutes=result.duration_minutes,
        eligibility=classify(result.distance_km)
    )


def rank_candidates(
    tolls: Sequence[Any],
    results: Sequence[Any],
    limit: int = MAX_CANDIDATES
) -> Tuple[List[TollCandidate], List[TollCandidate]]:
    """Split booths into the ``limit`` nearest reachable ones (never more than 5) and the unavailable ones.

    Reachable booths are sorted by distance and returned whether bookable or
    not, so a driver can see why nearby options are excluded. Ties keep the
    provider's order.
    """
    if len(tolls) != len(results):
        raise ValueError("Expected one distance result per toll booth")

    candidates = [evaluate_candidate(toll, result) for toll, result in zip(tolls, results)]
    reachable = [c for c in candidates if c.eligibility != Eligibility.UNAVAILABLE]
    unavailable = [c for c in candidates if c.eligibility == Eligibility.UNAVAILABLE]

    reachable.sort(key=lambda c: c.distance_km)
    return reachable[:min(limit, MAX_CANDIDATES)], unavailable


def nearest_candidate(tolls: Sequence[Any], results: Sequence[Any]) -> Optional[TollCandidate]:
    """Nearest reachable booth; the first of equally near booths wins"""
    nearest = None
    for toll, result in zip(tolls, results):
        candidate = evaluate_candidate(toll, result)
        if candidate.eligibility == Eligibility.UNAVAILABLE:
            continue
        if nearest is None or candidate.distance_km < nearest.distance_km:
            nearest = candidate
    return nearest


# ================================
# Time slots
# ================================
@dataclass(frozen=True)
class TimeSlot:
    start: datetime
    end: datetime

    @property
    def booking_date(self) -> date:
        return self.start.date()

    @property
    def label(self) -> str:
        return format_time_slot(self.start, self.end)


def derive_time_slot(now: datetime, travel_duration_minutes: Optional[float]) -> TimeSlot:
    """Arrival window: [now + travel time, arrival + 10 minutes)"""
    if travel_duration_minutes is None:
        raise TimeSlotUnavailableError("Travel time unavailable; cannot allocate a time slot")
    # Slot labels carry minute precision
    arrival = (now + timedelta(minutes=travel_duration_minutes)).replace(second=0, microsecond=0)
    return TimeSlot(start=arrival, end=arrival + timedelta(minutes=SLOT_WINDOW_MINUTES))


def format_time_slot(start: datetime, end: datetime) -> str:
    return f"{start:%I:%M %p} - {end:%I:%M %p}".lower()


_CLOCK = r"(\d{1,2}):(\d{2})\s*([ap]\.?\s*m\.?)?"
_SLOT_PATTERN = re.compile(rf"^\s*{_CLOCK}\s*-\s*{_CLOCK}\s*$", re.IGNORECASE)


def _to_time(hour_text: str, minute_text: str, meridian: Optional[str], raw: str) -> time:
    hour, minute = int(hour_text), int(minute_text)
    if minute > 59:
        raise TimeSlotParseError(f"Invalid minutes in time slot {raw!r}")
    if meridian is None:
        if hour > 23:
            raise TimeSlotParseError(f"Invalid hour in time slot {raw!r}")
        return time(hour, minute)

    if not 1 <= hour <= 12:
        raise TimeSlotParseError(f"Invalid 12-hour clock value in time slot {raw!r}")
    is_pm = meridian.lower().startswith("p")
    hour = hour % 12 + (12 if is_pm else 0)
    return time(hour, minute)


def parse_time_slot(raw: str) -> Tuple[time, time]:
    """Parse ``"10:25 pm - 10:35 pm"``, ``"10:25pm-10:35pm"`` or ``"22:25-22:35"``.

    Both ends must use the same clock convention.
    """
    if raw is None:
        raise TimeSlotParseError("Missing time slot")
    match = _SLOT_PATTERN.match(raw)
    if not match:
        raise TimeSlotParseError(f"Unrecognized time slot {raw!r}")

    start_h, start_m, start_mer, end_h, end_m, end_mer = match.groups()
    if (start_mer is None) != (end_mer is None):
        raise TimeSlotParseError(f"Ambiguous time slot {raw!r}: mixed 12-hour and 24-hour clocks")

    return (
        _to_time(start_h, start_m, start_mer, raw),
        _to_time(end_h, end_m, end_mer, raw),
    )


def slot_end(booking_date: date, raw_slot: str) -> datetime:
    """Absolute end of a slot; an end earlier than the start falls on the next day"""
    start, end = parse_time_slot(raw_slot)
    end_at = datetime.combine(booking_date, end)
    if end < start:
        end_at += timedelta(days=1)
    return end_at


def is_expired(booking_date: date, raw_slot: str, now: datetime) -> bool:
    end_at = slot_end(booking_date, raw_slot)
    if now.tzinfo is not None:
        # Slots are wall-clock times in the caller's zone
        end_at = end_at.replace(tzinfo=now.tzinfo)
    return now > end_at
