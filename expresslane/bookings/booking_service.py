import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from expresslane.auth.schemas import UserSession
from expresslane.bookings.eligibility import (
    NO_TIME_LIMIT_SLOT, Eligibility, TimeSlot, classify, compute_fee, derive_time_slot,
    evaluate_candidate, is_expired, nearest_candidate, round_distance
)
from expresslane.exceptions import (
    BookingNotFoundError, DistanceServiceUnavailableError, IneligibleDistanceError,
    InsufficientBalanceError, PermissionDeniedError, TimeSlotParseError,
    TimeSlotUnavailableError, TollBoothNotFoundError, UserNotFoundError
)
from expresslane.ledger.service import LedgerService
from expresslane.models import Booking, BookingStatus, TollBooth, TransactionType, status_in
from expresslane.tolls.distance import Coordinate, DistanceProvider
from expresslane.tolls.service import TollBoothService

logger = logging.getLogger(__name__)

FASTTAG_FEE = Decimal("100.00")

@dataclass
class SweepResult:
    """Outcome of one expiry sweep"""
    checked: int = 0
    completed: int = 0
    expired_ids: List[int] = field(default_factory=list)
    invalid_slot_ids: List[int] = field(default_factory=list)

@dataclass
class BookingQuote:
    toll: TollBooth
    distance_km: Decimal
    duration_minutes: Optional[float]
    eligibility: Eligibility
    time_slot: Optional[TimeSlot]
    fee: Decimal
    balance: Decimal

    @property
    def can_afford(self) -> bool:
        return self.balance >= self.fee

    @property
    def can_book(self) -> bool:
        return self.eligibility == Eligibility.BOOKABLE and self.time_slot is not None and self.can_afford

class BookingService:
    def __init__(self, db: Session, distance_provider: Optional[DistanceProvider] = None):
        self.db = db
        self.distance_provider = distance_provider
        self.ledger = LedgerService(db)

    # ================================
    # Creation
    # ================================
    def create(self, session: UserSession, toll: TollBooth, distance_km, time_slot: Optional[TimeSlot]) -> Booking:
        """Create a confirmed express booking and debit its fee in one transaction.

        Eligibility, slot and balance are all checked before anything is
        written. The balance check runs against the locked user row, so two
        concurrent bookings cannot both spend the same money.
        """
        self._require_driver(session)

        verdict = classify(distance_km)
        distance = round_distance(distance_km)
        if verdict != Eligibility.BOOKABLE:
            raise IneligibleDistanceError(
                f"{toll.name} is {distance} km away; bookings are allowed between 5 and 20 km",
                reason=verdict.value
            )
        if time_slot is None:
            raise TimeSlotUnavailableError("A time slot is required to book the express lane")

        return self._insert_and_debit(
            user_id=session.user_id,
            toll=toll,
            booking_date=time_slot.booking_date,
            time_slot=time_slot.label,
            distance_km=distance,
            amount=compute_fee(toll),
            status=BookingStatus.CONFIRMED,
            description=f"Express lane booking at {toll.name}"
        )

    def book_express(self, session: UserSession, toll_booth_id: int, origin: Coordinate, now: datetime) -> Booking:
        """Resolve distance and travel time for one booth, then create the booking"""
        self._require_driver(session)
        toll = TollBoothService.get_toll_booth(self.db, toll_booth_id)

        candidate = self._measure(toll, origin)
        if not candidate.is_bookable:
            raise IneligibleDistanceError(
                f"{toll.name} is {candidate.distance_km} km away; bookings are allowed between 5 and 20 km",
                reason=candidate.eligibility.value
            )

        slot = derive_time_slot(now, candidate.duration_minutes)
        return self.create(session, toll, candidate.distance_km, slot)

    def quote(self, session: UserSession, toll_booth_id: int, origin: Coordinate, now: datetime) -> BookingQuote:
        """Everything ``book_express`` would decide, without writing anything"""
        toll = TollBoothService.get_toll_booth(self.db, toll_booth_id)
        candidate = self._measure(toll, origin)

        slot = None
        if candidate.duration_minutes is not None:
            slot = derive_time_slot(now, candidate.duration_minutes)

        return BookingQuote(
            toll=toll,
            distance_km=candidate.distance_km,
            duration_minutes=candidate.duration_minutes,
            eligibility=candidate.eligibility,
            time_slot=slot,
            fee=compute_fee(toll),
            balance=self.ledger.get_balance(session.user_id)
        )

    def create_fasttag(self, session: UserSession, origin: Coordinate, now: datetime) -> Booking:
        """Book the FastTag lane at the nearest toll booth for the flat fee"""
        self._require_driver(session)

        tolls = TollBoothService.get_toll_booths(self.db)
        if not tolls:
            raise TollBoothNotFoundError("No toll booths configured")

        results = TollBoothService.distances_to(self._provider(), origin, tolls)
        nearest = nearest_candidate(tolls, results)
        if nearest is None:
            raise DistanceServiceUnavailableError("No toll booth could be reached from the current location")

        return self._insert_and_debit(
            user_id=session.user_id,
            toll=nearest.toll,
            booking_date=now.date(),
            time_slot=NO_TIME_LIMIT_SLOT,
            distance_km=Decimal("0"),
            amount=FASTTAG_FEE,
            status=BookingStatus.FASTTAG,
            description=f"FastTag lane booking at {nearest.toll.name}"
        )

    def _measure(self, toll: TollBooth, origin: Coordinate):
        results = TollBoothService.distances_to(self._provider(), origin, [toll])
        candidate = evaluate_candidate(toll, results[0])
        if candidate.eligibility == Eligibility.UNAVAILABLE:
            raise DistanceServiceUnavailableError(f"No route to {toll.name}: {candidate.error}")
        return candidate

    def _insert_and_debit(
        self,
        user_id: int,
        toll: TollBooth,
        booking_date,
        time_slot: str,
        distance_km: Decimal,
        amount: Decimal,
        status: BookingStatus,
        description: str
    ) -> Booking:
        try:
            user = self.ledger.lock_user(user_id)
            if user is None:
                raise UserNotFoundError(f"User {user_id} not found")

            balance = Decimal(str(user.balance))
            if balance < amount:
                raise InsufficientBalanceError(
                    f"Balance {balance} is below the booking fee {amount}"
                )

            booking = Booking(
                user_id=user_id,
                toll_booth_id=toll.id,
                booking_date=booking_date,
                time_slot=time_slot,
                distance_from_toll=distance_km,
                amount=amount,
                status=status,
                admin_processed=False
            )
            self.db.add(booking)
            self.db.flush()

            self.ledger.apply_delta(
                user_id,
                -amount,
                description=description,
                booking_id=booking.id,
                transaction_type=TransactionType.BOOKING_PAYMENT
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(
            "Booking %s created: user %s, toll %s, %s, amount %s",
            booking.id, user_id, toll.id, status.value, amount
        )
        return booking

    # ================================
    # Expiry
    # ================================
    def sweep_expired(self, now: datetime) -> SweepResult:
        """Move confirmed bookings whose slot has ended to completed.

        The status guard is repeated in the UPDATE itself, so overlapping
        sweeps complete each booking once and a repeated sweep is a no-op.
        Unparseable slots are reported in the result and left untouched.
        """
        rows = (
            self.db.query(Booking.id, Booking.booking_date, Booking.time_slot)
            .filter(status_in(BookingStatus.CONFIRMED))
            .order_by(Booking.id)
            .all()
        )

        result = SweepResult(checked=len(rows))
        expired_ids = result.expired_ids
        for booking_id, booking_date, time_slot in rows:
            try:
                if is_expired(booking_date, time_slot, now):
                    expired_ids.append(booking_id)
            except TimeSlotParseError as e:
                logger.error("Booking %s has an unreadable time slot: %s", booking_id, e.message)
                result.invalid_slot_ids.append(booking_id)

        if not expired_ids:
            return result

        try:
            result.completed = self.db.query(Booking).filter(
                Booking.id.in_(expired_ids),
                status_in(BookingStatus.CONFIRMED)
            ).update(
                {Booking.status: BookingStatus.COMPLETED, Booking.updated_at: func.now()},
                synchronize_session=False
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Expiry sweep completed %d of %d confirmed bookings", result.completed, result.checked)
        return result

    def sweep_before_read(self, now: datetime) -> Optional[SweepResult]:
        """Opportunistic sweep ahead of a dashboard read; a failure is logged and the read goes on"""
        try:
            result = self.sweep_expired(now)
        except Exception:
            self.db.rollback()
            logger.exception("Opportunistic expiry sweep failed")
            return None

        if result.invalid_slot_ids:
            logger.error("Bookings with unreadable time slots: %s", result.invalid_slot_ids)
        return result

    # ================================
    # Queries
    # ================================
    def get_user_bookings(self, session: UserSession, limit: int = 100) -> List[Booking]:
        return (
            self.db.query(Booking)
            .options(joinedload(Booking.toll_booth))
            .filter(Booking.user_id == session.user_id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .limit(limit)
            .all()
        )

    def get_booking(self, session: UserSession, booking_id: int) -> Booking:
        booking = (
            self.db.query(Booking)
            .options(joinedload(Booking.toll_booth))
            .filter(Booking.id == booking_id)
            .first()
        )
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        if not session.is_admin and booking.user_id != session.user_id:
            raise PermissionDeniedError("Booking belongs to another driver")
        return booking

    def _provider(self) -> DistanceProvider:
        if self.distance_provider is None:
            raise DistanceServiceUnavailableError("No distance provider configured")
        return self.distance_provider

    @staticmethod
    def _require_driver(session: UserSession):
        if session.is_admin:
            raise PermissionDeniedError("Only drivers can book toll lanes")
