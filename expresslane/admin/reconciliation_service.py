"""
Post-hoc adjudication of settled bookings.

An administrator applies exactly one decision to each completed express
booking (refund or no refund) and each FastTag booking (fine or no fine).
The claim on a booking is a single conditional UPDATE on
``admin_processed``, so of two administrators acting on the same booking at
the same moment only one gets a row back; the other sees a conflict.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from expresslane.auth.schemas import UserSession
from expresslane.exceptions import AdjudicationConflictError, BookingNotFoundError, PermissionDeniedError
from expresslane.ledger.service import LedgerService
from expresslane.models import Booking, BookingStatus, TransactionType, status_in

logger = logging.getLogger(__name__)

REFUND_AMOUNT = Decimal("50.00")
FINE_AMOUNT = Decimal("1000.00")

class Adjudication(str, Enum):
    REFUND = "refund"
    NO_REFUND = "no_refund"
    FINE = "fine"
    NO_FINE = "no_fine"

@dataclass(frozen=True)
class AdjudicationRule:
    required_status: BookingStatus
    resulting_status: BookingStatus
    amount: Optional[Decimal] = None
    transaction_type: Optional[TransactionType] = None
    description: Optional[str] = None

ADJUDICATION_RULES = {
    Adjudication.REFUND: AdjudicationRule(
        BookingStatus.COMPLETED, BookingStatus.REFUND,
        REFUND_AMOUNT, TransactionType.REFUND, "Refund for unused express lane booking"
    ),
    Adjudication.NO_REFUND: AdjudicationRule(BookingStatus.COMPLETED, BookingStatus.COMPLETED),
    Adjudication.FINE: AdjudicationRule(
        BookingStatus.FASTTAG, BookingStatus.FINED,
        -FINE_AMOUNT, TransactionType.FINE, "Fine for FastTag lane misuse"
    ),
    Adjudication.NO_FINE: AdjudicationRule(BookingStatus.FASTTAG, BookingStatus.FASTTAG),
}

class ReconciliationService:
    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)
    
    def refund(self, session: UserSession, booking_id: int) -> Booking:
        """Credit 50 back for a completed booking the driver did not use"""
        return self.adjudicate(session, booking_id, Adjudication.REFUND)
    
    def no_refund(self, session: UserSession, booking_id: int) -> Booking:
        return self.adjudicate(session, booking_id, Adjudication.NO_REFUND)
    
    def fine(self, session: UserSession, booking_id: int) -> Booking:
        """Debit 1000 for FastTag lane misuse; the balance may go negative"""
        return self.adjudicate(session, booking_id, Adjudication.FINE)
    
    def no_fine(self, session: UserSession, booking_id: int) -> Booking:
        return self.adjudicate(session, booking_id, Adjudication.NO_FINE)
    
    def adjudicate(self, session: UserSession, booking_id: int, action: Adjudication) -> Booking:
        if not session.is_admin:
            raise PermissionDeniedError("Only administrators can adjudicate bookings")
        
        rule = ADJUDICATION_RULES[action]
        try:
            claimed = self.db.query(Booking).filter(
                Booking.id == booking_id,
                Booking.admin_processed.is_(False),
                status_in(rule.required_status)
            ).update(
                {
                    Booking.admin_processed: True,
                    Booking.status: rule.resulting_status,
                    Booking.updated_at: func.now(),
                },
                synchronize_session=False
            )
            if claimed == 0:
                raise self._rejection(booking_id, rule, action)
            
            if rule.amount is not None:
                user_id = self.db.query(Booking.user_id).filter(Booking.id == booking_id).scalar()
                self.ledger.apply_delta(
                    user_id,
                    rule.amount,
                    description=rule.description,
                    booking_id=booking_id,
                    transaction_type=rule.transaction_type
                )
            self.db.commit()
        except AdjudicationConflictError as e:
            self.db.rollback()
            logger.warning("Adjudication %s rejected for booking %s: %s", action.value, booking_id, e.message)
            raise
        except Exception:
            self.db.rollback()
            raise
        
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        logger.info(
            "Booking %s adjudicated by admin %s: %s -> %s",
            booking_id, session.user_id, action.value, booking.status.value
        )
        return booking
    
    def _rejection(self, booking_id: int, rule: AdjudicationRule, action: Adjudication) -> Exception:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).populate_existing().first()
        if booking is None:
            return BookingNotFoundError(f"Booking {booking_id} not found")
        if booking.admin_processed:
            return AdjudicationConflictError(f"Booking {booking_id} has already been adjudicated")
        return AdjudicationConflictError(
            f"Cannot apply {action.value} to a {booking.status.value} booking; "
            f"it requires status {rule.required_status.value}",
            reason="invalid_status"
        )
