from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List
from datetime import datetime

from expresslane.auth.dependencies import get_current_session, require_driver
from expresslane.auth.schemas import UserSession
from expresslane.bookings import schemas
from expresslane.bookings.booking_service import BookingService
from expresslane.bookings.eligibility import Eligibility
from expresslane.bookings.notifications import build_receipt, send_booking_receipt
from expresslane.database import get_db
from expresslane.exceptions import ExpressLaneError
from expresslane.tolls.distance import Coordinate, DistanceProvider, get_distance_provider

router = APIRouter()

def _quote_warnings(quote) -> List[str]:
    warnings = []
    if quote.eligibility == Eligibility.TOO_CLOSE:
        warnings.append("You are closer than 5 km to this toll booth")
    elif quote.eligibility == Eligibility.TOO_FAR:
        warnings.append("You are more than 20 km from this toll booth")
    if quote.time_slot is None:
        warnings.append("Travel time unavailable; no time slot can be allocated")
    if not quote.can_afford:
        warnings.append(f"Insufficient balance: {quote.balance} available, {quote.fee} required")
    return warnings

@router.post("/quote", response_model=schemas.BookingQuote)
def quote_express_booking(
    request: schemas.ExpressBookingRequest,
    session: UserSession = Depends(require_driver),
    db: Session = Depends(get_db),
    provider: DistanceProvider = Depends(get_distance_provider)
):
    """Distance, eligibility, time slot and fee for a booth, without booking"""
    booking_service = BookingService(db, provider)

    try:
        quote = booking_service.quote(
            session, request.toll_booth_id, Coordinate(lat=request.lat, lng=request.lng), datetime.now()
        )
    except ExpressLaneError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

    return schemas.BookingQuote(
        toll_booth_id=quote.toll.id,
        toll_booth_name=quote.toll.name,
        distance_km=quote.distance_km,
        duration_minutes=quote.duration_minutes,
        eligibility=quote.eligibility.value,
        time_slot=quote.time_slot.label if quote.time_slot else None,
        booking_date=quote.time_slot.booking_date if quote.time_slot else None,
        fee=quote.fee,
        balance=quote.balance,
        can_afford=quote.can_afford,
        can_book=quote.can_book,
        warnings=_quote_warnings(quote)
    )

@router.post("/express", response_model=schemas.Booking, status_code=status.HTTP_201_CREATED)
def create_express_booking(
    request: schemas.ExpressBookingRequest,
    background_tasks: BackgroundTasks,
    session: UserSession = Depends(require_driver),
    db: Session = Depends(get_db),
    provider: DistanceProvider = Depends(get_distance_provider)
):
    """Book a toll booth's express lane for the derived arrival window"""
    booking_service = BookingService(db, provider)

    try:
        booking = booking_service.book_express(
            session, request.toll_booth_id, Coordinate(lat=request.lat, lng=request.lng), datetime.now()
        )
    except ExpressLaneError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

    background_tasks.add_task(send_booking_receipt, build_receipt(booking))
    return booking

@router.post("/fasttag", response_model=schemas.Booking, status_code=status.HTTP_201_CREATED)
def create_fasttag_booking(
    request: schemas.FasttagBookingRequest,
    background_tasks: BackgroundTasks,
    session: UserSession = Depends(require_driver),
    db: Session = Depends(get_db),
    provider: DistanceProvider = Depends(get_distance_provider)
):
    """Book the FastTag lane at the nearest toll booth"""
    booking_service = BookingService(db, provider)

    try:
        booking = booking_service.create_fasttag(
            session, Coordinate(lat=request.lat, lng=request.lng), datetime.now()
        )
    except ExpressLaneError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

    background_tasks.add_task(send_booking_receipt, build_receipt(booking))
    return booking

@router.get("/me", response_model=List[schemas.Booking])
def get_my_bookings(
    limit: int = Query(100, ge=1, le=500, description="Maximum results"),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """The caller's bookings, newest first; expired bookings are completed first"""
    booking_service = BookingService(db)

    booking_service.sweep_before_read(datetime.now())
    return booking_service.get_user_bookings(session, limit=limit)

@router.get("/{booking_id}", response_model=schemas.Booking)
def get_booking(
    booking_id: int,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """Get booking details by ID"""
    try:
        return BookingService(db).get_booking(session, booking_id)
    except ExpressLaneError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
