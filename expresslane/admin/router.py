from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime

from expresslane.admin.admin_service import AdminDashboardService
from expresslane.admin.reconciliation_service import Adjudication, ReconciliationService
from expresslane.admin.schemas import AdminBooking, DashboardStats
from expresslane.auth.dependencies import require_admin
from expresslane.auth.schemas import User, UserSession
from expresslane.bookings.booking_service import BookingService
from expresslane.bookings.schemas import SweepResponse
from expresslane.config import settings
from expresslane.database import get_db
from expresslane.exceptions import ExpressLaneError
from expresslane.models import BookingStatus

router = APIRouter(prefix=f"{settings.API_V1_STR}/admin", tags=["Admin"])

@router.get("/dashboard", response_model=DashboardStats)
def get_dashboard(
    session: UserSession = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Headline numbers; expired bookings are completed first"""
    BookingService(db).sweep_before_read(datetime.now())
    return AdminDashboardService(db).get_stats()

@router.get("/bookings", response_model=List[AdminBooking])
def list_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status", description="Filter by booking status"),
    pending_only: bool = Query(False, description="Only bookings awaiting adjudication"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    session: UserSession = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """All bookings, newest first"""
    return AdminDashboardService(db).list_bookings(
        status=booking_status, pending_only=pending_only, skip=skip, limit=limit
    )

@router.get("/drivers", response_model=List[User])
def list_drivers(
    search: Optional[str] = Query(None, description="Match email or license plate"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    session: UserSession = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Registered drivers with their balances"""
    return AdminDashboardService(db).list_drivers(search=search, skip=skip, limit=limit)

def _adjudicate(action: Adjudication, booking_id: int, session: UserSession, db: Session):
    try:
        return ReconciliationService(db).adjudicate(session, booking_id, action)
    except ExpressLaneError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.post("/bookings/{booking_id}/refund", response_model=AdminBooking)
def refund_booking(booking_id: int, session: UserSession = Depends(require_admin), db: Session = Depends(get_db)):
    """Refund 50 on a completed booking"""
    return _adjudicate(Adjudication.REFUND, booking_id, session, db)

@router.post("/bookings/{booking_id}/no-refund", response_model=AdminBooking)
def no_refund_booking(booking_id: int, session: UserSession = Depends(require_admin), db: Session = Depends(get_db)):
    """Close a completed booking without a refund"""
    return _adjudicate(Adjudication.NO_REFUND, booking_id, session, db)

@router.post("/bookings/{booking_id}/fine", response_model=AdminBooking)
def fine_booking(booking_id: int, session: UserSession = Depends(require_admin), db: Session = Depends(get_db)):
    """Fine 1000 on a FastTag booking"""
    return _adjudicate(Adjudication.FINE, booking_id, session, db)

@router.post("/bookings/{booking_id}/no-fine", response_model=AdminBooking)
def no_fine_booking(booking_id: int, session: UserSession = Depends(require_admin), db: Session = Depends(get_db)):
    """Close a FastTag booking without a fine"""
    return _adjudicate(Adjudication.NO_FINE, booking_id, session, db)

@router.post("/sweep", response_model=SweepResponse)
def trigger_sweep(session: UserSession = Depends(require_admin), db: Session = Depends(get_db)):
    """Run the expiry sweep now"""
    result = BookingService(db).sweep_expired(datetime.now())
    return SweepResponse(
        checked=result.checked,
        completed=result.completed,
        invalid_slot_ids=result.invalid_slot_ids
    )
