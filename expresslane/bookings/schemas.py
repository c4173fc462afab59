from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal

from expresslane.models import BookingStatus

class Location(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

class ExpressBookingRequest(Location):
    toll_booth_id: int

class FasttagBookingRequest(Location):
    pass

class Booking(BaseModel):
    id: int
    user_id: int
    toll_booth_id: int
    toll_booth_name: Optional[str] = None
    booking_date: date
    time_slot: str
    distance_from_toll: Decimal
    amount: Decimal
    status: BookingStatus
    admin_processed: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class BookingQuote(BaseModel):
    """Pre-flight answer for an express booking"""
    toll_booth_id: int
    toll_booth_name: str
    distance_km: Decimal
    duration_minutes: Optional[float] = None
    eligibility: str
    time_slot: Optional[str] = None
    booking_date: Optional[date] = None
    fee: Decimal
    balance: Decimal
    can_afford: bool
    can_book: bool
    warnings: List[str] = []

class SweepResponse(BaseModel):
    checked: int
    completed: int
    invalid_slot_ids: List[int]
