from pydantic import BaseModel
from typing import Optional
from decimal import Decimal

from expresslane.bookings.schemas import Booking

class AdminBooking(Booking):
    user_email: Optional[str] = None

class DashboardStats(BaseModel):
    total_drivers: int
    active_bookings: int
    completed_bookings: int
    pending_adjudication: int
    total_revenue: Decimal
    total_refunds: Decimal
    total_fines: Decimal
