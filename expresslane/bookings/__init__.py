"""
Booking Lifecycle Module

Express lane and FastTag bookings from eligibility check to expiry.

- Eligibility: closed 5-20 km distance window, fee and 10-minute arrival slot
- Booking creation with an atomic balance debit and ledger entry
- FastTag bookings at the nearest toll booth for a flat fee
- Periodic and on-read expiry of confirmed bookings
- Booking receipts delivered after commit

Key Components:
- eligibility.py: Pure eligibility and time-slot rules
- booking_service.py: Booking creation, queries and the expiry sweep
- sweeper.py: Background task running the expiry sweep
- notifications.py: Booking receipt delivery
- router.py: FastAPI endpoints for drivers
- schemas.py: Pydantic models for booking data
"""

from . import eligibility

__all__ = ["eligibility"]
