"""
Admin Module

Administrator tools for settling bookings after the fact.

- Refund / no refund for completed express bookings
- Fine / no fine for FastTag bookings
- Dashboard statistics, booking and driver listings
- Manual expiry sweep

Every adjudication is applied at most once per booking.
"""

from . import router, schemas, admin_service, reconciliation_service

__all__ = [
    "router",
    "schemas",
    "admin_service",
    "reconciliation_service"
]
