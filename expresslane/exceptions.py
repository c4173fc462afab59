"""
Domain errors shared by the booking, ledger and admin services.

Every error carries a machine-readable ``reason`` so routers can surface a
specific code (``too_close``, ``insufficient_balance`` ...) instead of a
generic failure.
"""

from typing import Optional


class ExpressLaneError(Exception):
    reason = "error"
    status_code = 400

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason

    def to_detail(self) -> dict:
        return {"reason": self.reason, "message": self.message}


class IneligibleDistanceError(ExpressLaneError):
    """Distance outside the bookable range; reason is too_close or too_far"""
    status_code = 422


class InsufficientBalanceError(ExpressLaneError):
    reason = "insufficient_balance"
    status_code = 402


class TimeSlotUnavailableError(ExpressLaneError):
    reason = "missing_time_slot"
    status_code = 422


class DistanceServiceUnavailableError(ExpressLaneError):
    reason = "distance_service_unavailable"
    status_code = 503


class TimeSlotParseError(ExpressLaneError):
    reason = "invalid_time_slot"
    status_code = 422


class AdjudicationConflictError(ExpressLaneError):
    reason = "already_processed"
    status_code = 409


class NotFoundError(ExpressLaneError):
    reason = "not_found"
    status_code = 404


class BookingNotFoundError(NotFoundError):
    pass


class TollBoothNotFoundError(NotFoundError):
    pass


class UserNotFoundError(NotFoundError):
    pass


class PermissionDeniedError(ExpressLaneError):
    reason = "forbidden"
    status_code = 403
