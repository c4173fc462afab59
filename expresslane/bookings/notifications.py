"""
Booking receipts.

A receipt is posted to the configured webhook after the booking has been
committed. Delivery is best effort: failures are logged and never reach the
driver or undo the booking.
"""

import logging
from typing import Optional

import requests

from expresslane.config import settings

logger = logging.getLogger(__name__)

def build_receipt(booking) -> dict:
    """Receipt payload; built while the booking's session is still open"""
    details = {
        "tollName": booking.toll_booth_name,
        "timeSlot": booking.time_slot,
        "bookingDate": booking.booking_date.isoformat(),
        "amount": str(booking.amount),
        "bookingType": "fasttag" if booking.is_fasttag else "express",
    }
    if not booking.is_fasttag:
        details["distance"] = str(booking.distance_from_toll)
    return {"email": booking.user_email, "bookingDetails": details}

def send_booking_receipt(receipt: dict, webhook_url: Optional[str] = None, http=None) -> bool:
    """Deliver a receipt; True if the webhook accepted it"""
    url = webhook_url or settings.RECEIPT_WEBHOOK_URL
    if not url:
        logger.info("Receipt webhook not configured; skipping receipt for %s", receipt.get("email"))
        return False
    
    http = http or requests
    try:
        response = http.post(url, json=receipt, timeout=settings.RECEIPT_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.warning("Failed to send booking receipt to %s: %s", receipt.get("email"), e)
        return False
    
    logger.info("Booking receipt sent to %s", receipt.get("email"))
    return True
