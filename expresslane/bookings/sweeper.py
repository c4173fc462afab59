import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from expresslane.bookings.booking_service import BookingService, SweepResult
from expresslane.database import SessionLocal

logger = logging.getLogger(__name__)

def run_sweep(session_factory: Callable = SessionLocal, now: Optional[datetime] = None) -> SweepResult:
    """One expiry sweep in its own session"""
    db = session_factory()
    try:
        return BookingService(db).sweep_expired(now or datetime.now())
    finally:
        db.close()

class ExpirySweeper:
    """Background task completing expired bookings every ``interval`` seconds"""
    
    def __init__(self, interval: float, session_factory: Callable = SessionLocal):
        self.interval = interval
        self.session_factory = session_factory
        self._running = False
        self._wake: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None
    
    def start(self):
        self._running = True
        self._wake = asyncio.Event()
        self._task = asyncio.create_task(self._run())
        logger.info("Expiry sweeper started (every %ss)", self.interval)
    
    async def stop(self):
        """Stop after the sweep in progress, if any, has finished"""
        self._running = False
        if self._task is not None:
            self._wake.set()
            await self._task
            self._task = None
        logger.info("Expiry sweeper stopped")
    
    async def _run(self):
        while self._running:
            try:
                result = await asyncio.to_thread(run_sweep, self.session_factory)
                if result.invalid_slot_ids:
                    logger.error("Bookings with unreadable time slots: %s", result.invalid_slot_ids)
            except Exception:
                # The next tick retries
                logger.exception("Expiry sweep failed")
            
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                continue
