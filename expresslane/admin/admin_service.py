from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from expresslane.admin.schemas import DashboardStats
from expresslane.models import Booking, BookingStatus, Transaction, TransactionType, User, UserRole, status_in

class AdminDashboardService:
    """Read-only views for administrators"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def get_stats(self) -> DashboardStats:
        total_drivers = self.db.query(func.count(User.id)).filter(User.role == UserRole.DRIVER).scalar()
        active_bookings = self.db.query(func.count(Booking.id)).filter(
            status_in(BookingStatus.CONFIRMED, BookingStatus.FASTTAG)
        ).scalar()
        completed_bookings = self.db.query(func.count(Booking.id)).filter(
            status_in(BookingStatus.COMPLETED)
        ).scalar()
        pending_adjudication = self.db.query(func.count(Booking.id)).filter(
            status_in(BookingStatus.COMPLETED, BookingStatus.FASTTAG),
            Booking.admin_processed.is_(False)
        ).scalar()
        total_revenue = self.db.query(func.coalesce(func.sum(Booking.amount), 0)).scalar()
        
        ledger_totals = dict(
            self.db.query(Transaction.type, func.sum(Transaction.amount))
            .filter(Transaction.type.in_([TransactionType.REFUND, TransactionType.FINE]))
            .group_by(Transaction.type)
            .all()
        )
        
        return DashboardStats(
            total_drivers=total_drivers or 0,
            active_bookings=active_bookings or 0,
            completed_bookings=completed_bookings or 0,
            pending_adjudication=pending_adjudication or 0,
            total_revenue=Decimal(str(total_revenue)),
            total_refunds=Decimal(str(ledger_totals.get(TransactionType.REFUND) or 0)),
            total_fines=-Decimal(str(ledger_totals.get(TransactionType.FINE) or 0))
        )
    
    def list_bookings(
        self,
        status: Optional[BookingStatus] = None,
        pending_only: bool = False,
        skip: int = 0,
        limit: int = 100
    ) -> List[Booking]:
        """Bookings newest first; ``pending_only`` keeps those still awaiting a decision"""
        query = self.db.query(Booking).options(
            joinedload(Booking.user),
            joinedload(Booking.toll_booth)
        )
        
        if status:
            query = query.filter(status_in(status))
        if pending_only:
            query = query.filter(
                status_in(BookingStatus.COMPLETED, BookingStatus.FASTTAG),
                Booking.admin_processed.is_(False)
            )
        
        return query.order_by(Booking.created_at.desc(), Booking.id.desc()).offset(skip).limit(limit).all()
    
    def list_drivers(self, search: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[User]:
        query = self.db.query(User).filter(User.role == UserRole.DRIVER)
        
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(User.email.ilike(pattern), User.license_plate.ilike(pattern)))
        
        return query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit).all()
