import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expresslane.exceptions import UserNotFoundError
from expresslane.ledger.schemas import LedgerHistoryResponse, TransactionOut
from expresslane.models import Transaction, TransactionType, User

logger = logging.getLogger(__name__)

CREDIT_TYPES = {TransactionType.ACCOUNT_TOPUP, TransactionType.REFUND}
DEBIT_TYPES = {TransactionType.BOOKING_PAYMENT, TransactionType.FINE}

_TWO_PLACES = Decimal("0.01")

class LedgerService:
    """Balance mutations coupled to an append-only transaction ledger"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def lock_user(self, user_id: int) -> Optional[User]:
        """Load a user row under a write lock for the rest of the transaction"""
        return (
            self.db.query(User)
            .filter(User.id == user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
    
    def apply_delta(
        self,
        user_id: int,
        amount_change,
        description: Optional[str] = None,
        booking_id: Optional[int] = None,
        transaction_type: Optional[TransactionType] = None
    ) -> Transaction:
        """Change a balance and append the matching ledger row.
        
        Runs inside the caller's transaction and never commits, so callers can
        pair it with a booking mutation and commit both together. The balance
        is incremented in SQL rather than overwritten with a value read
        earlier.
        """
        amount = Decimal(str(amount_change)).quantize(_TWO_PLACES)
        if amount == 0:
            raise ValueError("Balance change must be non-zero")
        
        if transaction_type is None:
            transaction_type = TransactionType.ACCOUNT_TOPUP if amount > 0 else TransactionType.BOOKING_PAYMENT
        if transaction_type in CREDIT_TYPES and amount < 0:
            raise ValueError(f"{transaction_type.value} must increase the balance")
        if transaction_type in DEBIT_TYPES and amount > 0:
            raise ValueError(f"{transaction_type.value} must decrease the balance")
        
        user = self.lock_user(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        
        self.db.query(User).filter(User.id == user_id).update(
            {User.balance: User.balance + amount, User.updated_at: func.now()},
            synchronize_session=False
        )
        self.db.expire(user, ["balance", "updated_at"])
        
        entry = Transaction(
            user_id=user_id,
            booking_id=booking_id,
            type=transaction_type,
            amount=amount,
            description=description or self._default_description(transaction_type)
        )
        self.db.add(entry)
        self.db.flush()
        
        logger.info(
            "Ledger %s %s for user %s (booking %s)",
            transaction_type.value, amount, user_id, booking_id
        )
        return entry
    
    def update_user_balance(self, user_id: int, amount_change, description: Optional[str] = None) -> bool:
        """Apply a delta in its own transaction; True once committed"""
        try:
            self.apply_delta(user_id, amount_change, description)
            self.db.commit()
            return True
        except (UserNotFoundError, ValueError) as e:
            self.db.rollback()
            logger.warning("Balance update rejected for user %s: %s", user_id, e)
            return False
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Balance update failed for user %s", user_id)
            return False
    
    def top_up(self, user_id: int, amount) -> Transaction:
        """Credit a driver's account"""
        amount = Decimal(str(amount))
        if amount <= 0:
            raise ValueError("Top-up amount must be positive")
        
        try:
            entry = self.apply_delta(
                user_id,
                amount,
                description="Account top-up",
                transaction_type=TransactionType.ACCOUNT_TOPUP
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        
        self.db.refresh(entry)
        return entry
    
    def get_balance(self, user_id: int) -> Decimal:
        balance = self.db.query(User.balance).filter(User.id == user_id).scalar()
        if balance is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return Decimal(str(balance)).quantize(_TWO_PLACES)
    
    def get_history(self, user_id: int, limit: int = 50, offset: int = 0) -> LedgerHistoryResponse:
        """Transactions newest first, with credit/debit totals over the whole history"""
        current_balance = self.get_balance(user_id)
        
        query = self.db.query(Transaction).filter(Transaction.user_id == user_id)
        total_count = query.count()
        entries = (
            query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        
        totals = dict(
            self.db.query(Transaction.type, func.sum(Transaction.amount))
            .filter(Transaction.user_id == user_id)
            .group_by(Transaction.type)
            .all()
        )
        total_credits = sum((Decimal(str(totals.get(t) or 0)) for t in CREDIT_TYPES), Decimal("0"))
        total_debits = sum((-Decimal(str(totals.get(t) or 0)) for t in DEBIT_TYPES), Decimal("0"))
        
        return LedgerHistoryResponse(
            user_id=user_id,
            entries=[TransactionOut.model_validate(e) for e in entries],
            total_count=total_count,
            total_credits=total_credits.quantize(_TWO_PLACES),
            total_debits=total_debits.quantize(_TWO_PLACES),
            current_balance=current_balance
        )
    
    @staticmethod
    def _default_description(transaction_type: TransactionType) -> str:
        return {
            TransactionType.BOOKING_PAYMENT: "Express lane booking payment",
            TransactionType.ACCOUNT_TOPUP: "Account top-up",
            TransactionType.REFUND: "Refund",
            TransactionType.FINE: "Fine",
        }[transaction_type]
