from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from expresslane.models import TransactionType

class TransactionOut(BaseModel):
    """One ledger row; debits carry a negative amount"""
    id: int
    user_id: int
    booking_id: Optional[int] = None
    type: TransactionType
    amount: Decimal
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class TopUpRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, le=Decimal("100000"), decimal_places=2)

class BalanceResponse(BaseModel):
    user_id: int
    balance: Decimal

class LedgerHistoryResponse(BaseModel):
    user_id: int
    entries: List[TransactionOut]
    total_count: int
    total_credits: Decimal
    total_debits: Decimal
    current_balance: Decimal
