from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from expresslane.auth.dependencies import get_current_session, require_driver
from expresslane.auth.schemas import UserSession
from expresslane.database import get_db
from expresslane.exceptions import ExpressLaneError
from expresslane.ledger.schemas import BalanceResponse, LedgerHistoryResponse, TopUpRequest, TransactionOut
from expresslane.ledger.service import LedgerService

router = APIRouter()

@router.get("/balance", response_model=BalanceResponse)
def get_balance(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """Current account balance"""
    try:
        balance = LedgerService(db).get_balance(session.user_id)
    except ExpressLaneError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    return BalanceResponse(user_id=session.user_id, balance=balance)

@router.get("/transactions", response_model=LedgerHistoryResponse)
def get_transactions(
    limit: int = Query(50, ge=1, le=200, description="Maximum results"),
    offset: int = Query(0, ge=0, description="Results to skip"),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db)
):
    """Transaction history, newest first"""
    try:
        return LedgerService(db).get_history(session.user_id, limit=limit, offset=offset)
    except ExpressLaneError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

@router.post("/topup", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
def top_up(
    request: TopUpRequest,
    session: UserSession = Depends(require_driver),
    db: Session = Depends(get_db)
):
    """Add money to the driver's account"""
    try:
        return LedgerService(db).top_up(session.user_id, request.amount)
    except ExpressLaneError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
