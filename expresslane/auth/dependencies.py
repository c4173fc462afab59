from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from expresslane.auth.schemas import UserSession
from expresslane.auth.service import UserService
from expresslane.auth.utils import verify_token
from expresslane.config import settings
from expresslane.database import get_db
from expresslane.models import UserRole

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

def get_current_session(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> UserSession:
    """Resolve the bearer token to the caller's session"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    
    token_data = verify_token(token, credentials_exception)
    
    # Role is read from the database so a demoted account loses access immediately
    user = UserService.get_user_by_id(db, user_id=token_data["user_id"])
    if user is None:
        raise credentials_exception
    
    return UserService.session_for(user)

def require_driver(session: UserSession = Depends(get_current_session)) -> UserSession:
    """Require driver role for access"""
    if session.role != UserRole.DRIVER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Driver account required"
        )
    return session

def require_admin(session: UserSession = Depends(get_current_session)) -> UserSession:
    """Require admin role for access"""
    if session.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return session
