import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from expresslane.auth.schemas import UserCreate, UserSession
from expresslane.auth.utils import get_password_hash, verify_password
from expresslane.models import User, UserRole

logger = logging.getLogger(__name__)

DRIVER_SEED_BALANCE = Decimal("1000.00")

class UserService:
    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email"""
        return db.query(User).filter(User.email == email).first()
    
    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()
    
    @staticmethod
    def create_driver(db: Session, user: UserCreate) -> User:
        """Register a driver; drivers start with the seed balance"""
        db_user = User(
            email=user.email,
            password=get_password_hash(user.password),
            role=UserRole.DRIVER,
            license_plate=user.license_plate.strip().upper(),
            balance=DRIVER_SEED_BALANCE
        )
        
        try:
            db.add(db_user)
            db.commit()
            db.refresh(db_user)
        except IntegrityError:
            db.rollback()
            raise ValueError("Email already registered")
        
        logger.info("Registered driver %s (%s)", db_user.id, db_user.license_plate)
        return db_user
    
    @staticmethod
    def create_admin(db: Session, email: str, password: str) -> User:
        """Create an administrator account (seed script only)"""
        admin = User(
            email=email,
            password=get_password_hash(password),
            role=UserRole.ADMIN,
            balance=Decimal("0.00")
        )
        db.add(admin)
        db.commit()
        db.refresh(admin)
        return admin
    
    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
        """Authenticate user with email and password"""
        user = UserService.get_user_by_email(db, email)
        if not user:
            return None
        if not verify_password(password, user.password):
            return None
        return user
    
    @staticmethod
    def session_for(user: User) -> UserSession:
        return UserSession(user_id=user.id, role=user.role)
