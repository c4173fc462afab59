from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

from expresslane.models import UserRole

class UserSession(BaseModel):
    """Identity handed to every core operation instead of ambient auth state"""
    user_id: int
    role: UserRole
    
    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    license_plate: str = Field(..., min_length=2, max_length=20)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class User(BaseModel):
    id: int
    email: EmailStr
    role: UserRole
    license_plate: Optional[str] = None
    balance: Decimal
    created_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class AuthResponse(BaseModel):
    access_token: str
    token_type: str
    user: User
