from enum import Enum
from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime, Date, Text, ForeignKey, Numeric
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, false
from sqlalchemy.types import TypeDecorator
from sqlalchemy import type_coerce
from expresslane.database import Base
from expresslane.bookings.eligibility import NO_TIME_LIMIT_SLOT

# SQLite only autoincrements INTEGER primary keys
BigIntId = BigInteger().with_variant(Integer(), "sqlite")

# ================================
# Canonical enums
# ================================
class UserRole(str, Enum):
    ADMIN = "admin"
    DRIVER = "driver"

class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    REFUND = "refund"
    FASTTAG = "fasttag"
    FINED = "fined"

class TransactionType(str, Enum):
    BOOKING_PAYMENT = "booking_payment"
    ACCOUNT_TOPUP = "account_topup"
    REFUND = "refund"
    FINE = "fine"

# Spellings written by earlier clients of the same tables
LEGACY_STATUS_ALIASES = {
    "active": BookingStatus.CONFIRMED,
    "expired": BookingStatus.COMPLETED,
    "fastag": BookingStatus.FASTTAG,
}

def normalize_booking_status(raw) -> BookingStatus:
    """Map any persisted spelling of a booking status onto the canonical enum"""
    if isinstance(raw, BookingStatus):
        return raw
    key = str(raw).strip().lower().replace("_", "").replace("-", "").replace(" ", "")
    if key in LEGACY_STATUS_ALIASES:
        return LEGACY_STATUS_ALIASES[key]
    return BookingStatus(key)

class BookingStatusType(TypeDecorator):
    """Stores BookingStatus as text and normalizes whatever it reads back"""
    impl = String(20)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return normalize_booking_status(value).value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return normalize_booking_status(value)

def _enum_values(enum_cls):
    return [member.value for member in enum_cls]

# ================================
# Users / Drivers
# ================================
class User(Base):
    __tablename__ = "users"

    id = Column(BigIntId, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    role = Column(SAEnum(UserRole, name="user_role", values_callable=_enum_values), nullable=False, default=UserRole.DRIVER)
    license_plate = Column(String(20), index=True)
    balance = Column(Numeric(10, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    bookings = relationship("Booking", back_populates="user")
    transactions = relationship("Transaction", back_populates="user")

# ================================
# Toll Booths (reference data)
# ================================
class TollBooth(Base):
    __tablename__ = "toll_booths"

    id = Column(BigIntId, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    highway = Column(String(50), nullable=False)
    latitude = Column(Numeric(10, 8), nullable=False)
    longitude = Column(Numeric(11, 8), nullable=False)
    express_lane_fee = Column(Numeric(8, 2), nullable=False, default=50)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    bookings = relationship("Booking", back_populates="toll_booth")

# ================================
# Bookings
# ================================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(BigIntId, primary_key=True, index=True)
    user_id = Column(BigIntId, ForeignKey("users.id"), nullable=False, index=True)
    toll_booth_id = Column(BigIntId, ForeignKey("toll_booths.id"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False)
    time_slot = Column(String(50), nullable=False)
    distance_from_toll = Column(Numeric(5, 2), nullable=False)
    amount = Column(Numeric(8, 2), nullable=False)
    status = Column(BookingStatusType(), nullable=False, default=BookingStatus.CONFIRMED, index=True)
    admin_processed = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="bookings")
    toll_booth = relationship("TollBooth", back_populates="bookings")
    transactions = relationship("Transaction", back_populates="booking")

    @property
    def toll_booth_name(self):
        return self.toll_booth.name if self.toll_booth else None

    @property
    def user_email(self):
        return self.user.email if self.user else None

    @property
    def is_fasttag(self) -> bool:
        return self.status == BookingStatus.FASTTAG or self.time_slot == NO_TIME_LIMIT_SLOT

def status_in(*statuses):
    """SQL filter matching every persisted spelling of the given statuses"""
    spellings = {s.value for s in statuses}
    spellings.update(alias for alias, s in LEGACY_STATUS_ALIASES.items() if s in statuses)
    return func.lower(type_coerce(Booking.status, String)).in_(sorted(spellings))

# ================================
# Ledger
# ================================
class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(BigIntId, primary_key=True, index=True)
    user_id = Column(BigIntId, ForeignKey("users.id"), nullable=False, index=True)
    booking_id = Column(BigIntId, ForeignKey("bookings.id"), index=True)
    type = Column(SAEnum(TransactionType, name="transaction_type", values_callable=_enum_values), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)  # signed: debits are negative
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Relationships
    user = relationship("User", back_populates="transactions")
    booking = relationship("Booking", back_populates="transactions")
