"""Booking and participant models."""
import enum

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Numeric, Enum, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.clock import utcnow
from app.core.database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    CANCELLATION_REQUESTED = "CANCELLATION_REQUESTED"
    CANCELLATION_VERIFIED = "CANCELLATION_VERIFIED"
    CANCELLATION_REJECTED = "CANCELLATION_REJECTED"


class ParticipantStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class Gender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class Booking(Base):
    """A reservation of one court for [start_time, end_time)."""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    court_id = Column(Integer, ForeignKey("courts.id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)  # UTC
    end_time = Column(DateTime, nullable=False)    # UTC
    total_price = Column(Numeric(12, 2), nullable=False)
    status = Column(
        Enum(BookingStatus, native_enum=False, length=32),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )
    invite_token = Column(String(64), unique=True, nullable=True, index=True)
    transaction_id = Column(String, nullable=True)
    cancellation_requested_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(String, nullable=True)
    cancellation_verified_at = Column(DateTime, nullable=True)
    cancellation_rejected_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime, onupdate=func.now())

    # Relationships
    user = relationship("User")
    court = relationship("Court", back_populates="bookings")
    participants = relationship(
        "BookingParticipant",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingParticipant.id",
    )

    # Overlap lookups filter on status plus one of the two owners
    __table_args__ = (
        Index("ix_bookings_court_status_start", "court_id", "status", "start_time"),
        Index("ix_bookings_user_status_start", "user_id", "status", "start_time"),
    )


class BookingParticipant(Base):
    """An invitee on a booking, either named or linked to an account."""

    __tablename__ = "booking_participants"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    gender = Column(Enum(Gender, native_enum=False, length=16), nullable=True)
    status = Column(
        Enum(ParticipantStatus, native_enum=False, length=16),
        nullable=False,
        default=ParticipantStatus.PENDING,
    )
    created_at = Column(DateTime, server_default=func.now())

    # Relationships
    booking = relationship("Booking", back_populates="participants")
    user = relationship("User")
