"""Court and pricing rule models."""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Float, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class Court(Base):
    """Represents a bookable padel court."""

    __tablename__ = "courts"

    id = Column(Integer, primary_key=True, index=True)
    sports_club_id = Column(Integer, ForeignKey("sports_clubs.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False, default="OPEN")  # OPEN, CLOSE, SALON
    base_price_per_hour = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    # Relationships
    club = relationship("SportsClub", back_populates="courts")
    owner = relationship("User")
    # Rules are matched in insertion order, so keep them sorted by id
    pricing_rules = relationship(
        "PricingRule",
        back_populates="court",
        cascade="all, delete-orphan",
        order_by="PricingRule.id",
    )
    cancellation_policy = relationship(
        "CancellationPolicy",
        back_populates="court",
        uselist=False,
        cascade="all, delete-orphan",
    )
    bookings = relationship("Booking", back_populates="court")


class PricingRule(Base):
    """Daily time window [start_time, end_time) with a price multiplier."""

    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True, index=True)
    court_id = Column(Integer, ForeignKey("courts.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(String(5), nullable=False)  # HH:mm
    end_time = Column(String(5), nullable=False)    # HH:mm, <= start wraps past midnight
    multiplier = Column(Float, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    court = relationship("Court", back_populates="pricing_rules")
