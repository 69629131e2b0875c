"""Cancellation policy model."""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class CancellationPolicy(Base):
    """Per-court cancellation rule (at most one per court)."""

    __tablename__ = "cancellation_policies"

    id = Column(Integer, primary_key=True, index=True)
    court_id = Column(Integer, ForeignKey("courts.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)
    hours_before_start = Column(Integer, nullable=False)
    refund_percentage = Column(Integer, nullable=False)  # 0-100
    description = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    # Relationships
    court = relationship("Court", back_populates="cancellation_policy")
