"""Cancellation policy and request schemas."""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class CancellationPolicyBase(BaseModel):
    hours_before_start: int = Field(..., ge=0)
    refund_percentage: int = Field(..., ge=0, le=100)
    description: Optional[str] = None


class CancellationPolicySet(CancellationPolicyBase):
    """Schema for creating or replacing a court's policy."""

    pass


class CancellationPolicyInDB(CancellationPolicyBase):
    id: int
    court_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CancellationVerify(BaseModel):
    approve: bool


class CancellationRequestSummary(BaseModel):
    """A pending cancellation as seen by the field owner or an admin."""

    id: int
    user_name: str
    user_email: Optional[str] = None
    court_id: int
    court_name: str
    start_time: datetime
    end_time: datetime
    total_price: Decimal
    refund_amount: Decimal
    cancellation_reason: Optional[str] = None
    requested_at: Optional[datetime] = None
