"""Availability schemas."""
from pydantic import BaseModel
from typing import List
from datetime import datetime, date
from decimal import Decimal


class AvailabilitySlot(BaseModel):
    """Schema for a single bookable slot."""

    start: datetime  # UTC
    end: datetime    # UTC
    local_time: str  # HH:mm in the service time zone
    available: bool
    price: Decimal


class AvailabilityResponse(BaseModel):
    """Schema for a court's slots on one day."""

    court_id: int
    date: date
    slots: List[AvailabilitySlot]
