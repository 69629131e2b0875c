"""Catalog schemas (cities, clubs, courts, pricing rules)."""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from decimal import Decimal
from datetime import datetime

HHMM_PATTERN = r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$"


class CityInDB(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class ClubInDB(BaseModel):
    """Schema for a sports club."""

    id: int
    city_id: int
    owner_id: Optional[int] = None
    name: str
    address: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PricingRuleCreate(BaseModel):
    """Schema for adding a pricing rule to a court."""

    start_time: str = Field(..., pattern=HHMM_PATTERN, description="Window start, HH:mm")
    end_time: str = Field(..., pattern=HHMM_PATTERN, description="Window end, HH:mm")
    multiplier: float = Field(..., gt=0)


class PricingRuleInDB(BaseModel):
    id: int
    court_id: int
    start_time: str
    end_time: str
    multiplier: float

    model_config = ConfigDict(from_attributes=True)


class CourtSummary(BaseModel):
    """Schema for a court with its club, city and pricing rules."""

    id: int
    name: str
    type: str
    base_price_per_hour: Decimal
    owner_id: Optional[int] = None
    club_id: int
    club_name: str
    city_name: str
    pricing_rules: List[PricingRuleInDB] = []
    created_at: Optional[datetime] = None
