"""Booking schemas."""
import enum
from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal
from datetime import datetime
from decimal import Decimal

from app.models.booking import BookingStatus, Gender, ParticipantStatus

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class PaymentMethod(str, enum.Enum):
    GATEWAY = "GATEWAY"
    WALLET = "WALLET"


class ParticipantCreate(BaseModel):
    """A named invitee without an account."""

    name: str = Field(..., min_length=1)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    phone: Optional[str] = None
    gender: Optional[Gender] = None

    @model_validator(mode="before")
    @classmethod
    def blank_to_none(cls, data):
        if isinstance(data, dict):
            return {k: (None if v == "" else v) for k, v in data.items()}
        return data


class BookingCreate(BaseModel):
    """Schema for creating a booking."""

    court_id: int
    start_time: datetime
    end_time: datetime
    participants: List[ParticipantCreate] = []
    payment_method: PaymentMethod = PaymentMethod.GATEWAY


class BookingCreated(BaseModel):
    success: Literal[True] = True
    booking_id: int
    total_price: Decimal
    invite_link: str
    message: str


class BookingUpdate(BaseModel):
    """One edit to a confirmed booking, selected by ``action``."""

    action: Literal["remove_participant", "add_participant", "change_time", "cancel"]
    participant_id: Optional[int] = None
    participant: Optional[ParticipantCreate] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class InvitationResponse(BaseModel):
    accept: bool


class CancellationRequestCreate(BaseModel):
    reason: Optional[str] = None


class PersonSummary(BaseModel):
    name: Optional[str] = None
    family: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class ParticipantInDB(BaseModel):
    id: int
    name: Optional[str] = None
    family: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[Gender] = None
    status: ParticipantStatus
    is_user: bool


class BookingDetail(BaseModel):
    """A booking as shown to its owner or participants."""

    id: int
    court_id: int
    court_name: str
    court_type: str
    club_name: str
    city_name: str
    start_time: datetime
    end_time: datetime
    total_price: Decimal
    status: BookingStatus
    is_owner: bool
    owner: PersonSummary
    participants: List[ParticipantInDB]
    created_at: Optional[datetime] = None


class AdminBookingSummary(BaseModel):
    id: int
    user_name: str
    user_email: Optional[str] = None
    court_name: str
    start_time: datetime
    end_time: datetime
    total_price: Decimal
    status: BookingStatus
    created_at: Optional[datetime] = None
