"""Database models."""
from app.models.user import User
from app.models.city import City
from app.models.club import SportsClub
from app.models.court import Court, PricingRule
from app.models.cancellation_policy import CancellationPolicy
from app.models.booking import Booking, BookingParticipant, BookingStatus, ParticipantStatus, Gender
from app.models.wallet import Wallet, WalletTransaction, TransactionType, TransactionStatus

__all__ = [
    "User",
    "City",
    "SportsClub",
    "Court",
    "PricingRule",
    "CancellationPolicy",
    "Booking",
    "BookingParticipant",
    "BookingStatus",
    "ParticipantStatus",
    "Gender",
    "Wallet",
    "WalletTransaction",
    "TransactionType",
    "TransactionStatus",
]
