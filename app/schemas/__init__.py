"""API schemas."""
from app.schemas.common import ERROR_RESPONSES, ActionResult, ErrorResponse
from app.schemas.catalog import (
    CityInDB,
    ClubInDB,
    CourtSummary,
    PricingRuleCreate,
    PricingRuleInDB,
)
from app.schemas.availability import AvailabilitySlot, AvailabilityResponse
from app.schemas.booking import (
    BookingCreate,
    BookingCreated,
    BookingUpdate,
    BookingDetail,
    AdminBookingSummary,
    ParticipantCreate,
    PaymentMethod,
)
from app.schemas.wallet import (
    WalletBalance,
    WalletCharge,
    WalletChargeResult,
    WalletTransactionInDB,
)
from app.schemas.cancellation import (
    CancellationPolicySet,
    CancellationPolicyInDB,
    CancellationVerify,
    CancellationRequestSummary,
)

__all__ = [
    "ERROR_RESPONSES",
    "ActionResult",
    "ErrorResponse",
    "CityInDB",
    "ClubInDB",
    "CourtSummary",
    "PricingRuleCreate",
    "PricingRuleInDB",
    "AvailabilitySlot",
    "AvailabilityResponse",
    "BookingCreate",
    "BookingCreated",
    "BookingUpdate",
    "BookingDetail",
    "AdminBookingSummary",
    "ParticipantCreate",
    "PaymentMethod",
    "WalletBalance",
    "WalletCharge",
    "WalletChargeResult",
    "WalletTransactionInDB",
    "CancellationPolicySet",
    "CancellationPolicyInDB",
    "CancellationVerify",
    "CancellationRequestSummary",
]
