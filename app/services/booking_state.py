"""Booking lifecycle state machine.

All status changes go through ``apply_transition``; handlers never assign
``booking.status`` directly, so an illegal move is rejected in one place.

    PENDING --payment_confirmed--> CONFIRMED
    PENDING --payment_failed/expired--> CANCELLED
    CONFIRMED --cancel_unilateral--> CANCELLED
    CONFIRMED --request_cancellation--> CANCELLATION_REQUESTED
    CANCELLATION_REQUESTED --approve_cancellation--> CANCELLATION_VERIFIED
    CANCELLATION_REQUESTED --reject_cancellation--> CANCELLATION_REJECTED
"""
import enum
import logging
from datetime import datetime
from typing import Dict, Tuple

from app.core.exceptions import InvalidStateError
from app.models.booking import Booking, BookingStatus

logger = logging.getLogger(__name__)


class BookingEvent(str, enum.Enum):
    PAYMENT_CONFIRMED = "payment_confirmed"
    PAYMENT_FAILED = "payment_failed"
    EXPIRED = "expired"
    CANCEL_UNILATERAL = "cancel_unilateral"
    REQUEST_CANCELLATION = "request_cancellation"
    APPROVE_CANCELLATION = "approve_cancellation"
    REJECT_CANCELLATION = "reject_cancellation"


TRANSITIONS: Dict[Tuple[BookingStatus, BookingEvent], BookingStatus] = {
    (BookingStatus.PENDING, BookingEvent.PAYMENT_CONFIRMED): BookingStatus.CONFIRMED,
    (BookingStatus.PENDING, BookingEvent.PAYMENT_FAILED): BookingStatus.CANCELLED,
    (BookingStatus.PENDING, BookingEvent.EXPIRED): BookingStatus.CANCELLED,
    (BookingStatus.CONFIRMED, BookingEvent.CANCEL_UNILATERAL): BookingStatus.CANCELLED,
    (BookingStatus.CONFIRMED, BookingEvent.REQUEST_CANCELLATION): BookingStatus.CANCELLATION_REQUESTED,
    (BookingStatus.CANCELLATION_REQUESTED, BookingEvent.APPROVE_CANCELLATION): BookingStatus.CANCELLATION_VERIFIED,
    (BookingStatus.CANCELLATION_REQUESTED, BookingEvent.REJECT_CANCELLATION): BookingStatus.CANCELLATION_REJECTED,
}

TERMINAL_STATES = frozenset(
    {
        BookingStatus.CANCELLED,
        BookingStatus.CANCELLATION_VERIFIED,
        BookingStatus.CANCELLATION_REJECTED,
    }
)

# Messages shown when an event arrives in a state that does not accept it
REJECTION_MESSAGES = {
    BookingEvent.CANCEL_UNILATERAL: "This booking cannot be cancelled",
    BookingEvent.REQUEST_CANCELLATION: "This booking cannot be cancelled",
    BookingEvent.APPROVE_CANCELLATION: "This booking has no pending cancellation request",
    BookingEvent.REJECT_CANCELLATION: "This booking has no pending cancellation request",
}


def next_status(current: BookingStatus, event: BookingEvent) -> BookingStatus:
    """
    Resolve the target status for ``event`` fired in ``current``.

    Raises:
        InvalidStateError: If the transition is not allowed
    """
    target = TRANSITIONS.get((BookingStatus(current), event))
    if target is None:
        message = REJECTION_MESSAGES.get(
            event, f"Cannot apply '{event.value}' to a {BookingStatus(current).value} booking"
        )
        raise InvalidStateError(message)
    return target


def can_transition(current: BookingStatus, event: BookingEvent) -> bool:
    return (BookingStatus(current), event) in TRANSITIONS


def apply_transition(booking: Booking, event: BookingEvent, at: datetime) -> Booking:
    """Move ``booking`` to its next status and stamp the matching timestamp."""
    previous = booking.status
    booking.status = next_status(previous, event)

    if event == BookingEvent.REQUEST_CANCELLATION:
        booking.cancellation_requested_at = at
    elif event == BookingEvent.APPROVE_CANCELLATION:
        booking.cancellation_verified_at = at
    elif event == BookingEvent.REJECT_CANCELLATION:
        booking.cancellation_rejected_at = at

    logger.info(
        f"Booking {booking.id}: {BookingStatus(previous).value} -> "
        f"{BookingStatus(booking.status).value} ({event.value})"
    )
    return booking


def require_editable(booking: Booking):
    """Participant and time edits are only allowed on confirmed bookings."""
    if booking.status != BookingStatus.CONFIRMED:
        raise InvalidStateError("This booking can no longer be edited")
