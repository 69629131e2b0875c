"""Booking endpoints."""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import Caller, get_current_caller
from app.schemas.booking import (
    AdminBookingSummary,
    BookingCreate,
    BookingCreated,
    BookingDetail,
    BookingUpdate,
    InvitationResponse,
)
from app.schemas.common import ERROR_RESPONSES, ActionResult
from app.services.booking_service import booking_service, invite_link

router = APIRouter(prefix="/bookings", tags=["bookings"], responses=ERROR_RESPONSES)


@router.post("", response_model=BookingCreated, status_code=201)
async def create_booking(
    booking: BookingCreate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """
    Book a court and pay for it.

    Args:
        booking: Court, interval, invitees and payment method
        caller: Authenticated booking owner
        db: Database session

    Returns:
        The new booking's id, price and invite link
    """
    created = await booking_service.create_booking(
        db,
        caller,
        booking.court_id,
        booking.start_time,
        booking.end_time,
        booking.participants,
        booking.payment_method,
    )
    return BookingCreated(
        booking_id=created.id,
        total_price=created.total_price,
        invite_link=invite_link(created.invite_token),
        message="Booking completed successfully",
    )


@router.get("", response_model=List[BookingDetail])
async def list_my_bookings(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """List bookings the caller owns or was invited to, newest first."""
    return await booking_service.list_for_user(db, caller)


@router.get("/all", response_model=List[AdminBookingSummary])
async def list_all_bookings(
    start_date: Optional[date] = Query(default=None, description="Created on or after"),
    end_date: Optional[date] = Query(default=None, description="Created on or before"),
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """List every booking (admins only)."""
    return await booking_service.list_all_bookings(db, caller, start_date, end_date)


@router.patch("/{booking_id}", response_model=ActionResult)
async def update_booking(
    booking_id: int,
    update: BookingUpdate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """
    Edit a confirmed booking.

    Supported actions: ``remove_participant``, ``add_participant``,
    ``change_time`` (at least 6 hours before the current start) and
    ``cancel``.

    Args:
        booking_id: Booking ID
        update: Action and its arguments
        caller: Booking owner
        db: Database session
    """
    message = await booking_service.update_booking(db, caller, booking_id, update)
    return ActionResult(message=message)


@router.post("/{booking_id}/invitation", response_model=ActionResult)
async def respond_to_invitation(
    booking_id: int,
    response: InvitationResponse,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Accept or decline an invitation to a booking."""
    await booking_service.respond_to_invitation(db, caller, booking_id, response.accept)
    return ActionResult(message="Invitation accepted" if response.accept else "Invitation declined")


@router.post("/invitations/{token}/accept", response_model=ActionResult)
async def accept_invitation(
    token: str,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Join a booking through its invite link."""
    await booking_service.accept_invitation(db, caller, token)
    return ActionResult(message="Invitation accepted")
